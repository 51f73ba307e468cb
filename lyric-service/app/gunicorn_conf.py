# lyric-service/app/gunicorn_conf.py
import os
from app.core.config import settings # LYRIC_WORKERS / LYRIC_PORT

# Each worker builds its own client handles on first request; nothing is shared across processes.
workers = settings.WORKERS
worker_class = "uvicorn.workers.UvicornWorker"

# Bind to 0.0.0.0 to be accessible from outside the container
host = os.getenv("LYRIC_HOST", "0.0.0.0")
bind = f"{host}:{settings.PORT}"

# Access logs come from the app's request middleware via structlog
accesslog = None

# Above the 10s model call bound plus the other upstream calls
timeout = int(os.getenv("LYRIC_GUNICORN_TIMEOUT", "30"))
graceful_timeout = 10

print("--- Gunicorn Configuration ---")
print(f"Workers: {workers}")
print(f"Worker Class: {worker_class}")
print(f"Bind: {bind}")
print(f"Timeout: {timeout}")
print("----------------------------")
