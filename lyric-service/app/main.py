# File: lyric-service/app/main.py
import os
import time
import uuid
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

# --- Setup Logging First ---
from app.core.logging_config import setup_logging
setup_logging()

from app.core.config import settings
from app.api.v1 import schemas
from app.api.v1.endpoints.ask_endpoint import router as ask_router
from app.api.v1.errors import register_exception_handlers
from app.dependencies import close_dependencies, dependency_status
from app.domain.models import UPSTREAM_ERROR

log = structlog.get_logger(__name__)

# --- Lifespan Manager (Startup/Shutdown) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Handles are built lazily on the first request; nothing to open here.
    log.info("Lyric Service starting", dependencies=dependency_status())

    yield

    log.info("Lyric Service shutting down...")
    await close_dependencies()
    log.info("Shutdown complete.")

# --- FastAPI App Instance ---
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Matches a free-text emotional question to a short lyric.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Middlewares ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time", "Retry-After"],
)

@app.middleware("http")
async def request_context_timing_logging(request: Request, call_next):
    start_time = time.perf_counter()
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    request_log = log.bind(method=request.method, path=request.url.path)
    request_log.info("Request received")

    try:
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.2f}ms"
        request_log.info("Request completed", status_code=response.status_code, duration_ms=round(process_time, 2))
        return response
    except Exception:
        process_time = (time.perf_counter() - start_time) * 1000
        request_log.exception("Unhandled exception during request", duration_ms=round(process_time, 2))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": UPSTREAM_ERROR},
            headers={"X-Request-ID": request_id},
        )

register_exception_handlers(app)

# --- Router Inclusion ---
app.include_router(ask_router, prefix=settings.API_V1_STR, tags=["Ask"])
log.info(f"Ask router included with prefix: {settings.API_V1_STR}")

app.mount("/metrics", make_asgi_app())

# --- Health Endpoint ---
@app.get("/health", tags=["Health"], summary="Health check endpoint", response_model=schemas.HealthResponse)
async def health_check():
    dependencies = dependency_status()
    if all(dependencies.values()):
        return schemas.HealthResponse(status="healthy", service=settings.PROJECT_NAME, dependencies=dependencies)
    log.error("Health check failed: dependencies are missing configuration.", dependencies=dependencies)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=schemas.HealthResponse(status="unhealthy", service=settings.PROJECT_NAME, dependencies=dependencies).model_dump(),
    )

# --- Main Execution ---
if __name__ == "__main__":
    import uvicorn
    port = settings.PORT
    host = os.getenv("HOST", "0.0.0.0")
    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
