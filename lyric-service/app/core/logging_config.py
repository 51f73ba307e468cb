# lyric-service/app/core/logging_config.py
import logging
import sys
import structlog
from app.core.config import settings # Ensures settings are loaded first

# Event keys whose values must never reach the log stream.
REDACTED_KEYS = frozenset({"question", "api_key", "password", "token", "dsn", "authorization"})
REDACTED = "[redacted]"

_HANDLER_NAME = "lyric-service-json"

# Libraries that log every HTTP call at INFO.
_NOISY_LOGGERS = ("uvicorn.access", "gunicorn.access", "httpx", "httpcore", "openai", "asyncpg")


def redact_sensitive_fields(logger, method_name, event_dict):
    """structlog processor: question text and credentials are replaced, never dropped silently."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _shared_processors():
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_sensitive_fields,
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.LOG_LEVEL == "DEBUG":
        processors.append(structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ))
    return processors


def setup_logging():
    """Routes structlog and stdlib logging through one JSON handler on stdout. Safe to call twice."""
    shared_processors = _shared_processors()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    if not any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
        ))
        root_logger.addHandler(handler)

    root_logger.setLevel(settings.LOG_LEVEL.upper())
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger("lyric_service").info("Logging configured", log_level=settings.LOG_LEVEL, service=settings.PROJECT_NAME)
