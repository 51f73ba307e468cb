# lyric-service/app/api/v1/errors.py
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import schemas
from app.core.metrics import ASK_REQUESTS_TOTAL
from app.domain.exceptions import (
    ClientInputError,
    LyricServiceError,
    RateLimitExceeded,
    UpstreamConfigurationError,
    UpstreamTimeout,
)
from app.domain.models import GENERIC_INPUT_ERROR, RATE_LIMITED_ERROR, UPSTREAM_ERROR

log = structlog.get_logger(__name__)


def _json_error(status_code: int, body: schemas.ErrorResponse, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def error_response_for(exc: Exception) -> JSONResponse:
    """Maps a pipeline failure to its response class. No internal detail reaches the client."""
    if isinstance(exc, RateLimitExceeded):
        ASK_REQUESTS_TOTAL.labels(outcome="rate_limited").inc()
        return _json_error(
            status.HTTP_429_TOO_MANY_REQUESTS,
            schemas.ErrorResponse(error=RATE_LIMITED_ERROR, retry_after=exc.retry_after),
            headers={"Retry-After": str(exc.retry_after)},
        )
    if isinstance(exc, ClientInputError):
        ASK_REQUESTS_TOTAL.labels(outcome="client_error").inc()
        return _json_error(status.HTTP_400_BAD_REQUEST, schemas.ErrorResponse(error=GENERIC_INPUT_ERROR))
    if isinstance(exc, UpstreamTimeout):
        ASK_REQUESTS_TOTAL.labels(outcome="upstream_timeout").inc()
        return _json_error(status.HTTP_504_GATEWAY_TIMEOUT, schemas.ErrorResponse(error=UPSTREAM_ERROR))
    ASK_REQUESTS_TOTAL.labels(outcome="upstream_error").inc()
    return _json_error(status.HTTP_500_INTERNAL_SERVER_ERROR, schemas.ErrorResponse(error=UPSTREAM_ERROR))


async def lyric_service_error_handler(request: Request, exc: LyricServiceError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    error_log = log.bind(request_id=request_id, path=request.url.path)

    if isinstance(exc, UpstreamConfigurationError):
        # The missing setting is only ever logged server-side.
        error_log.critical("Dependency is not configured", dependency=exc.dependency, setting=exc.setting)
    elif isinstance(exc, (RateLimitExceeded, ClientInputError)):
        error_log.info("Request refused", error_type=type(exc).__name__)
    else:
        error_log.error("Ask pipeline failed upstream", error_type=type(exc).__name__, dependency=getattr(exc, "dependency", None), error=str(exc))
    return error_response_for(exc)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Framework errors (405, 404) use the same { error } body shape.
    message = "Method not allowed" if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=getattr(exc, "headers", None))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LyricServiceError, lyric_service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
