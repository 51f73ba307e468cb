# lyric-service/app/api/v1/endpoints/ask_endpoint.py
import json
import structlog
from typing import Any
from fastapi import APIRouter, Depends, Request, status

from app.api.v1 import schemas
from app.application.use_cases.ask_lyric_use_case import AskLyricUseCase
from app.core.metrics import ASK_REQUESTS_TOTAL
from app.dependencies import get_ask_lyric_use_case

router = APIRouter()
log = structlog.get_logger(__name__)


async def _read_payload(request: Request) -> Any:
    body = await request.body()
    try:
        return json.loads(body) if body else None
    except (ValueError, RecursionError):
        # Deeply nested arrays raise RecursionError.
        # Reported as a client error at the body validation stage, after rate limiting.
        return None


@router.post(
    "/ask",
    response_model=schemas.AskResponse,
    status_code=status.HTTP_200_OK,
    summary="Match a question to a lyric",
    description="Receives { question } and returns { lyric }: a matched lyric or a fallback message, never an empty answer.",
    responses={
        400: {"model": schemas.ErrorResponse},
        429: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
        504: {"model": schemas.ErrorResponse},
    },
)
async def ask_endpoint(
    request: Request,
    use_case: AskLyricUseCase = Depends(get_ask_lyric_use_case),
):
    endpoint_log = log.bind(request_id=getattr(request.state, "request_id", None))
    endpoint_log.info("Received ask request")

    payload = await _read_payload(request)
    # Pipeline failures are LyricServiceError subclasses, mapped in app.api.v1.errors.
    result = await use_case.execute(request.headers.get("x-forwarded-for"), payload)

    ASK_REQUESTS_TOTAL.labels(outcome="matched" if result.matched else "fallback").inc()
    return schemas.AskResponse(lyric=result.lyric)
