# lyric-service/app/application/use_cases/ask_lyric_use_case.py
import time
import structlog
from enum import Enum
from typing import Any, Optional
from pydantic import ValidationError

from app.api.v1.schemas import AskRequest
from app.application.ports.embedding_port import EmbeddingPort
from app.application.services.candidate_retriever import CandidateRetriever
from app.application.services.rate_limiter import RateLimiter
from app.application.services.selector import Selector
from app.core.metrics import ASK_DURATION_SECONDS, FALLBACKS_TOTAL
from app.domain.exceptions import ClientInputError
from app.domain.fallback import FallbackPicker
from app.domain.identity import resolve_client_identity
from app.domain.models import AskResult
from app.domain.sanitizer import sanitize_input

log = structlog.get_logger(__name__)


class PipelineStage(str, Enum):
    IDENTIFY = "identify"
    RATE_LIMIT_HOURLY = "rate_limit_hourly"
    RATE_LIMIT_DAILY = "rate_limit_daily"
    VALIDATE_BODY = "validate_body"
    SANITIZE = "sanitize"
    EMBED = "embed"
    RETRIEVE = "retrieve"
    SELECT_OR_FALLBACK = "select_or_fallback"
    RESPOND = "respond"


class AskLyricUseCase:
    """
    Runs one question through the ask pipeline:

        IDENTIFY -> RATE_LIMIT_HOURLY -> RATE_LIMIT_DAILY -> VALIDATE_BODY -> SANITIZE
        -> EMBED -> RETRIEVE -> SELECT_OR_FALLBACK

    Stages never branch back. The first failing stage raises one of the
    LyricServiceError subclasses and nothing after it runs; a successful run
    always carries a lyric, either matched or from the fallback pool.
    """
    def __init__(
        self,
        rate_limiter: RateLimiter,
        embedding: EmbeddingPort,
        retriever: CandidateRetriever,
        selector: Selector,
        fallback: FallbackPicker,
    ):
        self.rate_limiter = rate_limiter
        self.embedding = embedding
        self.retriever = retriever
        self.selector = selector
        self.fallback = fallback
        log.info("AskLyricUseCase initialized", embedding_adapter=type(embedding).__name__)

    def _validate_body(self, payload: Any) -> str:
        try:
            return AskRequest.model_validate(payload).question
        except ValidationError:
            raise ClientInputError("Request body is missing a string 'question' field")

    async def execute(self, forwarded_for: Optional[str], payload: Any) -> AskResult:
        """
        Executes the pipeline for one request.

        Args:
            forwarded_for: Raw X-Forwarded-For header value, if any.
            payload: Decoded JSON body, or None when the body was not valid JSON.

        Returns:
            AskResult with the lyric to return to the client.

        Raises:
            RateLimitExceeded, ClientInputError, UpstreamTimeout,
            UpstreamConfigurationError, UpstreamUnexpectedError.
        """
        # Observed for refused and failed requests too.
        with ASK_DURATION_SECONDS.time():
            return await self._run(forwarded_for, payload)

    async def _run(self, forwarded_for: Optional[str], payload: Any) -> AskResult:
        start_time = time.perf_counter()

        identity = resolve_client_identity(forwarded_for)
        pipeline_log = log.bind(client_identity=identity)
        pipeline_log.debug("Client identified", stage=PipelineStage.IDENTIFY.value)

        pipeline_log.debug("Checking rate limit", stage=PipelineStage.RATE_LIMIT_HOURLY.value)
        await self.rate_limiter.check_window(identity, self.rate_limiter.hourly)
        pipeline_log.debug("Checking rate limit", stage=PipelineStage.RATE_LIMIT_DAILY.value)
        await self.rate_limiter.check_window(identity, self.rate_limiter.daily)

        question = self._validate_body(payload)
        pipeline_log = pipeline_log.bind(question_length=len(question))
        pipeline_log.debug("Body validated", stage=PipelineStage.VALIDATE_BODY.value)

        validation = sanitize_input(question)
        if not validation.safe:
            # Which rule fired is deliberately not recorded anywhere.
            pipeline_log.info("Question rejected by sanitizer", stage=PipelineStage.SANITIZE.value)
            raise ClientInputError(validation.error)

        pipeline_log.debug("Embedding question", stage=PipelineStage.EMBED.value)
        vector = await self.embedding.embed(question)

        candidates = await self.retriever.retrieve(vector)
        pipeline_log.info("Candidates retrieved", stage=PipelineStage.RETRIEVE.value, num_candidates=len(candidates))

        result = await self._select_or_fallback(question, candidates, pipeline_log)

        duration_ms = (time.perf_counter() - start_time) * 1000
        pipeline_log.info(
            "Ask pipeline completed",
            stage=PipelineStage.RESPOND.value,
            matched=result.matched,
            duration_ms=round(duration_ms, 2),
        )
        return result

    async def _select_or_fallback(self, question: str, candidates, pipeline_log) -> AskResult:
        stage = PipelineStage.SELECT_OR_FALLBACK.value
        if not candidates:
            FALLBACKS_TOTAL.labels(reason="no_candidates").inc()
            pipeline_log.info("No candidates above threshold, serving fallback", stage=stage)
            return AskResult(lyric=self.fallback.pick(), matched=False)

        outcome = await self.selector.select(question, candidates)
        if not outcome.is_match:
            FALLBACKS_TOTAL.labels(reason="no_match").inc()
            pipeline_log.info("Selector rejected all candidates, serving fallback", stage=stage)
            return AskResult(lyric=self.fallback.pick(), matched=False)

        return AskResult(lyric=outcome.lyric, matched=True)
