# lyric-service/app/dependencies.py
"""
Centralized dependency resolver for the Lyric Service.

Every external-service handle is built on first use and memoized with
lru_cache. Configuration is validated at construction, so a missing credential
raises UpstreamConfigurationError right there; lru_cache does not cache the
exception, and the next request tries to construct the handle again. Two
requests racing on first use may both build a handle; the handles are
stateless wrappers over remote calls, so keeping either one is fine.
"""
from functools import lru_cache
from pathlib import Path
from typing import List

import structlog

from app.application.ports.completion_port import CompletionPort
from app.application.ports.embedding_port import EmbeddingPort
from app.application.ports.rate_limit_store_port import RateLimitStorePort
from app.application.ports.vector_index_port import VectorIndexPort
from app.application.services.candidate_retriever import CandidateRetriever
from app.application.services.rate_limiter import RateLimiter
from app.application.services.selector import Selector
from app.application.use_cases.ask_lyric_use_case import AskLyricUseCase
from app.core.config import settings
from app.domain.fallback import FallbackPicker

log = structlog.get_logger(__name__)


def _secret(value) -> str:
    return value.get_secret_value() if value is not None else ""


@lru_cache()
def get_rate_limit_store() -> RateLimitStorePort:
    from app.infrastructure.rate_limit.redis_store_adapter import RedisRateLimitStore
    return RedisRateLimitStore(
        redis_url=settings.REDIS_URL,
        password=_secret(settings.REDIS_TOKEN) or None,
        prefix=settings.RATE_LIMIT_PREFIX,
        timeout_seconds=settings.REDIS_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_embedding_adapter() -> EmbeddingPort:
    from app.infrastructure.embedding_models.openai_adapter import OpenAIEmbeddingAdapter
    return OpenAIEmbeddingAdapter(
        api_key=_secret(settings.OPENAI_API_KEY),
        base_url=settings.OPENAI_API_BASE,
        timeout_seconds=settings.OPENAI_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_vector_index() -> VectorIndexPort:
    if settings.VECTOR_INDEX_BACKEND == "memory":
        from app.infrastructure.vector_index.in_memory_adapter import InMemoryVectorIndex
        return InMemoryVectorIndex.from_file(settings.VECTOR_INDEX_CORPUS_PATH)

    from app.infrastructure.vector_index.pgvector_adapter import PgVectorIndexAdapter
    return PgVectorIndexAdapter(
        dsn=_secret(settings.POSTGRES_DSN),
        command_timeout_seconds=settings.POSTGRES_COMMAND_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_completion_adapter() -> CompletionPort:
    from app.infrastructure.llm.openai_chat_adapter import OpenAIChatAdapter
    return OpenAIChatAdapter(
        api_key=_secret(settings.OPENAI_API_KEY),
        model_name=settings.OPENAI_CHAT_MODEL_NAME,
        base_url=settings.OPENAI_API_BASE,
        timeout_seconds=settings.OPENAI_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_ask_lyric_use_case() -> AskLyricUseCase:
    """Dependency provider for AskLyricUseCase."""
    return AskLyricUseCase(
        rate_limiter=RateLimiter(store=get_rate_limit_store()),
        embedding=get_embedding_adapter(),
        retriever=CandidateRetriever(index=get_vector_index()),
        selector=Selector(
            completion=get_completion_adapter(),
            temperature=settings.SELECTION_TEMPERATURE,
            max_tokens=settings.SELECTION_MAX_TOKENS,
            strict_containment=settings.STRICT_CANDIDATE_MATCH,
        ),
        fallback=FallbackPicker(),
    )


def dependency_status() -> dict:
    """Which dependencies have their required configuration present. Never includes values."""
    return {
        "openai": settings.OPENAI_API_KEY is not None,
        "rate_limit_store": bool(settings.REDIS_URL),
        "vector_index": (
            Path(settings.VECTOR_INDEX_CORPUS_PATH).is_file()
            if settings.VECTOR_INDEX_BACKEND == "memory"
            else settings.POSTGRES_DSN is not None
        ),
    }


async def close_dependencies() -> None:
    """Closes whichever handles were built. Called from the app lifespan on shutdown."""
    factories = [get_rate_limit_store, get_embedding_adapter, get_vector_index, get_completion_adapter]
    built: List = [f for f in factories if f.cache_info().currsize]
    for factory in built:
        handle = factory()
        try:
            await handle.close()
        except Exception as e:
            log.warning("Failed to close dependency handle", handle=type(handle).__name__, error=str(e))
    for factory in factories + [get_ask_lyric_use_case]:
        factory.cache_clear()
