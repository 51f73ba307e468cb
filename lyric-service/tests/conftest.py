"""
Shared fixtures for the Lyric Service tests.

Collaborators are replaced by in-memory implementations of the ports, so no
test touches Redis, PostgreSQL or OpenAI.
"""
from __future__ import annotations

import math
import random
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from app.application.ports.completion_port import CompletionPort
from app.application.ports.embedding_port import EmbeddingPort
from app.application.ports.rate_limit_store_port import RateLimitStorePort, RateLimitWindow
from app.application.services.candidate_retriever import CandidateRetriever
from app.application.services.rate_limiter import RateLimiter
from app.application.services.selector import Selector
from app.application.use_cases.ask_lyric_use_case import AskLyricUseCase
from app.domain.fallback import FallbackPicker
from app.domain.models import EMBEDDING_DIMENSION, RateLimitDecision
from app.infrastructure.vector_index.in_memory_adapter import InMemoryVectorIndex

START_MS = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000


def unit_vector(axis: int = 0) -> List[float]:
    vector = [0.0] * EMBEDDING_DIMENSION
    vector[axis] = 1.0
    return vector


def vector_with_similarity(similarity: float, other_axis: int) -> List[float]:
    """A unit vector whose cosine similarity with unit_vector(0) is `similarity`."""
    vector = [0.0] * EMBEDDING_DIMENSION
    vector[0] = similarity
    vector[other_axis] = math.sqrt(1.0 - similarity ** 2)
    return vector


class FakeClock:
    def __init__(self, start_ms: int = START_MS):
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class InMemoryRateLimitStore(RateLimitStorePort):
    """Sliding log with the same semantics as the Redis Lua script."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.entries: Dict[Tuple[str, str], List[int]] = defaultdict(list)
        self.calls: List[Tuple[str, str]] = []
        self.error: Optional[Exception] = None

    def count(self, identity: str, window: str) -> int:
        return len(self.entries[(identity, window)])

    async def limit(self, identity: str, window: RateLimitWindow) -> RateLimitDecision:
        self.calls.append((identity, window.name))
        if self.error is not None:
            raise self.error
        now = self.clock()
        key = (identity, window.name)
        self.entries[key] = [ts for ts in self.entries[key] if ts > now - window.window_ms]
        allowed = len(self.entries[key]) < window.limit
        if allowed:
            self.entries[key].append(now)
        reset = self.entries[key][0] + window.window_ms if self.entries[key] else now + window.window_ms
        return RateLimitDecision(allowed=allowed, reset_at_epoch_ms=reset)


class StubEmbedding(EmbeddingPort):
    def __init__(self, vector: Optional[Sequence[float]] = None):
        self.vector = list(vector) if vector is not None else unit_vector(0)
        self.calls: List[str] = []
        self.error: Optional[Exception] = None

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.vector)

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        return [await self.embed(t) for t in texts]

    def get_model_info(self):
        return {"model_name": "stub", "dimension": EMBEDDING_DIMENSION}


class StubCompletion(CompletionPort):
    def __init__(self, reply: str = "no match"):
        self.reply = reply
        self.calls: List[dict] = []
        self.error: Optional[Exception] = None

    async def complete(self, messages, temperature: float, max_tokens: int) -> str:
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore(clock)


@pytest.fixture
def embedding() -> StubEmbedding:
    return StubEmbedding()


@pytest.fixture
def completion() -> StubCompletion:
    return StubCompletion()


@pytest.fixture
def corpus() -> List[Tuple[str, List[float]]]:
    return [
        ("Long story short, I survived", vector_with_similarity(0.91, 1)),
        ("This is me trying", vector_with_similarity(0.84, 2)),
        ("Time won't fly, it's like I'm paralyzed by it", vector_with_similarity(0.77, 3)),
        ("You need to calm down", vector_with_similarity(0.72, 4)),
        ("Shake it off", vector_with_similarity(0.40, 5)),
    ]


@pytest.fixture
def index(corpus) -> InMemoryVectorIndex:
    return InMemoryVectorIndex(corpus)


@pytest.fixture
def use_case(store, clock, embedding, completion, index) -> AskLyricUseCase:
    return AskLyricUseCase(
        rate_limiter=RateLimiter(store=store, clock=clock),
        embedding=embedding,
        retriever=CandidateRetriever(index=index),
        selector=Selector(completion=completion),
        fallback=FallbackPicker(rng=random.Random(7)),
    )


@pytest.fixture
def client(use_case):
    from fastapi.testclient import TestClient
    from app.dependencies import get_ask_lyric_use_case
    from app.main import app

    app.dependency_overrides[get_ask_lyric_use_case] = lambda: use_case
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
