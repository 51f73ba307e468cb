from unittest.mock import AsyncMock

import pytest

from app.application.ports.vector_index_port import VectorIndexPort
from app.application.services.candidate_retriever import CandidateRetriever
from app.domain.exceptions import UpstreamConfigurationError, UpstreamUnexpectedError
from app.domain.models import Candidate, EMBEDDING_MODEL_NAME
from app.infrastructure.vector_index.in_memory_adapter import InMemoryVectorIndex, write_corpus_file

from conftest import unit_vector, vector_with_similarity


async def test_returns_top_three_above_threshold_in_order(index):
    candidates = await CandidateRetriever(index=index).retrieve(unit_vector(0))

    assert [c.text for c in candidates] == [
        "Long story short, I survived",
        "This is me trying",
        "Time won't fly, it's like I'm paralyzed by it",
    ]
    scores = [c.similarity_score for c in candidates]
    assert scores == sorted(scores, reverse=True)
    assert all(s >= 0.70 for s in scores)


async def test_returns_empty_when_nothing_clears_threshold():
    index = InMemoryVectorIndex([("Shake it off", vector_with_similarity(0.5, 1))])
    assert await CandidateRetriever(index=index).retrieve(unit_vector(0)) == []


async def test_empty_corpus_returns_empty():
    assert await CandidateRetriever(index=InMemoryVectorIndex()).retrieve(unit_vector(0)) == []


async def test_refilters_backend_results():
    index = AsyncMock(spec=VectorIndexPort)
    index.nearest.return_value = [
        Candidate(text="low", similarity_score=0.3),
        Candidate(text="b", similarity_score=0.8),
        Candidate(text="a", similarity_score=0.95),
        Candidate(text="c", similarity_score=0.75),
        Candidate(text="d", similarity_score=0.71),
    ]
    candidates = await CandidateRetriever(index=index).retrieve(unit_vector(0))

    assert [c.text for c in candidates] == ["a", "b", "c"]
    index.nearest.assert_awaited_once_with(unit_vector(0), 0.70, 3)


async def test_in_memory_upsert_replaces_by_text(index):
    await index.upsert([("Shake it off", vector_with_similarity(0.99, 5))], embedding_model=EMBEDDING_MODEL_NAME)
    candidates = await index.nearest(unit_vector(0), 0.7, 3)
    assert candidates[0].text == "Shake it off"
    assert len(index) == 5


async def test_in_memory_upsert_rejects_other_model(index):
    with pytest.raises(ValueError):
        await index.upsert([("x", unit_vector(1))], embedding_model="text-embedding-ada-002")


async def test_corpus_file_round_trip(tmp_path, corpus):
    path = tmp_path / "corpus.json"
    write_corpus_file(path, corpus, embedding_model=EMBEDDING_MODEL_NAME)

    index = InMemoryVectorIndex.from_file(path)
    assert len(index) == len(corpus)


def test_missing_corpus_file_is_a_configuration_error(tmp_path):
    with pytest.raises(UpstreamConfigurationError):
        InMemoryVectorIndex.from_file(tmp_path / "missing.json")


def test_corpus_from_another_model_is_rejected(tmp_path, corpus):
    path = tmp_path / "corpus.json"
    write_corpus_file(path, corpus, embedding_model="text-embedding-ada-002")
    with pytest.raises(UpstreamUnexpectedError):
        InMemoryVectorIndex.from_file(path)
