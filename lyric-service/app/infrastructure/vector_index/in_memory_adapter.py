# File: lyric-service/app/infrastructure/vector_index/in_memory_adapter.py
"""
In-process vector index over a JSON corpus file.

Meant for development and tests: the whole corpus is held in one numpy matrix
and ranked by cosine similarity on every query. The file is written by
scripts/seed_lyrics.py with `--output json`.
"""
import json
import structlog
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import numpy as np

from app.application.ports.vector_index_port import VectorIndexPort
from app.domain.exceptions import UpstreamConfigurationError, UpstreamUnexpectedError
from app.domain.models import Candidate, EMBEDDING_DIMENSION, EMBEDDING_MODEL_NAME

log = structlog.get_logger(__name__)

DEPENDENCY = "memory-index"


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return matrix / norms


class InMemoryVectorIndex(VectorIndexPort):

    def __init__(self, entries: Sequence[Tuple[str, Sequence[float]]] = (), embedding_model: str = EMBEDDING_MODEL_NAME):
        self._embedding_model = embedding_model
        self._texts: List[str] = []
        self._matrix = np.zeros((0, EMBEDDING_DIMENSION), dtype=np.float32)
        self._load(entries)

    @classmethod
    def from_file(cls, path: Union[str, Path], embedding_model: str = EMBEDDING_MODEL_NAME) -> "InMemoryVectorIndex":
        corpus_path = Path(path)
        if not corpus_path.is_file():
            raise UpstreamConfigurationError(dependency=DEPENDENCY, setting="LYRIC_VECTOR_INDEX_CORPUS_PATH")
        payload = json.loads(corpus_path.read_text(encoding="utf-8"))
        if payload.get("embedding_model") != embedding_model:
            raise UpstreamUnexpectedError(
                f"Corpus was embedded with {payload.get('embedding_model')!r}, expected {embedding_model!r}",
                dependency=DEPENDENCY,
            )
        entries = [(row["text"], row["embedding"]) for row in payload.get("rows", [])]
        log.info("Loaded lyric corpus from file", path=str(corpus_path), count=len(entries))
        return cls(entries, embedding_model=embedding_model)

    def _load(self, entries: Sequence[Tuple[str, Sequence[float]]]) -> None:
        by_text = dict(zip(self._texts, self._matrix))
        for text, vector in entries:
            if len(vector) != EMBEDDING_DIMENSION:
                raise ValueError(f"Vector for {text!r} has dimension {len(vector)}, expected {EMBEDDING_DIMENSION}")
            by_text[text] = np.asarray(vector, dtype=np.float32)
        self._texts = list(by_text.keys())
        if by_text:
            self._matrix = _normalize_rows(np.vstack(list(by_text.values())))
        else:
            self._matrix = np.zeros((0, EMBEDDING_DIMENSION), dtype=np.float32)

    def __len__(self) -> int:
        return len(self._texts)

    async def nearest(self, vector: Sequence[float], min_score: float, k: int) -> List[Candidate]:
        if not self._texts or k <= 0:
            return []
        query = np.asarray(vector, dtype=np.float32)
        norm = np.linalg.norm(query)
        if norm == 0.0:
            return []
        scores = self._matrix @ (query / norm)
        order = np.argsort(-scores)
        results: List[Candidate] = []
        for idx in order:
            score = float(scores[idx])
            if score < min_score or len(results) >= k:
                break
            results.append(Candidate(text=self._texts[idx], similarity_score=score))
        return results

    async def upsert(self, entries: Sequence[Tuple[str, Sequence[float]]], embedding_model: str) -> int:
        if embedding_model != self._embedding_model:
            raise ValueError(f"Cannot mix embeddings from {embedding_model!r} into a {self._embedding_model!r} index")
        self._load(entries)
        return len(entries)


def write_corpus_file(path: Union[str, Path], entries: Sequence[Tuple[str, Sequence[float]]], embedding_model: str) -> None:
    """Writes (text, vector) pairs in the format InMemoryVectorIndex.from_file reads."""
    corpus_path = Path(path)
    corpus_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "embedding_model": embedding_model,
        "dimension": EMBEDDING_DIMENSION,
        "rows": [{"text": text, "embedding": [float(x) for x in vector]} for text, vector in entries],
    }
    corpus_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    log.info("Lyric corpus written", path=str(corpus_path), count=len(entries))
