# lyric-service/app/application/services/candidate_retriever.py
import structlog
from typing import List, Sequence

from app.application.ports.vector_index_port import VectorIndexPort
from app.core.metrics import CANDIDATES_RETRIEVED
from app.domain.models import Candidate, MAX_CANDIDATES, SIMILARITY_THRESHOLD

log = structlog.get_logger(__name__)


class CandidateRetriever:
    """Nearest-neighbour lookup over the lyric corpus."""

    def __init__(
        self,
        index: VectorIndexPort,
        min_score: float = SIMILARITY_THRESHOLD,
        max_candidates: int = MAX_CANDIDATES,
    ):
        self.index = index
        self.min_score = min_score
        self.max_candidates = max_candidates

    async def retrieve(self, vector: Sequence[float]) -> List[Candidate]:
        raw = await self.index.nearest(vector, self.min_score, self.max_candidates)

        # Re-applied here so every backend honours threshold, order and cap.
        candidates = sorted(
            (c for c in raw if c.similarity_score >= self.min_score),
            key=lambda c: c.similarity_score,
            reverse=True,
        )[: self.max_candidates]

        CANDIDATES_RETRIEVED.observe(len(candidates))
        log.debug(
            "Candidates retrieved",
            num_candidates=len(candidates),
            top_score=candidates[0].similarity_score if candidates else None,
        )
        return candidates
