# lyric-service/app/application/ports/vector_index_port.py
import abc
from typing import List, Sequence

from app.domain.models import Candidate


class VectorIndexPort(abc.ABC):
    """
    Interface (Port) for the pre-embedded lyric corpus.
    """

    @abc.abstractmethod
    async def nearest(self, vector: Sequence[float], min_score: float, k: int) -> List[Candidate]:
        """
        Returns up to `k` corpus entries whose similarity to `vector` is at least `min_score`,
        ordered by descending similarity. An empty list is a valid answer.

        Raises:
            UpstreamTimeout: If the index did not answer in time.
            UpstreamUnexpectedError: On any other index failure.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def upsert(self, entries: Sequence[tuple], embedding_model: str) -> int:
        """
        Inserts or replaces (text, vector) pairs. Used by the offline seeding job.

        Returns:
            The number of entries written.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Releases pooled connections, if any."""
        return None
