# lyric-service/app/application/ports/embedding_port.py
import abc
from typing import List, Dict, Any

class EmbeddingPort(abc.ABC):
    """
    Abstract port defining the interface for the external embedding service.
    """

    @abc.abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embeds a single text with the pinned embedding model.

        Args:
            text: The sanitized question text.

        Returns:
            A vector of exactly EMBEDDING_DIMENSION floats.

        Raises:
            UpstreamTimeout: If the service did not answer in time.
            UpstreamUnexpectedError: On any other failure or a malformed vector.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """
        Embeds a batch of texts in one call (used by the offline seeding job).

        Args:
            texts: A list of strings to embed.

        Returns:
            A list of vectors in input order.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def get_model_info(self) -> Dict[str, Any]:
        """
        Returns information about the embedding model.

        Returns:
            A dictionary containing model_name and dimension.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Releases the underlying HTTP client, if any."""
        return None
