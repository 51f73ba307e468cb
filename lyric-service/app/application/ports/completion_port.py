# lyric-service/app/application/ports/completion_port.py
import abc
from typing import Dict, List


class CompletionPort(abc.ABC):
    """
    Interface (Port) for the generative-model service.
    """

    @abc.abstractmethod
    async def complete(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
        """
        Runs one chat completion over `messages`.

        Returns:
            The raw (untrimmed) text of the first choice. May be an empty string.

        Raises:
            UpstreamTimeout: If the model did not answer in time.
            UpstreamUnexpectedError: On service errors or a malformed response
                (no choices, null content).
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Releases the underlying HTTP client, if any."""
        return None
