# lyric-service/app/application/ports/rate_limit_store_port.py
import abc
from dataclasses import dataclass

from app.domain.models import RateLimitDecision


@dataclass(frozen=True)
class RateLimitWindow:
    """A named sliding window: at most `limit` requests per `window_ms`."""
    name: str
    limit: int
    window_ms: int


class RateLimitStorePort(abc.ABC):
    """
    Interface (Port) for the shared counter store behind the rate limiter.
    """

    @abc.abstractmethod
    async def limit(self, identity: str, window: RateLimitWindow) -> RateLimitDecision:
        """
        Atomically checks the window for `identity` and records the request if allowed.

        Args:
            identity: The client identity (rate-limit bucket).
            window: The named window to check.

        Returns:
            The decision and the epoch-ms time at which the window frees a slot.

        Raises:
            UpstreamTimeout: If the store did not answer in time.
            UpstreamUnexpectedError: If the store is unreachable or errors.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Releases the underlying connection, if any."""
        return None
