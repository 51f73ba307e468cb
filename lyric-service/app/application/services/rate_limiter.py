# lyric-service/app/application/services/rate_limiter.py
import math
import time
import structlog
from typing import Callable

from app.application.ports.rate_limit_store_port import RateLimitStorePort, RateLimitWindow
from app.core.metrics import RATE_LIMIT_DECISIONS_TOTAL
from app.domain.exceptions import RateLimitExceeded

log = structlog.get_logger(__name__)

HOURLY_WINDOW = RateLimitWindow(name="hourly", limit=5, window_ms=60 * 60 * 1000)
DAILY_WINDOW = RateLimitWindow(name="daily", limit=75, window_ms=24 * 60 * 60 * 1000)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def retry_after_seconds(reset_at_epoch_ms: int, now_ms: int) -> int:
    """Whole seconds until the window frees a slot, rounded up."""
    return math.ceil((reset_at_epoch_ms - now_ms) / 1000)


class RateLimiter:
    """
    Hourly and daily sliding windows over the shared store.

    Callers check the hourly window first and stop at the first denial, so a
    request refused by the hourly window never consumes daily budget. Store
    failures propagate unchanged: the limiter fails closed.
    """

    def __init__(
        self,
        store: RateLimitStorePort,
        hourly: RateLimitWindow = HOURLY_WINDOW,
        daily: RateLimitWindow = DAILY_WINDOW,
        clock: Callable[[], int] = _epoch_ms,
    ):
        self.store = store
        self.hourly = hourly
        self.daily = daily
        self._clock = clock

    async def check_window(self, identity: str, window: RateLimitWindow) -> None:
        """
        Checks a single window.

        Raises:
            RateLimitExceeded: If the window denies the request.
        """
        decision = await self.store.limit(identity, window)
        now_ms = self._clock()

        # A reset time at or before now means the window has already expired.
        if not decision.allowed and decision.reset_at_epoch_ms > now_ms:
            retry_after = retry_after_seconds(decision.reset_at_epoch_ms, now_ms)
            RATE_LIMIT_DECISIONS_TOTAL.labels(window=window.name, result="denied").inc()
            log.warning("Rate limit exceeded", identity=identity, window=window.name, retry_after=retry_after)
            raise RateLimitExceeded(window=window.name, retry_after=retry_after)

        RATE_LIMIT_DECISIONS_TOTAL.labels(window=window.name, result="allowed").inc()
