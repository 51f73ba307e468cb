# File: lyric-service/app/infrastructure/rate_limit/redis_store_adapter.py
import time
import uuid
import structlog
from typing import Callable, Optional
import redis.asyncio as aioredis
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from app.application.ports.rate_limit_store_port import RateLimitStorePort, RateLimitWindow
from app.domain.exceptions import UpstreamConfigurationError, UpstreamTimeout, UpstreamUnexpectedError
from app.domain.models import RateLimitDecision

log = structlog.get_logger(__name__)

DEPENDENCY = "redis-rate-limit"

# Sliding log: one sorted-set member per admitted request, scored by its epoch ms.
# ARGV: now_ms, window_ms, limit, member. Returns {allowed (0|1), reset_at_epoch_ms}.
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
local allowed = 0
if count < limit then
    redis.call('ZADD', key, now, ARGV[4])
    allowed = 1
end
redis.call('PEXPIRE', key, window)

local reset = now + window
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
if oldest[2] then
    reset = tonumber(oldest[2]) + window
end
return {allowed, reset}
"""


def create_rate_limit_key(prefix: str, window: str, identity: str) -> str:
    """Builds the counter key, escaping characters that would break the key layout."""
    safe_identity = identity.replace(":", "_").replace(" ", "_")
    return f"{prefix}:{window}:{safe_identity}"


class RedisRateLimitStore(RateLimitStorePort):
    """
    Atomic sliding-window counters in Redis.

    Each check is a single Lua script invocation, so concurrent requests from one
    identity cannot both take the last slot. Keys expire after their window.
    """

    def __init__(
        self,
        redis_url: Optional[str],
        password: Optional[str] = None,
        prefix: str = "wwts",
        timeout_seconds: float = 3.0,
        client: Optional[aioredis.Redis] = None,
        clock: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        if client is None:
            if not redis_url:
                raise UpstreamConfigurationError(dependency=DEPENDENCY, setting="LYRIC_REDIS_URL")
            connection_kwargs = {
                "socket_timeout": timeout_seconds,
                "socket_connect_timeout": timeout_seconds,
                "decode_responses": True,
            }
            if password:
                connection_kwargs["password"] = password
            client = aioredis.from_url(redis_url, **connection_kwargs)
        self.client = client
        self.prefix = prefix
        self._clock = clock
        self._script = self.client.register_script(SLIDING_WINDOW_SCRIPT)
        log.info("RedisRateLimitStore initialized", prefix=prefix, timeout_seconds=timeout_seconds)

    async def limit(self, identity: str, window: RateLimitWindow) -> RateLimitDecision:
        now_ms = self._clock()
        key = create_rate_limit_key(self.prefix, window.name, identity)
        member = f"{now_ms}-{uuid.uuid4().hex}"

        try:
            allowed, reset_at = await self._script(
                keys=[key],
                args=[now_ms, window.window_ms, window.limit, member],
            )
        except RedisTimeoutError as e:
            log.error("Rate limit store timed out", key=key, error=str(e))
            raise UpstreamTimeout(f"Rate limit store timed out: {e}", dependency=DEPENDENCY) from e
        except RedisError as e:
            log.error("Rate limit store unavailable", key=key, error=str(e))
            raise UpstreamUnexpectedError(f"Rate limit store unavailable: {e}", dependency=DEPENDENCY) from e

        return RateLimitDecision(allowed=bool(int(allowed)), reset_at_epoch_ms=int(reset_at))

    async def close(self) -> None:
        await self.client.aclose()
        log.info("Redis rate limit client closed.")
