"""Redis-backed rate limiting dependency with an in-process fallback."""

import asyncio
import logging
import time
from collections.abc import Callable

from fastapi import Request

from powernaija.core.errors import TooManyRequestsError

logger = logging.getLogger(__name__)

_local_counters: dict[str, tuple[int, float]] = {}
_local_lock = asyncio.Lock()


def client_identifier(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return f"ip:{real_ip}"
    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return "ip:unknown"


async def consume_local_quota(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    async with _local_lock:
        for expired in [k for k, (_, reset) in _local_counters.items() if now >= reset]:
            del _local_counters[expired]
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        count += 1
        _local_counters[key] = (count, reset_at)
        return count <= limit


async def _consume_redis_quota(redis_client, key: str, limit: int, window_seconds: int) -> bool:
    current = await redis_client.incr(key)
    if current == 1:
        await redis_client.expire(key, window_seconds)
    return current <= limit


def rate_limit(prefix: str, message: str | None = None) -> Callable:
    """Return a FastAPI dependency enforcing the ``RATE_LIMIT_<PREFIX>`` quota.

    Limit and window are read from the app settings at request time.
    """
    setting = prefix.upper()

    async def _dependency(request: Request) -> None:
        settings = request.app.state.settings
        if not settings.RATE_LIMIT_ENABLED:
            return

        limit = getattr(settings, f"RATE_LIMIT_{setting}")
        window_seconds = getattr(settings, f"RATE_LIMIT_{setting}_WINDOW_SECONDS")
        key = f"powernaija:rate:{prefix}:{client_identifier(request)}"

        redis_client = getattr(request.app.state, "redis", None)
        try:
            if redis_client is None:
                raise ConnectionError("Redis not configured")
            allowed = await _consume_redis_quota(redis_client, key, limit, window_seconds)
        except Exception as e:
            logger.debug("Rate limit falling back to local counter: %s", e)
            allowed = await consume_local_quota(key, limit, window_seconds)

        if not allowed:
            logger.warning("Rate limit exceeded for %s", key)
            raise TooManyRequestsError(
                message, headers={"Retry-After": str(window_seconds)}
            )

    return _dependency


general_rate_limit = rate_limit("general")
auth_rate_limit = rate_limit("auth", "Too many authentication attempts, please try again later.")
payment_rate_limit = rate_limit("payment", "Too many payment requests, please try again later.")
chat_rate_limit = rate_limit("chat", "Too many chat messages, please slow down.")
