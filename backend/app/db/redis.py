"""Redis client for one-time verification codes.

Codes are short-lived and re-requestable, so the client fails fast: a bounded
socket timeout per command and a few connect attempts at startup.
"""

import redis.asyncio as redis
import structlog
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import get_settings

logger = structlog.get_logger(__name__)

_redis: redis.Redis | None = None


async def init_redis(url: str | None = None) -> None:
    """Connect and ping, retrying while Redis is still coming up."""
    global _redis

    if _redis is not None:
        return

    settings = get_settings()
    client = redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout_seconds,
        socket_connect_timeout=settings.redis_socket_timeout_seconds,
        health_check_interval=settings.redis_health_check_interval_seconds,
    )

    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
            stop=stop_after_attempt(settings.redis_connect_attempts),
            wait=wait_exponential(multiplier=0.5, max=5),
            before_sleep=lambda state: logger.warning(
                "redis_connect_retry",
                attempt=state.attempt_number,
                error=str(state.outcome.exception()),
            ),
            reraise=True,
        ):
            with attempt:
                await client.ping()
    except Exception:
        await client.aclose()
        raise

    _redis = client


async def close_redis() -> None:
    global _redis

    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> redis.Redis:
    """Return the shared Redis client.

    Raises RuntimeError if init_redis() has not been called.
    """
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


async def ping_redis() -> bool:
    """True when the shared client answers PING; never raises."""
    try:
        return bool(await get_redis().ping())
    except (RuntimeError, redis.RedisError) as exc:
        logger.error("redis_ping_failed", error=str(exc))
        return False
