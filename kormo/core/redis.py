"""
Redis connection for the analysis cache hot tier. Redis is optional: with redis_url unset,
or while the server is unreachable, callers get None and the analysis_cache table serves alone.
A failed connect is not retried for RECONNECT_COOLDOWN_SECONDS so a dead Redis costs
one ping per cooldown instead of one per request.
"""
import logging
import time
from typing import Any

from kormo.config import get_settings
from kormo.services.redis_analysis_cache import RedisAnalysisCache

logger = logging.getLogger(__name__)

RECONNECT_COOLDOWN_SECONDS = 30

_client: Any = None
_next_attempt_at = 0.0


def _redacted(url: str) -> str:
    return url.split("@")[-1]


async def get_redis_client() -> Any:
    """Shared async client, or None when disabled or in cooldown after a failed connect."""
    global _client, _next_attempt_at
    if _client is not None:
        return _client
    url = (get_settings().redis_url or "").strip()
    if not url or time.monotonic() < _next_attempt_at:
        return None
    from redis.asyncio import Redis
    from redis.exceptions import RedisError

    client = Redis.from_url(url, decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        _next_attempt_at = time.monotonic() + RECONNECT_COOLDOWN_SECONDS
        logger.warning(
            "Redis at %s unreachable, analysis cache uses the database for %ss: %s",
            _redacted(url), RECONNECT_COOLDOWN_SECONDS, e,
        )
        await client.aclose()
        return None
    _client = client
    logger.info("Redis analysis cache connected: %s", _redacted(url))
    return _client


async def get_analysis_redis_cache() -> RedisAnalysisCache | None:
    """FastAPI dependency: Redis tier for AnalysisCacheService, None when unavailable."""
    client = await get_redis_client()
    return RedisAnalysisCache(client) if client is not None else None


async def redis_status() -> str:
    """'ok', 'unavailable' (disabled or cooling down) or 'error' (connected but ping failed)."""
    client = await get_redis_client()
    if client is None:
        return "unavailable"
    from redis.exceptions import RedisError

    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning("Redis health ping failed: %s", e)
        return "error"
    return "ok"


async def close_redis() -> None:
    """Close the shared client on shutdown and forget any cooldown."""
    global _client, _next_attempt_at
    _next_attempt_at = 0.0
    if _client is None:
        return
    try:
        await _client.aclose()
    except Exception as e:
        logger.warning("Redis close error: %s", e)
    _client = None
