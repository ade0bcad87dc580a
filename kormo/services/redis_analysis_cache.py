"""
Redis hot tier for suitability results. Cache-Aside: the analysis_cache table stays the
cache of record and analyses stays authoritative; Redis only saves a DB round trip.
All Redis errors are handled internally; never raise to caller. System works if Redis is down.
Key: analysis:{cache_key}: JSON AnalysisResult, TTL = analysis cache TTL.
"""
import logging
from typing import Any

from pydantic import ValidationError

from kormo.config import get_settings
from kormo.schemas.analysis import AnalysisResult

logger = logging.getLogger(__name__)

ANALYSIS_KEY_PREFIX = "analysis:"


def _key(cache_key: str) -> str:
    return f"{ANALYSIS_KEY_PREFIX}{cache_key}"


class RedisAnalysisCache:
    """Async Redis cache for AnalysisResult values. Methods log and return None / no-op on failure."""

    def __init__(self, redis_client: Any, ttl_seconds: int | None = None):
        self._redis = redis_client
        self._ttl = ttl_seconds or get_settings().analysis_cache_ttl_seconds

    async def get(self, cache_key: str) -> AnalysisResult | None:
        if not self._redis:
            return None
        try:
            raw = await self._redis.get(_key(cache_key))
        except Exception as e:
            logger.warning("Redis analysis cache get failed for %s: %s", cache_key, e, exc_info=False)
            return None
        if not raw:
            return None
        try:
            return AnalysisResult.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed Redis analysis cache entry %s", cache_key)
            return None

    async def set(self, cache_key: str, result: AnalysisResult) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(_key(cache_key), result.model_dump_json(), ex=self._ttl)
        except Exception as e:
            logger.warning("Redis analysis cache set failed for %s: %s", cache_key, e, exc_info=False)
