"""
Suitability analysis orchestration: memoized compute + authoritative upsert.
- Key: task id + lowercased, whitespace-free prefixes of skills / experience / education.
- Lookup: Redis (optional) -> analysis_cache table (24h) -> compute().
- compute() is where quota is consumed, so cache hits never count against it.
- Fallback results (unusable model reply) are returned but never cached.
- Cache failures are logged and ignored; the analyses upsert is not.
"""
import asyncio
import logging
import re
from typing import Callable

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kormo.config import get_settings
from kormo.models.analysis import Analysis
from kormo.repositories.analysis_repository import AnalysisRepository
from kormo.schemas.analysis import AnalysisResult, ProfileSnapshot
from kormo.services.ai_service import PROFILE_FIELD_PREFIXES
from kormo.services.redis_analysis_cache import RedisAnalysisCache
from kormo.services.response_parser import ParseResult

logger = logging.getLogger(__name__)

MAX_CACHE_KEY_LENGTH = 160

_WHITESPACE = re.compile(r"\s+")


def derive_cache_key(signature: ProfileSnapshot, task_id: str) -> str:
    """Best-effort memoization key; profiles sharing the same prefixes share an entry."""
    parts = [
        (getattr(signature, field) or "")[:length]
        for field, length in PROFILE_FIELD_PREFIXES.items()
    ]
    profile_key = _WHITESPACE.sub("", "_".join(parts).lower())
    return f"analysis_{task_id}_{profile_key}"[:MAX_CACHE_KEY_LENGTH]


class AnalysisCacheService:
    """Cache-Aside over Redis + analysis_cache; analyses table is the source of truth."""

    def __init__(
        self,
        redis_cache: RedisAnalysisCache | None,
        repository: AnalysisRepository | None = None,
    ):
        self._cache = redis_cache
        self._repo = repository or AnalysisRepository()
        self._ttl = get_settings().analysis_cache_ttl_seconds

    async def get_or_compute(
        self,
        db: Session,
        signature: ProfileSnapshot,
        task_id: str,
        compute: Callable[[], ParseResult],
    ) -> tuple[AnalysisResult, bool]:
        """
        Returns (result, cached). compute() runs only on a miss and its exceptions propagate;
        a fallback ParseResult is passed through without being stored.
        """
        cache_key = derive_cache_key(signature, task_id)
        loop = asyncio.get_event_loop()

        if self._cache:
            hit = await self._cache.get(cache_key)
            if hit is not None:
                logger.info("Analysis cache hit (redis) for %s", cache_key)
                return hit, True

        hit = await loop.run_in_executor(None, lambda: self._read_db_cache(db, cache_key))
        if hit is not None:
            logger.info("Analysis cache hit (db) for %s", cache_key)
            if self._cache:
                await self._cache.set(cache_key, hit)
            return hit, True

        parsed = await loop.run_in_executor(None, compute)
        result = parsed.result
        if parsed.is_fallback:
            logger.info("Not caching fallback analysis for %s", cache_key)
            return result, False

        await loop.run_in_executor(None, lambda: self._write_db_cache(db, cache_key, result))
        if self._cache:
            await self._cache.set(cache_key, result)
        return result, False

    async def save(self, db: Session, worker_id: str, task_id: str, result: AnalysisResult) -> Analysis:
        """Insert-or-update the single analyses row for (worker, task). Raises SQLAlchemyError."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None,
            lambda: self._repo.upsert_analysis(db, worker_id, task_id, result),
        )

    def _read_db_cache(self, db: Session, cache_key: str) -> AnalysisResult | None:
        try:
            payload = self._repo.get_cached_result(db, cache_key, self._ttl)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Analysis cache read failed for %s: %s", cache_key, e, exc_info=False)
            return None
        if payload is None:
            return None
        try:
            return AnalysisResult.model_validate_json(payload)
        except ValidationError:
            logger.warning("Discarding malformed analysis cache entry %s", cache_key)
            return None

    def _write_db_cache(self, db: Session, cache_key: str, result: AnalysisResult) -> None:
        try:
            self._repo.store_cached_result(db, cache_key, result.model_dump_json())
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Analysis cache store failed for %s: %s", cache_key, e, exc_info=False)
