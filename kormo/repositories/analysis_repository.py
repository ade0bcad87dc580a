"""
Analysis persistence. Writes are single INSERT ... ON CONFLICT DO UPDATE statements:
- analyses: one row per (worker_id, task_id), overwritten on re-analysis
- analysis_cache: one row per cache_key, created_at refreshed on store
"""
import uuid
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from kormo.database import dialect_insert
from kormo.models.analysis import Analysis
from kormo.models.analysis_cache import AnalysisCache
from kormo.schemas.analysis import AnalysisResult
from kormo.utils.clock import utcnow


def upsert_analysis(db: Session, worker_id: str, task_id: str, result: AnalysisResult) -> Analysis:
    now = utcnow()
    insert = dialect_insert(db)
    values = {
        "score": result.score,
        "strengths": list(result.strengths),
        "weaknesses": list(result.weaknesses),
        "suggestions": list(result.suggestions),
        "updated_at": now,
    }
    stmt = insert(Analysis).values(
        id=str(uuid.uuid4()),
        worker_id=worker_id,
        task_id=task_id,
        created_at=now,
        **values,
    )
    stmt = stmt.on_conflict_do_update(index_elements=["worker_id", "task_id"], set_=values)
    db.execute(stmt)
    db.commit()
    return get_analysis(db, worker_id, task_id)


def get_analysis(db: Session, worker_id: str, task_id: str) -> Analysis | None:
    return (
        db.query(Analysis)
        .filter(Analysis.worker_id == worker_id, Analysis.task_id == task_id)
        .populate_existing()
        .first()
    )


def get_cached_result(db: Session, cache_key: str, max_age_seconds: int, now: datetime | None = None) -> str | None:
    """Serialized AnalysisResult if an entry younger than max_age_seconds exists."""
    now = now or utcnow()
    row = (
        db.query(AnalysisCache.analysis_result)
        .filter(
            AnalysisCache.cache_key == cache_key,
            AnalysisCache.created_at >= now - timedelta(seconds=max_age_seconds),
        )
        .first()
    )
    return row.analysis_result if row else None


def store_cached_result(db: Session, cache_key: str, payload: str, now: datetime | None = None) -> None:
    now = now or utcnow()
    insert = dialect_insert(db)
    stmt = insert(AnalysisCache).values(
        id=str(uuid.uuid4()),
        cache_key=cache_key,
        analysis_result=payload,
        created_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["cache_key"],
        set_={"analysis_result": payload, "created_at": now},
    )
    db.execute(stmt)
    db.commit()


class AnalysisRepository:
    """Thin wrapper for dependency injection; delegates to module functions."""

    @staticmethod
    def upsert_analysis(db: Session, worker_id: str, task_id: str, result: AnalysisResult) -> Analysis:
        return upsert_analysis(db, worker_id, task_id, result)

    @staticmethod
    def get_cached_result(db: Session, cache_key: str, max_age_seconds: int) -> str | None:
        return get_cached_result(db, cache_key, max_age_seconds)

    @staticmethod
    def store_cached_result(db: Session, cache_key: str, payload: str) -> None:
        return store_cached_result(db, cache_key, payload)
