"""Authoritative AI suitability analysis: at most one row per (worker, task), overwritten on re-analysis."""
import uuid
from sqlalchemy import Column, String, Float, JSON, DateTime, ForeignKey, UniqueConstraint
from kormo.database import Base
from kormo.utils.clock import utcnow


class Analysis(Base):
    __tablename__ = "analyses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    worker_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id"), nullable=False, index=True)
    score = Column(Float, nullable=False)  # 0.0 - 1.0
    strengths = Column(JSON, nullable=False, default=list)
    weaknesses = Column(JSON, nullable=False, default=list)
    suggestions = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint("worker_id", "task_id", name="uq_analyses_worker_task"),)
