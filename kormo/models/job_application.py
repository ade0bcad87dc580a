"""Worker application to a task. Needs an existing analysis; one per (worker, task); never updated."""
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from kormo.database import Base
from kormo.utils.clock import utcnow


class JobApplication(Base):
    __tablename__ = "job_applications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    worker_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id"), nullable=False, index=True)
    analysis_id = Column(String(36), ForeignKey("analyses.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    analysis = relationship("Analysis", lazy="joined")
    worker = relationship("Profile", lazy="joined")

    __table_args__ = (UniqueConstraint("worker_id", "task_id", name="uq_job_applications_worker_task"),)
