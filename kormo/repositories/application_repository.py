"""
Job applications. The (worker_id, task_id) unique constraint is the duplicate guard;
an IntegrityError on insert means the worker already applied.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kormo.models.analysis import Analysis
from kormo.models.job_application import JobApplication
from kormo.models.task import Task


class DuplicateApplicationError(Exception):
    pass


def get_public_task(db: Session, task_id: str) -> Task | None:
    return db.query(Task).filter(Task.id == task_id, Task.is_public.is_(True)).first()


def create_application(db: Session, worker_id: str, task_id: str, analysis_id: str) -> JobApplication:
    application = JobApplication(worker_id=worker_id, task_id=task_id, analysis_id=analysis_id)
    db.add(application)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateApplicationError(f"{worker_id} already applied to {task_id}") from e
    db.refresh(application)
    return application


def list_for_worker(db: Session, worker_id: str) -> list[JobApplication]:
    return (
        db.query(JobApplication)
        .filter(JobApplication.worker_id == worker_id)
        .order_by(JobApplication.created_at.desc())
        .all()
    )


def list_for_task(db: Session, task_id: str) -> list[JobApplication]:
    """Applicants for a task, best analysis score first."""
    return (
        db.query(JobApplication)
        .join(Analysis, JobApplication.analysis_id == Analysis.id)
        .filter(JobApplication.task_id == task_id)
        .order_by(Analysis.score.desc(), JobApplication.created_at)
        .all()
    )
