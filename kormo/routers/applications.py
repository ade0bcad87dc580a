"""
Job applications: a worker applies with the analysis already stored for the task;
the company that owns the task sees applicants ranked by that analysis.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kormo.auth import get_current_company, get_current_worker
from kormo.database import get_db
from kormo.errors import ApiError
from kormo.models.profile import Profile
from kormo.models.task import Task
from kormo.repositories import application_repository
from kormo.repositories.analysis_repository import get_analysis
from kormo.repositories.application_repository import DuplicateApplicationError
from kormo.schemas.analysis import AnalysisOut
from kormo.schemas.application import (
    ApplicantListResponse,
    ApplicantOut,
    ApplicationListResponse,
    ApplicationOut,
    ApplyForJobData,
    ApplyForJobRequest,
    ApplyForJobResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["applications"])


@router.post("/apply-for-job", response_model=ApplyForJobResponse)
def apply_for_job(
    body: ApplyForJobRequest,
    db: Session = Depends(get_db),
    worker: Profile = Depends(get_current_worker),
):
    """
    Apply for a public task. Requires an analysis for (worker, task); one application per pair.
    Nothing is written when a check fails.
    """
    task = application_repository.get_public_task(db, body.task_id)
    if not task:
        raise ApiError(
            status.HTTP_404_NOT_FOUND,
            "TASK_NOT_FOUND",
            "Task not found or not available for applications.",
        )

    analysis = get_analysis(db, worker.id, task.id)
    if not analysis:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "ANALYSIS_REQUIRED",
            "No analysis found for this job. Please analyze the job first.",
        )

    try:
        application = application_repository.create_application(db, worker.id, task.id, analysis.id)
    except DuplicateApplicationError as e:
        raise ApiError(
            status.HTTP_409_CONFLICT,
            "ALREADY_APPLIED",
            "You have already applied for this job.",
        ) from e
    except SQLAlchemyError as e:
        logger.exception("Creating job application failed")
        db.rollback()
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "PERSISTENCE_FAILED",
            "Could not save the application. Please try again.",
        ) from e

    logger.info("Worker %s applied to task %s", worker.id, task.id)
    return ApplyForJobResponse(
        data=ApplyForJobData(application_id=application.id, task_id=task.id),
    )


@router.get("/applications", response_model=ApplicationListResponse)
def list_my_applications(
    db: Session = Depends(get_db),
    worker: Profile = Depends(get_current_worker),
):
    """Caller's applications, newest first, each with the analysis it was submitted with."""
    rows = application_repository.list_for_worker(db, worker.id)
    return ApplicationListResponse(data=[ApplicationOut.model_validate(a) for a in rows])


@router.get("/tasks/{task_id}/applications", response_model=ApplicantListResponse)
def list_task_applicants(
    task_id: str,
    db: Session = Depends(get_db),
    company: Profile = Depends(get_current_company),
):
    """Applicants for a task owned by the calling company, highest score first."""
    task = db.query(Task).filter(Task.id == task_id, Task.company_id == company.id).first()
    if not task:
        raise ApiError(status.HTTP_404_NOT_FOUND, "TASK_NOT_FOUND", "Task not found.")
    rows = application_repository.list_for_task(db, task.id)
    return ApplicantListResponse(
        data=[
            ApplicantOut(
                id=a.id,
                task_id=a.task_id,
                worker_id=a.worker_id,
                created_at=a.created_at,
                analysis=AnalysisOut.model_validate(a.analysis),
                worker_name=f"{a.worker.first_name} {a.worker.last_name}".strip() or a.worker.email,
                worker_email=a.worker.email,
            )
            for a in rows
        ]
    )
