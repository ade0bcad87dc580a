from datetime import datetime
from pydantic import BaseModel, Field
from kormo.schemas.analysis import AnalysisOut


class ApplyForJobRequest(BaseModel):
    task_id: str = Field(..., alias="taskId", min_length=1, max_length=36)

    class Config:
        populate_by_name = True


class ApplyForJobData(BaseModel):
    application_id: str = Field(..., alias="applicationId")
    task_id: str = Field(..., alias="taskId")
    message: str = "Application submitted successfully! The employer can now see your analysis."

    class Config:
        populate_by_name = True


class ApplyForJobResponse(BaseModel):
    data: ApplyForJobData


class ApplicationOut(BaseModel):
    id: str
    task_id: str
    worker_id: str
    created_at: datetime
    analysis: AnalysisOut

    class Config:
        from_attributes = True


class ApplicantOut(ApplicationOut):
    """Application as seen by the company that owns the task."""
    worker_name: str
    worker_email: str


class ApplicationListResponse(BaseModel):
    data: list[ApplicationOut]


class ApplicantListResponse(BaseModel):
    data: list[ApplicantOut]
