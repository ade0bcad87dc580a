from datetime import datetime
from pydantic import BaseModel, Field


# ---- Suitability analysis ----

class ProfileSnapshot(BaseModel):
    """Career fields sent by the client; also the signature the analysis cache key is derived from."""
    skills: str | None = None
    experience: str | None = None
    education: str | None = None


class AnalyzeSuitabilityRequest(BaseModel):
    task_id: str = Field(..., alias="taskId", min_length=1, max_length=36)
    profile: ProfileSnapshot

    class Config:
        populate_by_name = True


class AnalysisResult(BaseModel):
    score: float = Field(..., ge=0.0, le=1.0)
    strengths: list[str]
    weaknesses: list[str]
    suggestions: list[str]


class AnalyzeSuitabilityResponse(BaseModel):
    data: AnalysisResult
    cached: bool = False


# ---- Persisted analysis (GET) ----

class AnalysisOut(BaseModel):
    id: str
    worker_id: str
    task_id: str
    score: float
    strengths: list[str]
    weaknesses: list[str]
    suggestions: list[str]
    updated_at: datetime

    class Config:
        from_attributes = True


class AnalysisEnvelope(BaseModel):
    data: AnalysisOut
