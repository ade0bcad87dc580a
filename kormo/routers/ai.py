"""
AI endpoints:
- POST /api/analyze-suitability: worker/task fit score (tiered quota; cached 24h; upserted)
- POST /api/analyze-cv: extract profile fields from a CV and fill the profile (tiered quota)
- POST /api/find-best-matches: job search keywords + level for the caller's profile (tiered quota)
- GET /api/analyses/{task_id}: caller's stored analysis for a task
- GET /api/health: liveness + Redis status (optional)
"""
import base64
import binascii
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kormo.auth import get_current_user, get_current_worker
from kormo.core.redis import get_analysis_redis_cache, redis_status
from kormo.database import get_db
from kormo.errors import ApiError
from kormo.models.profile import Profile
from kormo.models.task import Task
from kormo.repositories.analysis_repository import AnalysisRepository, get_analysis
from kormo.schemas.analysis import (
    AnalysisEnvelope,
    AnalysisOut,
    AnalyzeSuitabilityRequest,
    AnalyzeSuitabilityResponse,
)
from kormo.schemas.cv import AnalyzeCvData, AnalyzeCvRequest, AnalyzeCvResponse, ProfileOut
from kormo.schemas.matches import FindBestMatchesResponse
from kormo.services.ai_service import generate_cv_extraction, generate_match_suggestion, generate_suitability
from kormo.services.analysis_cache import AnalysisCacheService
from kormo.services.errors import AIQuotaExhaustedError, AIResponseError, AIServiceError
from kormo.services.quota import QuotaFeature, QuotaStore, denial_message
from kormo.services.response_parser import ParseResult, parse_analysis, parse_cv_extraction, parse_match_suggestion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai"])

ALLOWED_CV_EXTENSIONS = {".txt", ".pdf"}
MAX_CV_BYTES = 10 * 1024 * 1024  # 10 MB


# ---------- Dependencies: Redis (optional) + AnalysisCacheService (Cache-Aside) ----------


def _get_analysis_service_dep(
    redis_cache=Depends(get_analysis_redis_cache),
) -> AnalysisCacheService:
    """AnalysisCacheService with optional Redis tier. analyses table is source of truth."""
    return AnalysisCacheService(redis_cache=redis_cache, repository=AnalysisRepository())


# ---------- Shared helpers ----------


def _consume_quota(db: Session, profile_id: str, tier, feature: QuotaFeature) -> None:
    """Raise 429 with Retry-After when the caller's window is full."""
    decision = QuotaStore(db).try_consume(profile_id, tier, feature)
    if not decision.allowed:
        raise ApiError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "RATE_LIMIT_EXCEEDED",
            denial_message(decision, tier),
            headers={"Retry-After": str(decision.retry_after_seconds)},
        )


def _upstream_error(error: AIServiceError, code: str) -> ApiError:
    if isinstance(error, AIQuotaExhaustedError):
        return ApiError(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "QUOTA_EXHAUSTED",
            "AI service is temporarily unavailable due to high usage. Please try again in a few minutes.",
        )
    if isinstance(error, AIResponseError):
        return ApiError(
            status.HTTP_502_BAD_GATEWAY,
            code,
            "The AI service returned an unexpected response. Please try again.",
        )
    return ApiError(
        status.HTTP_502_BAD_GATEWAY,
        code,
        "AI service temporarily unavailable. Please try again later.",
    )


def _persistence_error(db: Session, what: str) -> ApiError:
    db.rollback()
    return ApiError(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "PERSISTENCE_FAILED",
        f"Could not save the {what}. Please try again.",
    )


# ---------- Health (Redis optional) ----------


@router.get("/health")
async def health():
    """Health check: Redis status (optional). DB not checked here."""
    return {"status": "ok", "redis": await redis_status()}


# ---------- Suitability ----------


@router.post("/analyze-suitability", response_model=AnalyzeSuitabilityResponse)
async def analyze_suitability(
    body: AnalyzeSuitabilityRequest,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_worker),
    analysis_service: AnalysisCacheService = Depends(_get_analysis_service_dep),
):
    """
    Score how well the submitted profile fits a public task (worker accounts only).
    Served from cache when the same profile prefixes were analyzed for the task in the last 24h
    (no quota used). Either way the caller's analysis row is created or overwritten.
    """
    task = db.query(Task).filter(Task.id == body.task_id, Task.is_public.is_(True)).first()
    if not task:
        raise ApiError(status.HTTP_404_NOT_FOUND, "TASK_NOT_FOUND", "Task not found or not available.")

    user_id = user.id
    tier = user.tier

    def compute() -> ParseResult:
        _consume_quota(db, user_id, tier, QuotaFeature.SUITABILITY)
        raw = generate_suitability(body.profile, task)
        parsed = parse_analysis(raw)
        if parsed.is_fallback:
            logger.warning("Suitability reply for task %s was unusable; returning fallback analysis", task.id)
        return parsed

    try:
        result, cached = await analysis_service.get_or_compute(db, body.profile, body.task_id, compute)
    except AIServiceError as e:
        logger.exception("AI suitability analysis failed")
        raise _upstream_error(e, "ANALYSIS_FAILED") from e

    try:
        await analysis_service.save(db, user_id, body.task_id, result)
    except SQLAlchemyError as e:
        logger.exception("Storing analysis failed")
        raise _persistence_error(db, "analysis") from e

    return AnalyzeSuitabilityResponse(data=result, cached=cached)


@router.get("/analyses/{task_id}", response_model=AnalysisEnvelope)
def get_my_analysis(
    task_id: str,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Caller's stored analysis for a task (what an employer sees after the caller applies)."""
    analysis = get_analysis(db, user.id, task_id)
    if not analysis:
        raise ApiError(status.HTTP_404_NOT_FOUND, "ANALYSIS_NOT_FOUND", "No analysis found for this job.")
    return AnalysisEnvelope(data=AnalysisOut.model_validate(analysis))


# ---------- CV ----------


def _decode_cv(encoded: str) -> bytes:
    # Accept data URLs ("data:application/pdf;base64,....") as sent by browsers
    if encoded.startswith("data:") and "base64," in encoded:
        encoded = encoded.split("base64,", 1)[1]
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            "cvFile must be base64-encoded.",
        ) from e


@router.post("/analyze-cv", response_model=AnalyzeCvResponse)
def analyze_cv(
    body: AnalyzeCvRequest,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Extract name, skills, experience, education and phone from a CV; fill the caller's profile."""
    extension = Path(body.filename).suffix.lower()
    if extension not in ALLOWED_CV_EXTENSIONS:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "UNSUPPORTED_FILE_TYPE",
            "CV must be a .pdf or .txt file.",
        )
    file_bytes = _decode_cv(body.cv_file)
    if not file_bytes:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", "CV file is empty.")
    if len(file_bytes) > MAX_CV_BYTES:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "FILE_TOO_LARGE", "CV too large (max 10 MB).")

    _consume_quota(db, user.id, user.tier, QuotaFeature.CV_ANALYSIS)

    try:
        extracted = parse_cv_extraction(generate_cv_extraction(body.filename, file_bytes))
    except AIServiceError as e:
        logger.exception("AI CV analysis failed")
        raise _upstream_error(e, "CV_ANALYSIS_FAILED") from e

    # Only overwrite fields the model actually found
    for field, value in extracted.model_dump().items():
        if value:
            setattr(user, field, value)
    try:
        db.commit()
    except SQLAlchemyError as e:
        logger.exception("Updating profile from CV failed")
        raise _persistence_error(db, "profile") from e
    db.refresh(user)

    return AnalyzeCvResponse(
        data=AnalyzeCvData(extracted_data=extracted, profile=ProfileOut.model_validate(user)),
    )


# ---------- Find best matches ----------


@router.post("/find-best-matches", response_model=FindBestMatchesResponse)
def find_best_matches(
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Suggest 1-3 job search keywords and a job level from the caller's stored profile."""
    if not user.has_career_details:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "INCOMPLETE_PROFILE",
            "Please complete your profile with skills, experience, or education before using Find Best Matches.",
        )

    _consume_quota(db, user.id, user.tier, QuotaFeature.FIND_MATCHES)

    try:
        suggestion = parse_match_suggestion(generate_match_suggestion(user))
    except AIServiceError as e:
        logger.exception("AI find best matches failed")
        raise _upstream_error(e, "FIND_MATCHES_FAILED") from e

    return FindBestMatchesResponse(data=suggestion)
