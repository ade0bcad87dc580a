from jose import JWTError, jwt
from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from kormo.config import get_settings
from kormo.database import get_db
from kormo.errors import ApiError
from kormo.models.profile import Profile, ProfileRole
from kormo.schemas.auth import TokenPayload

security = HTTPBearer(auto_error=False)

LOGIN_AGAIN_MESSAGE = "Please log in again to continue."


def decode_token(token: str) -> TokenPayload | None:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.jwt_audience or None,
            options={"verify_aud": bool(settings.jwt_audience)},
        )
        return TokenPayload(
            sub=payload["sub"],
            email=payload.get("email"),
            exp=payload["exp"],
        )
    except (JWTError, KeyError):
        return None


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    if not credentials:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "AUTHENTICATION_REQUIRED",
            LOGIN_AGAIN_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)

    if not payload:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "AUTHENTICATION_REQUIRED",
            LOGIN_AGAIN_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )

    profile = db.query(Profile).filter(Profile.id == payload.sub).first()

    if not profile:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "AUTHENTICATION_REQUIRED",
            "Profile not found. " + LOGIN_AGAIN_MESSAGE,
        )

    return profile


def get_current_worker(
    profile: Profile = Depends(get_current_user),
) -> Profile:
    """Profile must belong to a professional (worker)."""
    if profile.role != ProfileRole.WORKER.value:
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            "FORBIDDEN",
            "This feature is for professional accounts only.",
        )
    return profile


def get_current_company(
    profile: Profile = Depends(get_current_user),
) -> Profile:
    """Profile must belong to an employer (company)."""
    if profile.role != ProfileRole.COMPANY.value:
        raise ApiError(
            status.HTTP_403_FORBIDDEN,
            "FORBIDDEN",
            "This feature is for employer accounts only.",
        )
    return profile
