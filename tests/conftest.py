from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kormo.config import get_settings
from kormo.database import Base, get_db
from kormo.main import app
from kormo.models import Profile, ProfileRole, Task
from kormo.utils.clock import utcnow


def create_access_token(profile_id: str, email: str, expires_minutes: int = 60) -> str:
    """Token shaped like the identity provider's: HS256, sub = profile id."""
    settings = get_settings()
    payload = {
        "sub": profile_id,
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
        "type": "access",
    }
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_profile(db: Session) -> Callable[..., Profile]:
    counter = {"n": 0}

    def _make(role: ProfileRole = ProfileRole.WORKER, premium: bool = False, **fields) -> Profile:
        counter["n"] += 1
        profile = Profile(
            email=fields.pop("email", f"user{counter['n']}@example.com"),
            role=role.value,
            **fields,
        )
        if premium:
            profile.subscription_plan = "monthly"
            profile.subscription_status = "active"
            profile.subscription_expires_on = utcnow() + timedelta(days=30)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make


@pytest.fixture
def make_task(db: Session, make_profile) -> Callable[..., Task]:
    def _make(company: Profile | None = None, **fields) -> Task:
        company = company or make_profile(role=ProfileRole.COMPANY, first_name="Acme")
        task = Task(
            company_id=company.id,
            title=fields.pop("title", "Backend Engineer"),
            required_skills=fields.pop("required_skills", "python, fastapi, postgres"),
            experience_level=fields.pop("experience_level", "Intermediate"),
            **fields,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    return _make


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    def _headers(profile: Profile, expires_minutes: int = 60) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(profile.id, profile.email, expires_minutes)}"}

    return _headers

