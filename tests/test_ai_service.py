from __future__ import annotations

from types import SimpleNamespace

import pytest
from google.genai import errors as genai_errors

from kormo.models import Task
from kormo.schemas.analysis import ProfileSnapshot
from kormo.services import ai_service
from kormo.services.errors import AIQuotaExhaustedError, AIServiceError


def _response(text: str):
    part = SimpleNamespace(text=text)
    candidate = SimpleNamespace(content=SimpleNamespace(parts=[part]))
    return SimpleNamespace(candidates=[candidate], text=text)


def _rate_limited() -> genai_errors.ClientError:
    return genai_errors.ClientError(
        429,
        {"error": {"code": 429, "message": "Resource has been exhausted", "status": "RESOURCE_EXHAUSTED"}},
    )


class FakeModels:
    def __init__(self, outcomes: list):
        self.outcomes = list(outcomes)
        self.requests: list[dict] = []

    def generate_content(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(ai_service.time, "sleep", recorded.append)
    return recorded


def _install(monkeypatch, outcomes: list) -> FakeModels:
    models = FakeModels(outcomes)
    monkeypatch.setattr(ai_service, "_get_client", lambda: SimpleNamespace(models=models))
    return models


def test_rate_limit_is_retried_with_backoff(monkeypatch, sleeps) -> None:
    models = _install(monkeypatch, [_rate_limited(), _rate_limited(), _response("Score: 0.9")])

    text = ai_service._generate("prompt", temperature=0.3, max_output_tokens=100)

    assert text == "Score: 0.9"
    assert sleeps == [2, 4]
    assert len(models.requests) == 3


def test_rate_limit_gives_up_after_four_attempts(monkeypatch, sleeps) -> None:
    models = _install(monkeypatch, [_rate_limited() for _ in range(4)])

    with pytest.raises(AIQuotaExhaustedError):
        ai_service._generate("prompt", temperature=0.3, max_output_tokens=100)

    assert sleeps == [2, 4, 8]
    assert len(models.requests) == 4


def test_other_api_errors_are_not_retried(monkeypatch, sleeps) -> None:
    server_error = genai_errors.ServerError(500, {"error": {"code": 500, "message": "internal", "status": "INTERNAL"}})
    models = _install(monkeypatch, [server_error])

    with pytest.raises(AIServiceError) as excinfo:
        ai_service._generate("prompt", temperature=0.3, max_output_tokens=100)

    assert not isinstance(excinfo.value, AIQuotaExhaustedError)
    assert sleeps == []
    assert len(models.requests) == 1


def test_empty_reply_is_an_error(monkeypatch, sleeps) -> None:
    _install(monkeypatch, [SimpleNamespace(candidates=[], text=None)])

    with pytest.raises(AIServiceError):
        ai_service._generate("prompt", temperature=0.3, max_output_tokens=100)


def test_suitability_prompt_only_carries_field_prefixes() -> None:
    profile = ProfileSnapshot(skills="S" * 80, experience="E" * 80, education=None)
    task = Task(title="Data Engineer", required_skills="R" * 80, experience_level="Senior")

    prompt = ai_service.build_suitability_prompt(profile, task)

    assert "S" * 50 in prompt and "S" * 51 not in prompt
    assert "E" * 30 in prompt and "E" * 31 not in prompt
    assert "R" * 50 in prompt and "R" * 51 not in prompt
    assert "JOB: Data Engineer" in prompt
    assert "Level: Senior" in prompt


def test_txt_cv_is_sent_as_text(monkeypatch, sleeps) -> None:
    models = _install(monkeypatch, [_response('{"first_name": "Nadia"}')])

    ai_service.generate_cv_extraction("cv.txt", "Nadia Islam, Dhaka".encode())

    contents = models.requests[0]["contents"]
    assert isinstance(contents, str)
    assert contents.endswith("Nadia Islam, Dhaka")


def test_missing_credentials_raise_service_error(monkeypatch) -> None:
    monkeypatch.setattr(ai_service, "_gemini_client", None)
    settings = SimpleNamespace(gemini_api_key="", vertex_project_id="")
    monkeypatch.setattr(ai_service, "get_settings", lambda: settings)

    with pytest.raises(AIServiceError):
        ai_service._get_client()
