from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from kormo.core import redis as redis_connection
from kormo.services.redis_analysis_cache import RedisAnalysisCache


class FakeClient:
    created: list["FakeClient"] = []
    reachable = True

    def __init__(self, url: str):
        self.url = url
        self.closed = False
        FakeClient.created.append(self)

    @classmethod
    def from_url(cls, url: str, decode_responses: bool = False) -> "FakeClient":
        return cls(url)

    async def ping(self) -> bool:
        if not FakeClient.reachable:
            raise ConnectionError("connection refused")
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis(monkeypatch):
    FakeClient.created = []
    FakeClient.reachable = True
    monkeypatch.setattr("redis.asyncio.Redis", FakeClient)
    monkeypatch.setattr(redis_connection, "_client", None)
    monkeypatch.setattr(redis_connection, "_next_attempt_at", 0.0)
    monkeypatch.setattr(
        redis_connection,
        "get_settings",
        lambda: SimpleNamespace(redis_url="redis://:secret@cache:6379/0", analysis_cache_ttl_seconds=60),
    )
    return FakeClient


def test_disabled_when_no_url(monkeypatch) -> None:
    monkeypatch.setattr(redis_connection, "_client", None)
    monkeypatch.setattr(redis_connection, "get_settings", lambda: SimpleNamespace(redis_url=""))

    assert asyncio.run(redis_connection.get_redis_client()) is None
    assert asyncio.run(redis_connection.get_analysis_redis_cache()) is None
    assert asyncio.run(redis_connection.redis_status()) == "unavailable"


def test_client_is_shared(fake_redis) -> None:
    first = asyncio.run(redis_connection.get_redis_client())
    second = asyncio.run(redis_connection.get_redis_client())

    assert first is second
    assert len(fake_redis.created) == 1
    assert isinstance(asyncio.run(redis_connection.get_analysis_redis_cache()), RedisAnalysisCache)
    assert asyncio.run(redis_connection.redis_status()) == "ok"


def test_failed_connect_is_not_retried_during_cooldown(fake_redis) -> None:
    fake_redis.reachable = False

    assert asyncio.run(redis_connection.get_redis_client()) is None
    assert asyncio.run(redis_connection.get_redis_client()) is None
    assert len(fake_redis.created) == 1
    assert fake_redis.created[0].closed is True

    fake_redis.reachable = True
    redis_connection._next_attempt_at = 0.0
    assert asyncio.run(redis_connection.get_redis_client()) is not None
    assert len(fake_redis.created) == 2


def test_status_reports_ping_errors(fake_redis) -> None:
    asyncio.run(redis_connection.get_redis_client())
    fake_redis.reachable = False

    assert asyncio.run(redis_connection.redis_status()) == "error"


def test_close_resets_the_client(fake_redis) -> None:
    client = asyncio.run(redis_connection.get_redis_client())

    asyncio.run(redis_connection.close_redis())

    assert client.closed is True
    assert redis_connection._client is None


def test_health_endpoint_without_redis(client) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "redis": "unavailable"}
