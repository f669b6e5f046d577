from __future__ import annotations

from collections.abc import Generator
from uuid import uuid4

import pytest

from app.core.session import Session


@pytest.fixture(autouse=True)
def _hermetic_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests independent of the shell's environment."""

    monkeypatch.delenv("REQUIRE_AUTH", raising=False)
    monkeypatch.delenv("NODE_APP_INSTANCE", raising=False)


@pytest.fixture()
def client_and_redis():
    """FastAPI TestClient with the auth store pointed at fakeredis."""

    import fakeredis
    from fastapi.testclient import TestClient

    from app.api.deps import get_redis
    from app.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()


@pytest.fixture()
def client(client_and_redis):
    c, _ = client_and_redis
    return c


@pytest.fixture()
def room_name() -> str:
    # The hub is a process-wide singleton; a fresh room per test keeps them apart.
    return f"room-{uuid4().hex[:8]}"


@pytest.fixture()
def session() -> Session:
    s = Session(room_id="test-room")
    s.on_create({})
    return s
