from __future__ import annotations

import os
from pathlib import Path

import fakeredis
import pytest
import redis


@pytest.fixture(scope="session", autouse=True)
def _init_catalog_from_test_fixtures() -> None:
    """Initialize the producer catalog from `tests/assets` and forbid the fallback catalog.

    This keeps tests hermetic and prevents coupling to the repo's real configuration.
    """

    os.environ["CATCLICKER_STRICT_ASSETS"] = "1"

    from catclicker.catalog.singleton import init_catalog, reset_catalog_for_tests

    reset_catalog_for_tests()

    # Point the catalog loader at a fake project root: tests/ contains an assets/ dir.
    test_root = Path(__file__).resolve().parent
    init_catalog(project_root=test_root)


class ManualClock:
    """Clock dependency whose time only moves when a test says so."""

    def __init__(self, start_ms: int) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class BrokenRedis:
    """Stands in for a Redis server that cannot be reached."""

    def _fail(self, *args, **kwargs):  # type: ignore[no-untyped-def]
        raise redis.ConnectionError("connection refused")

    get = set = sadd = srem = delete = smembers = ping = _fail


class FlakyRedis(fakeredis.FakeRedis):
    """fakeredis whose next `get` times out once `fail_next_get` is set."""

    fail_next_get = False

    def get(self, name):  # type: ignore[no-untyped-def, override]
        if self.fail_next_get:
            self.fail_next_get = False
            raise redis.TimeoutError("read timed out")
        return super().get(name)


@pytest.fixture(autouse=True)
def _forget_recent_sessions():
    from catclicker.game_store import recent_sessions

    recent_sessions.clear()
    yield
    recent_sessions.clear()


@pytest.fixture()
def catalog():
    from catclicker.catalog.singleton import get_catalog

    return get_catalog()


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock(1_700_000_000_000)


@pytest.fixture()
def broken_redis() -> BrokenRedis:
    return BrokenRedis()


@pytest.fixture()
def client_and_redis(clock: ManualClock):
    """FastAPI TestClient wired to fakeredis and the manual clock."""

    from collections.abc import Generator

    import fakeredis
    from fastapi.testclient import TestClient

    from catclicker.api.deps import get_clock, get_redis
    from catclicker.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()


@pytest.fixture()
def flaky_redis() -> FlakyRedis:
    return FlakyRedis(decode_responses=True)
