from __future__ import annotations

import asyncio
import os
from datetime import UTC, datetime, timedelta

import pytest

from custody.core.db import create_engine, create_schema

OWNER = "hospital-admin"


class TickingClock:
    """Deterministic clock: every call returns a time one second after the previous one."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def database_url(tmp_path) -> str:
    db_file = tmp_path / "test.sqlite3"
    return f"sqlite+aiosqlite:///{db_file}"


@pytest.fixture(autouse=True)
def _set_test_env(database_url: str) -> None:
    os.environ["DATABASE_URL"] = database_url
    os.environ["REGISTRY_OWNER"] = OWNER
    # Settings are cached via @lru_cache; clear so each test can use its own DB URL.
    from custody.core.settings import get_settings

    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _create_test_schema(database_url: str) -> None:
    async def run() -> None:
        engine = create_engine(database_url=database_url)
        await create_schema(engine=engine)
        await engine.dispose()

    asyncio.run(run())


@pytest.fixture
def client(clock: TickingClock):
    from fastapi.testclient import TestClient

    from custody.main import create_app

    app = create_app(clock=clock)
    with TestClient(app) as c:
        yield c
