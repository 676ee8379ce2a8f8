"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from doubles import FakeClock, MemoryStore
from met_tracker.config import Settings, get_settings
from met_tracker.models import Sample
from met_tracker.storage.database import Base
from met_tracker.storage.repository import ActivityRepository


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(acquisition_source="push", battery_source="fixed", battery_fixed_level=100)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 10, 9, 0, 0))


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_samples() -> Callable[..., list[Sample]]:
    """Build ``count`` samples spaced for ``rate_hz`` with a constant reading."""

    def _make(
        count: int,
        rate_hz: float = 50.0,
        *,
        start_ms: int = 0,
        xyz: tuple[float, float, float] = (0.0, 0.0, 9.8),
    ) -> list[Sample]:
        step = 1000.0 / rate_hz
        return [
            Sample(timestamp=start_ms + round(i * step), x=xyz[0], y=xyz[1], z=xyz[2])
            for i in range(count)
        ]

    return _make


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def repo(session_factory) -> ActivityRepository:
    return ActivityRepository(session_factory)
