"""Tests for the FastAPI server endpoints."""

from datetime import date, timedelta

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from met_tracker.api.server import app


@pytest.fixture
async def client(tmp_path, monkeypatch):
    """Async test client with lifespan (startup / shutdown) fully executed."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("ACQUISITION_SOURCE", "push")
    monkeypatch.setenv("TRACKING_AUTOSTART", "false")
    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c


def _samples(count: int, start_ms: int = 0) -> list[dict]:
    return [{"timestamp": start_ms + i * 20, "x": 0.0, "y": 0.0, "z": 9.8} for i in range(count)]


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "tracking": False}


@pytest.mark.asyncio
async def test_tracking_lifecycle(client: AsyncClient):
    resp = await client.get("/tracking/status")
    assert resp.status_code == 200
    assert resp.json()["running"] is False

    resp = await client.post("/samples", json={"samples": _samples(5)})
    assert resp.status_code == 409

    resp = await client.post("/tracking/start")
    assert resp.status_code == 200
    body = resp.json()
    assert body["running"] is True
    assert body["current_class"] == "Sedentary"
    assert body["sampling_period_us"] == 20_000

    resp = await client.post("/samples", json={"samples": _samples(60)})
    assert resp.status_code == 202
    assert resp.json() == {"received": 60, "accepted": 60}

    resp = await client.post("/tracking/stop")
    assert resp.status_code == 200
    assert resp.json()["flushed"] is True

    resp = await client.get("/health")
    assert resp.json()["tracking"] is False


@pytest.mark.asyncio
async def test_daily_summary_for_empty_day(client: AsyncClient):
    resp = await client.get("/summary/daily", params={"date": "2020-01-01"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["date"] == "2020-01-01"
    assert body["total_minutes"] == 0


@pytest.mark.asyncio
async def test_demo_seed_and_weekly_summary(client: AsyncClient):
    resp = await client.post("/demo/seed")
    assert resp.status_code == 201
    assert resp.json()["written"] == 21

    today = date.today()
    resp = await client.get(
        "/summary/weekly",
        params={"start": (today - timedelta(days=6)).isoformat(), "end": today.isoformat()},
    )
    assert resp.status_code == 200
    week = resp.json()
    assert len(week) == 7
    assert week[-1]["date"] == today.isoformat()
    assert week[-1]["total_minutes"] == 210

    resp = await client.get("/records", params={"since": today.isoformat()})
    assert len(resp.json()) == 3


@pytest.mark.asyncio
async def test_weekly_summary_rejects_inverted_range(client: AsyncClient):
    resp = await client.get("/summary/weekly", params={"start": "2026-03-10", "end": "2026-03-01"})
    assert resp.status_code == 422
