"""HTTP tests for the holiday calendar and the health check."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_for_year_and_state(async_client: AsyncClient, employee, login_as):
    login_as(employee)
    resp = await async_client.get("/api/v1/holidays", params={"year": 2024, "state": "by"})
    assert resp.status_code == 200
    names = [h["name"] for h in resp.json()]
    assert "Heilige Drei Könige" in names
    assert "Reformationstag" not in names
    new_year = resp.json()[0]
    assert new_year == {"date": "2024-01-01", "name": "Neujahr", "states": "all", "is_national_holiday": True}


@pytest.mark.asyncio
async def test_default_region_comes_from_settings(async_client: AsyncClient, employee, login_as):
    login_as(employee)
    resp = await async_client.get("/api/v1/holidays", params={"year": 2024})
    assert any(h["name"] == "Fronleichnam" for h in resp.json())


@pytest.mark.asyncio
async def test_unknown_state_is_rejected(async_client: AsyncClient, employee, login_as):
    login_as(employee)
    resp = await async_client.get("/api/v1/holidays", params={"year": 2024, "state": "XX"})
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_upcoming(async_client: AsyncClient, employee, login_as):
    login_as(employee)
    resp = await async_client.get("/api/v1/holidays/upcoming", params={"days": 366})
    assert resp.status_code == 200
    dates = [h["date"] for h in resp.json()]
    assert dates == sorted(dates)
    assert len(dates) >= 9


@pytest.mark.asyncio
async def test_bridge_days(async_client: AsyncClient, employee, login_as):
    login_as(employee)
    resp = await async_client.get("/api/v1/holidays/bridge-days", params={"year": 2024, "state": "BY"})
    assert resp.status_code == 200
    bridge = next(b for b in resp.json() if b["date"] == "2024-05-10")
    assert bridge["position"] == "after"
    assert bridge["saving_days"] == 2
    assert bridge["holiday"]["name"] == "Christi Himmelfahrt"
    assert bridge["reason"] == "Brückentag nach Feiertag (Christi Himmelfahrt, 09.05.2024)"


@pytest.mark.asyncio
async def test_suggestions_respect_available_days(async_client: AsyncClient, employee, login_as):
    login_as(employee)
    resp = await async_client.get(
        "/api/v1/holidays/suggestions", params={"year": 2024, "state": "BY", "available_days": 2}
    )
    assert resp.status_code == 200
    assert len(resp.json()) == 2
    assert all(s["total_days"] == 1 for s in resp.json())


@pytest.mark.asyncio
async def test_check_day(async_client: AsyncClient, employee, login_as):
    login_as(employee)
    resp = await async_client.get("/api/v1/holidays/check", params={"day": "2024-01-06", "state": "BY"})
    assert resp.json()["is_holiday"] is True
    assert resp.json()["is_weekend"] is True
    assert resp.json()["holiday"]["name"] == "Heilige Drei Könige"

    resp = await async_client.get("/api/v1/holidays/check", params={"day": "2024-01-06", "state": "NW"})
    assert resp.json()["is_holiday"] is False
    assert resp.json()["holiday"] is None


@pytest.mark.asyncio
async def test_holidays_require_login(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/holidays")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["db"] is True
    assert resp.json()["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_next_holiday(async_client: AsyncClient, employee, login_as):
    login_as(employee)
    resp = await async_client.get("/api/v1/holidays/next", params={"state": "BY"})
    assert resp.status_code == 200
    body = resp.json()
    assert 0 <= body["days_until"] < 366
    expected = date.today() + timedelta(days=body["days_until"])
    assert body["holiday"]["date"] == expected.isoformat()
