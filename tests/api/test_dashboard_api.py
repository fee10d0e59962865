# tests/api/test_dashboard_api.py
from __future__ import annotations

import httpx
import pytest

from tests._problem import as_problem

pytestmark = pytest.mark.asyncio


async def test_healthz_and_metrics(client: httpx.AsyncClient):
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}

    r = await client.get("/metrics")
    assert r.status_code == 200
    assert "sla_etl_rows_upserted" in r.text


async def test_live_dashboard(client: httpx.AsyncClient, seeded):
    await client.post("/etl/sync", json={})

    r = await client.get("/dashboard/live", params={"brand": "vs"})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["kpis"]["placed_orders"] == 6
    assert data["kpis"]["completion_rate"] == 33.33
    assert [s["stage"] for s in data["stage_breakdown"]] == ["Not Processed", "Processed", "Shipped", "Delivered"]


async def test_summary_dashboard(client: httpx.AsyncClient, seeded):
    await client.post("/etl/sync", json={})

    r = await client.get("/dashboard/summary", params={"brand": "vs", "country": "MY"})
    assert r.status_code == 200, r.text
    assert r.json()["kpis"]["total_orders"] == 8

    r = await client.get("/dashboard/summary", params={"from_date": "2025-07-03", "to_date": "2025-07-01"})
    assert r.status_code == 422
    assert as_problem(r.json())["error_code"] == "invalid_date_range"


async def test_health_filters_configs(client: httpx.AsyncClient, seeded):
    await client.post("/etl/sync", json={})

    r = await client.get("/dashboard/health", params={"brand": "vs", "days": 3})
    assert r.status_code == 200
    assert r.json()["window"] == {"from": "2025-06-30", "to": "2025-07-02", "days": 3}
    # 06-30 只有 Processed
    assert r.json()["status"] == "warning"
    assert r.json()["missing_days"] == []

    r = await client.get("/dashboard/health", params={"days": 0})
    assert r.status_code == 422

    r = await client.get("/dashboard/filters")
    assert r.status_code == 200
    assert [b["code"] for b in r.json()["brands"]] == ["bbw", "vs"]

    r = await client.get("/dashboard/tat-configs")
    assert r.status_code == 200
    assert r.json()[0]["processed_tat"] == "2 h"
