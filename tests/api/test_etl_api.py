# tests/api/test_etl_api.py
from __future__ import annotations

import httpx
import pytest
from sqlalchemy.exc import OperationalError

from tests._problem import as_problem

pytestmark = pytest.mark.asyncio


async def test_sync_partial_failure_is_207(client: httpx.AsyncClient, seeded):
    r = await client.post("/etl/sync", json={})
    assert r.status_code == 207, r.text
    data = r.json()

    assert data["summary"]["total_jobs"] == 4
    assert data["summary"]["successful_jobs"] == 3
    assert data["summary"]["failed_jobs"] == 1
    assert data["summary"]["total_processed"] == 8
    failed = [x for x in data["results"] if not x["success"]]
    assert [x["source_table"] for x in failed] == ["rituals_th_orders"]


async def test_sync_single_brand_is_200_without_body(client: httpx.AsyncClient, seeded):
    r = await client.post("/etl/sync")
    assert r.status_code == 207

    r = await client.post("/etl/sync", json={"brand": "vs", "country": "my", "force": True})
    assert r.status_code == 200, r.text
    (res,) = r.json()["results"]
    assert res["target_table"] == "orders_vs_my"
    assert res["summary"]["skipped"] is False
    assert res["summary"]["summary_records"] == 8


async def test_sync_rejects_bad_body(client: httpx.AsyncClient, seeded):
    r = await client.post("/etl/sync", json={"force": "definitely"})
    assert r.status_code == 422
    p = as_problem(r.json())
    assert p["error_code"] == "request_validation_error"
    assert any(d["path"].endswith("force") for d in p["details"])


async def test_generate_summary(client: httpx.AsyncClient, seeded):
    await client.post("/etl/sync", json={"brand": "vs"})

    r = await client.post("/etl/generate-summary", json={"brand": "vs"})
    assert r.status_code == 200
    data = r.json()
    assert data["summary"]["skipped_tables"] == 1

    r = await client.post("/etl/generate-summary", json={"brand": "vs", "force": True})
    assert r.status_code == 200
    assert r.json()["summary"]["total_summary_records"] == 8


async def test_cleanup_preview_then_execute(client: httpx.AsyncClient, seeded):
    await client.post("/etl/sync", json={})

    r = await client.get("/etl/cleanup")
    assert r.status_code == 200
    assert r.json() == {
        "orphaned_records": [],
        "total_orphaned": 0,
        "cleanup_performed": False,
        "deleted_records": 0,
        "post_cleanup_integrity": None,
        "recommendations": None,
    }

    r = await client.post("/etl/cleanup")
    assert r.status_code == 200
    data = r.json()
    assert data["cleanup_performed"] is False
    assert data["post_cleanup_integrity"]["anomalies"] == 1
    assert data["recommendations"]


async def test_status_validate_discover(client: httpx.AsyncClient, seeded):
    r = await client.get("/etl/discover")
    assert r.status_code == 200
    assert {d["target_table"] for d in r.json()} == {
        "orders_bbw_sg",
        "orders_rituals_my",
        "orders_rituals_th",
        "orders_vs_my",
    }

    r = await client.post("/etl/discover", params={"create_missing": "true"})
    assert r.status_code == 200
    assert all(d["target_exists"] for d in r.json())

    r = await client.get("/etl/status")
    assert r.status_code == 200
    status = r.json()
    assert status["checked_at"].startswith("2025-07-02T12:00")
    assert {t["table"] for t in status["tables"]} >= {"orders_vs_my", "orders_rituals_th"}

    r = await client.get("/etl/validate")
    assert r.status_code == 200
    assert "summary" in r.json()


async def test_generate_summary_connection_failure_is_503(client: httpx.AsyncClient, seeded, monkeypatch):
    await client.post("/etl/sync", json={"brand": "vs"})

    async def _lost(*args, **kw):
        raise OperationalError("SELECT", {}, ConnectionError("connection reset by peer"))

    monkeypatch.setattr("sla_tracker.services.daily_summary_service.fetch_orders", _lost)

    r = await client.post("/etl/generate-summary", json={"brand": "vs", "force": True})
    assert r.status_code == 503, r.text
    p = as_problem(r.json())
    assert p["error_code"] == "database_unavailable"
    assert p["context"]["store"] == "analytics"
