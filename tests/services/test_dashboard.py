# tests/services/test_dashboard.py
from __future__ import annotations

from datetime import date, timedelta

import pytest

from sla_tracker.services.dashboard_service import DashboardService
from sla_tracker.services.etl_sync_service import EtlSyncService
from tests.factories import FIXED_NOW

pytestmark = pytest.mark.asyncio


async def test_summary_totals_from_daily_rows(seeded, settings):
    await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW)

    data = await DashboardService(seeded, settings).summary(brand="vs")

    assert data["kpis"] == {"total_orders": 8, "sla_breached": 1, "on_risk": 3, "completed": 2}
    stages = {s["stage"]: s for s in data["stage_breakdown"]}
    assert (stages["Processed"]["total"], stages["Processed"]["on_time"]) == (3, 3)
    assert stages["Shipped"]["on_risk"] == 3
    assert stages["Delivered"]["breached"] == 1
    assert stages["Delivered"]["avg_delay_hours"] == 26.0
    assert [c["stage"] for c in data["chart_data"]] == ["Processed", "Shipped", "Delivered"]


async def test_summary_brand_by_display_name_and_empty_window(seeded, settings):
    await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW)
    svc = DashboardService(seeded, settings)

    by_name = await svc.summary(brand="Victoria's Secret", country="my")
    assert by_name["kpis"]["total_orders"] == 8

    empty = await svc.summary(from_date=date(2024, 1, 1), to_date=date(2024, 1, 31))
    assert empty["kpis"]["total_orders"] == 0
    assert all(s["avg_delay_hours"] == 0.0 for s in empty["stage_breakdown"])


async def test_health_reports_gaps_and_freshness(seeded, settings):
    await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW)
    svc = DashboardService(seeded, settings)

    h = await svc.health(brand="vs", days=7, now=FIXED_NOW)
    assert h["window"] == {"from": "2025-06-26", "to": "2025-07-02", "days": 7}
    assert h["freshness"]["status"] == "healthy"
    assert h["missing_days"] == ["2025-06-27", "2025-06-28"]
    assert h["anomalies"] == []
    assert h["status"] == "warning"

    stale = await svc.health(brand="vs", days=7, now=FIXED_NOW + timedelta(hours=30))
    assert stale["freshness"]["status"] == "critical"

    # bbw 无 TAT 配置 → 桶不一致
    h_all = await svc.health(days=7, now=FIXED_NOW)
    assert h_all["status"] == "critical"
    assert h_all["anomalies"][0]["brand_code"] == "bbw"


async def test_health_without_summaries_is_critical(dbs, settings):
    h = await DashboardService(dbs, settings).health(now=FIXED_NOW)
    assert h["freshness"] == {"status": "critical", "last_refresh": None, "hours_stale": None}
    assert len(h["missing_days"]) == 7


async def test_filters_and_tat_configs(seeded, settings):
    svc = DashboardService(seeded, settings)
    await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW)

    f = await svc.filters()
    assert f["source"] == "summary"
    assert f["brands"] == [
        {"code": "bbw", "name": "Bath & Body Works"},
        {"code": "vs", "name": "Victoria's Secret"},
    ]
    assert [c["code"] for c in f["countries"]] == ["MY", "SG"]

    cfgs = await svc.tat_configs()
    assert len(cfgs) == 1
    assert cfgs[0]["brand_code"] == "vs"
    assert cfgs[0]["pending_processed_time"] == "12 h"


async def test_filters_fall_back_to_tables(seeded, settings):
    await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW, with_summary=False)
    f = await DashboardService(seeded, settings).filters()
    assert f["source"] == "tables"
    assert {b["code"] for b in f["brands"]} == {"bbw", "rituals", "vs"}
