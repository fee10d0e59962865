# tests/services/test_etl_sync.py
from __future__ import annotations

import asyncio
from datetime import datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from sla_tracker.core.errors import DatabaseUnavailableError
from sla_tracker.models.order_table import ORDER_COLUMNS, build_order_table
from sla_tracker.services.daily_summary_service import DailySummaryService
from sla_tracker.services.etl_sync_service import EtlSyncService
from sla_tracker.services.etl_sync_types import CancelToken
from sla_tracker.services.table_registry import SourceTable, TableRegistry
from tests.factories import FIXED_NOW

pytestmark = pytest.mark.asyncio


async def _row(dbs, table_name: str, order_no: str):
    t = build_order_table(table_name)
    async with dbs.analytics.connect() as conn:
        return (await conn.execute(t.select().where(t.c.order_no == order_no))).mappings().one()


async def _count(dbs, table_name: str) -> int:
    t = build_order_table(table_name)
    async with dbs.analytics.connect() as conn:
        return int((await conn.execute(select(func.count()).select_from(t))).scalar_one())


async def test_sync_all_tables_isolates_failures(seeded, settings):
    """四张源表：三张成功（含空表），缺订单号列的一张失败，其它不受影响。"""
    report = await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW)

    assert [r.source_table for r in report.results] == [
        "bbw_sg_orders",
        "rituals_my_orders",
        "rituals_th_orders",
        "victoriasecret_my_orders",
    ]
    assert report.total_jobs == 4
    assert report.successful_jobs == 3
    assert report.failed_jobs == 1
    assert report.total_processed == 8
    assert report.has_failures
    assert not report.timed_out and not report.cancelled

    by_name = {r.source_table: r for r in report.results}
    bad = by_name["rituals_th_orders"]
    assert not bad.success
    assert "order_no" in (bad.error or "")

    empty = by_name["rituals_my_orders"]
    assert empty.success and empty.processed == 0
    assert empty.summary is not None and empty.summary["skipped"] is True

    vs = by_name["victoriasecret_my_orders"]
    assert vs.processed == 7
    assert vs.target_table == "orders_vs_my"
    assert vs.summary["records_processed"] == 6
    assert vs.summary["summary_records"] == 8

    assert await _count(seeded, "orders_vs_my") == 7
    assert await _count(seeded, "orders_bbw_sg") == 1


async def test_sync_normalizes_rows_and_joins_payments(seeded, settings):
    await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW)

    row = await _row(seeded, "orders_vs_my", "VS-1001")
    assert row["brand_code"] == "vs"
    assert row["brand_name"] == "Victoria's Secret"
    assert row["country_code"] == "MY"
    assert row["placed_time"] == datetime(2025, 6, 30, 6, 50)
    assert row["processed_tat"] == "9 m"
    assert row["shipped_tat"] == "23 h, 10 m"
    assert row["delivered_tat"] == "1 d, 23 h, 10 m"
    assert row["card_type"] == "VISA"
    assert row["transactionid"] == "TX-1"
    assert float(row["amount"]) == pytest.approx(129.90)
    assert row["updated_at"] == FIXED_NOW.replace(tzinfo=None)

    # 无支付记录的订单补列为空
    other = await _row(seeded, "orders_vs_my", "VS-1002")
    assert other["card_type"] is None
    assert other["processed_tat"] is None


async def test_sync_is_idempotent(seeded, settings):
    svc = EtlSyncService(seeded, settings)
    first = await svc.run_sync(now=FIXED_NOW)
    second = await svc.run_sync(now=FIXED_NOW)

    assert first.total_processed == second.total_processed == 8
    assert await _count(seeded, "orders_vs_my") == 7

    # 汇总已存在且未 force：第二次跳过
    vs = [r for r in second.results if r.source_table == "victoriasecret_my_orders"][0]
    assert vs.summary["skipped"] is True


async def test_sync_filters_by_brand_and_country(seeded, settings):
    svc = EtlSyncService(seeded, settings)

    report = await svc.run_sync(brand="VS", now=FIXED_NOW)
    assert [r.source_table for r in report.results] == ["victoriasecret_my_orders"]
    assert not report.has_failures

    report = await svc.run_sync(brand="Bath & Body Works", country="sg", now=FIXED_NOW)
    assert [r.target_table for r in report.results] == ["orders_bbw_sg"]


async def test_sync_with_cancelled_token_reports_unfinished_tables(seeded, settings):
    token = CancelToken()
    token.cancel("operator stop")

    report = await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW, cancel_token=token)

    assert report.cancelled is True
    assert report.total_jobs == 4
    assert report.successful_jobs == 0
    assert {r.error for r in report.results} == {"operator stop"}


async def test_sync_table_returns_cancelled_result(seeded, settings):
    token = CancelToken()
    token.cancel()
    src = SourceTable(
        name="victoriasecret_my_orders",
        brand_part="victoriasecret",
        brand_code="vs",
        country_code="MY",
    )
    result = await EtlSyncService(seeded, settings).sync_table(src, now=FIXED_NOW, token=token)
    assert result.success is False
    assert result.error == "cancelled"
    assert result.processed == 0


async def test_upsert_skips_bad_rows_and_keeps_the_rest(dbs, settings):
    svc = EtlSyncService(dbs, settings)
    target = build_order_table("orders_vs_my")
    await svc._ensure_target(target)
    src = SourceTable(name="victoriasecret_my_orders", brand_part="victoriasecret", brand_code="vs", country_code="MY")

    def rec(order_no, **kw):
        r = {c: None for c in ORDER_COLUMNS}
        r.update(order_no=order_no, brand_code="vs", country_code="MY", **kw)
        return r

    records = [
        rec("A-1", order_status="NEW"),
        rec("A-2", order_status={"not": "bindable"}),
        rec("A-3", order_status="NEW"),
    ]
    ok, failed = await svc._upsert_records(target, records, src, CancelToken())

    assert (ok, failed) == (2, 1)
    assert await _count(dbs, "orders_vs_my") == 2


async def test_discover_lists_sources_and_creates_targets(seeded, settings):
    svc = EtlSyncService(seeded, settings)

    items = await svc.discover()
    by_src = {i["source_table"]: i for i in items}
    assert set(by_src) == {
        "bbw_sg_orders",
        "rituals_my_orders",
        "rituals_th_orders",
        "victoriasecret_my_orders",
    }
    assert "audit_log" not in by_src
    assert by_src["victoriasecret_my_orders"]["payments_table"] == "victoriasecret_my_payments"
    assert by_src["victoriasecret_my_orders"]["shipments_table"] is None
    assert not any(i["target_exists"] for i in items)

    items = await svc.discover(create_missing=True)
    assert all(i["target_exists"] for i in items)

    registry = await TableRegistry.discover(seeded.analytics)
    assert registry.get("rituals", "th") is not None
    assert len(registry) == 4


async def _never_finishes(self, tenant, **kw):
    await asyncio.sleep(30)


async def test_timeout_during_summary_keeps_synced_counts(seeded, settings, monkeypatch):
    """汇总阶段超时：本表的行已写入，同步结果保持成功，汇总记为 timeout。"""
    monkeypatch.setattr(DailySummaryService, "generate_for_table", _never_finishes)
    short = settings.model_copy(update={"JOB_TIMEOUT_SEC": 1.0})

    report = await EtlSyncService(seeded, short).run_sync(brand="bbw", now=FIXED_NOW)

    assert report.timed_out is True
    assert report.cancelled is False
    (bbw,) = report.results
    assert bbw.success is True
    assert bbw.processed == 1
    assert bbw.error is None
    assert bbw.summary == {"error": "timeout"}
    assert report.failed_jobs == 0
    assert await _count(seeded, "orders_bbw_sg") == 1


async def test_timeout_reports_unstarted_tables_as_failed(seeded, settings, monkeypatch):
    monkeypatch.setattr(DailySummaryService, "generate_for_table", _never_finishes)
    short = settings.model_copy(update={"JOB_TIMEOUT_SEC": 1.0})

    report = await EtlSyncService(seeded, short).run_sync(now=FIXED_NOW)
    data = report.to_dict()

    assert data["summary"]["timed_out"] is True
    assert data["summary"]["total_jobs"] == 4
    assert data["summary"]["successful_jobs"] == 1
    assert data["summary"]["failed_jobs"] == 3
    assert data["summary"]["total_processed"] == 1

    first, *rest = report.results
    assert first.source_table == "bbw_sg_orders"
    assert first.success and first.processed == 1
    assert [r.source_table for r in rest] == [
        "rituals_my_orders",
        "rituals_th_orders",
        "victoriasecret_my_orders",
    ]
    assert all(not r.success and r.processed == 0 and r.error == "timeout" for r in rest)


async def test_connection_failure_aborts_whole_sync(seeded, settings, monkeypatch):
    async def _lost(self, target):
        raise OperationalError("CREATE TABLE", {}, ConnectionError("server closed the connection"))

    monkeypatch.setattr(EtlSyncService, "_ensure_target", _lost)

    with pytest.raises(DatabaseUnavailableError) as ei:
        await EtlSyncService(seeded, settings).run_sync(now=FIXED_NOW)
    assert ei.value.store == "analytics"
    assert "server closed the connection" in str(ei.value)
