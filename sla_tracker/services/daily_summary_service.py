# sla_tracker/services/daily_summary_service.py
"""
每日 SLA 汇总：按 日期 × 品牌 × 国家 × 阶段 统计。

口径为“历史口径”：订单到达某阶段（processed / shipped / delivered）时的
已实现 TAT 与该阶段目标比较，日期取到达该阶段的日期，不看 now。

整表重建：先删该品牌国家全部汇总，再插入（同一事务），重复执行结果一致。
库连接故障（OperationalError / InterfaceError）使整个生成失败，其它 SQL 错误只记为该表失败。
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sla_tracker.core.config import AppSettings
from sla_tracker.core.errors import DatabaseUnavailableError
from sla_tracker.db.session import Databases
from sla_tracker.domain.sla import CROSSING_STAGES, OrderTimeline, SlaStatus, Stage, TatPolicy, classify_stage_crossing
from sla_tracker.metrics import SUMMARY_ROWS
from sla_tracker.models.sla_daily_summary import SlaDailySummary
from sla_tracker.services.order_source import fetch_orders
from sla_tracker.services.table_registry import TableRegistry, TenantTable
from sla_tracker.services.tat_config_store import TatConfigIndex

logger = logging.getLogger("sla_tracker.summary")

_TIMELINE_COLUMNS = (
    "order_no",
    "placed_time",
    "processed_time",
    "shipped_time",
    "delivered_time",
    "processed_tat",
    "shipped_tat",
    "delivered_tat",
)


@dataclass
class SummaryResult:
    brand: str
    country: str
    table: str
    success: bool = False
    skipped: bool = False
    records_processed: int = 0
    summary_records: int = 0
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "brand": self.brand,
            "country": self.country,
            "table": self.table,
            "success": self.success,
            "skipped": self.skipped,
            "records_processed": self.records_processed,
            "summary_records": self.summary_records,
        }
        if self.message:
            out["message"] = self.message
        if self.error:
            out["error"] = self.error
        return out


@dataclass
class _Bucket:
    total: int = 0
    on_time: int = 0
    on_risk: int = 0
    breached: int = 0
    delay_sec_sum: int = 0

    def add(self, status: SlaStatus, delay_sec: int) -> None:
        self.total += 1
        if status is SlaStatus.ON_TIME:
            self.on_time += 1
        elif status is SlaStatus.AT_RISK:
            self.on_risk += 1
        elif status is SlaStatus.BREACHED:
            self.breached += 1
            self.delay_sec_sum += delay_sec

    @property
    def avg_delay_sec(self) -> int:
        return round(self.delay_sec_sum / self.breached) if self.breached else 0


def aggregate_stage_crossings(
    rows: List[Any],
    policy: Optional[TatPolicy],
) -> Dict[Tuple[date, Stage], _Bucket]:
    """
    每个订单对其已到达的每个阶段各贡献一次。
    无配置 / 无法得出已实现 TAT 的订单只计入 total（Unknown）。
    """
    buckets: Dict[Tuple[date, Stage], _Bucket] = defaultdict(_Bucket)
    for row in rows:
        tl = OrderTimeline.from_row(row)
        for st in CROSSING_STAGES:
            reached = tl.reached_at(st)
            if reached is None:
                continue
            status, delay_sec = classify_stage_crossing(st, tl, policy)
            buckets[(reached.date(), st)].add(status, delay_sec)
    return dict(buckets)


async def count_existing(session: AsyncSession, brand_code: str, country_code: str) -> int:
    stmt = select(func.count()).select_from(SlaDailySummary).where(
        SlaDailySummary.brand_code == brand_code,
        SlaDailySummary.country_code == country_code,
    )
    return int((await session.execute(stmt)).scalar_one() or 0)


class DailySummaryService:
    def __init__(self, dbs: Databases, settings: AppSettings) -> None:
        self.dbs = dbs
        self.settings = settings

    async def generate(
        self,
        *,
        brand: Optional[str] = None,
        country: Optional[str] = None,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or datetime.now(UTC)
        await self.dbs.ensure_reachable()
        registry = await TableRegistry.discover(self.dbs.analytics)
        tenants = registry.select(brand, country)

        results: List[SummaryResult] = []
        timed_out = False
        try:
            async with asyncio.timeout(self.settings.JOB_TIMEOUT_SEC):
                for tenant in tenants:
                    results.append(await self.generate_for_table(tenant, force=force, now=now))
        except TimeoutError:
            timed_out = True
            logger.error("SUMMARY_TIMEOUT after %.0fs", self.settings.JOB_TIMEOUT_SEC)
            done = {r.table for r in results}
            for tenant in tenants:
                if tenant.name not in done:
                    results.append(
                        SummaryResult(tenant.brand_code, tenant.country_code, tenant.name, error="timeout")
                    )

        ok = sum(1 for r in results if r.success)
        return {
            "results": [r.to_dict() for r in results],
            "summary": {
                "total_tables_processed": len(results),
                "successful_generations": ok,
                "failed_generations": len(results) - ok,
                "skipped_tables": sum(1 for r in results if r.skipped),
                "total_records_processed": sum(r.records_processed for r in results),
                "total_summary_records": sum(r.summary_records for r in results),
                "timed_out": timed_out,
            },
        }

    async def generate_for_table(
        self,
        tenant: TenantTable,
        *,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> SummaryResult:
        now = now or datetime.now(UTC)
        res = SummaryResult(tenant.brand_code, tenant.country_code, tenant.name)
        try:
            async with self.dbs.analytics_session() as session:
                existing = await count_existing(session, tenant.brand_code, tenant.country_code)
                if existing and not force:
                    res.success = True
                    res.skipped = True
                    res.message = f"{existing} summary rows already exist; use force to regenerate"
                    return res

                configs = await TatConfigIndex.load(session)
                policy = configs.policy_for(tenant.brand_code, tenant.country_code)
                if policy is None:
                    logger.warning("SUMMARY_NO_TAT_CONFIG %s: all stages counted as Unknown", tenant.name)

                rows = await fetch_orders(
                    session,
                    tenant,
                    confirmed_marker=self.settings.CONFIRMED_MARKER,
                    columns=_TIMELINE_COLUMNS,
                )
                res.records_processed = len(rows)
                buckets = aggregate_stage_crossings(rows, policy)

                await session.execute(
                    delete(SlaDailySummary).where(
                        SlaDailySummary.brand_code == tenant.brand_code,
                        SlaDailySummary.country_code == tenant.country_code,
                    )
                )
                if buckets:
                    await session.execute(
                        insert(SlaDailySummary),
                        [
                            {
                                "summary_date": day,
                                "brand_code": tenant.brand_code,
                                "country_code": tenant.country_code,
                                "stage": stage.value,
                                "brand_name": tenant.brand_name,
                                "orders_total": b.total,
                                "orders_on_time": b.on_time,
                                "orders_on_risk": b.on_risk,
                                "orders_breached": b.breached,
                                "avg_delay_sec": b.avg_delay_sec,
                                "refreshed_at": now,
                            }
                            for (day, stage), b in sorted(buckets.items())
                        ],
                    )
                await session.commit()

            res.success = True
            res.summary_records = len(buckets)
            if not rows:
                res.skipped = True
                res.message = "no confirmed orders in table"
            SUMMARY_ROWS.labels(brand=tenant.brand_code, country=tenant.country_code).inc(len(buckets))
            logger.info(
                "SUMMARY_DONE %s orders=%d rows=%d force=%s",
                tenant.name,
                res.records_processed,
                res.summary_records,
                force,
            )
        except (OperationalError, InterfaceError) as e:
            logger.error("SUMMARY_DB_UNAVAILABLE %s err=%s", tenant.name, e)
            raise DatabaseUnavailableError("analytics", str(e)) from e
        except SQLAlchemyError as e:
            res.error = f"{type(e).__name__}: {e}"
            logger.exception("SUMMARY_FAILED %s", tenant.name)
        return res
