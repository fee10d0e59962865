# sla_tracker/services/integrity_service.py
"""
数据完整性：孤儿汇总清理 / 一致性校验 / ETL 状态。

孤儿汇总 = sla_daily_summary 中 (brand, country) 已无对应 orders_<brand>_<cc> 表的行
（源表被删除或改名后遗留的过期聚合）。
"""
from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sla_tracker.db.session import Databases
from sla_tracker.metrics import CLEANUP_DELETED
from sla_tracker.models.order_table import order_table_name
from sla_tracker.models.sla_daily_summary import SlaDailySummary
from sla_tracker.services.table_registry import TableRegistry
from sla_tracker.services.tat_config_store import TatConfigIndex

logger = logging.getLogger("sla_tracker.integrity")


def _expected_table(brand_code: str, country_code: str) -> Optional[str]:
    try:
        return order_table_name(brand_code, country_code)
    except ValueError:
        return None


async def summary_groups(session: AsyncSession) -> List[Dict[str, Any]]:
    """汇总表中出现过的 (brand_code, country_code) 及行数。"""
    stmt = (
        select(
            SlaDailySummary.brand_code,
            SlaDailySummary.country_code,
            func.max(SlaDailySummary.brand_name).label("brand_name"),
            func.count().label("record_count"),
        )
        .group_by(SlaDailySummary.brand_code, SlaDailySummary.country_code)
        .order_by(SlaDailySummary.brand_code, SlaDailySummary.country_code)
    )
    return [dict(r) for r in (await session.execute(stmt)).mappings().all()]


async def find_orphans(session: AsyncSession, registry: TableRegistry) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for g in await summary_groups(session):
        if registry.get(g["brand_code"], g["country_code"]) is not None:
            continue
        out.append(
            {
                "brand_name": g["brand_name"],
                "brand_code": g["brand_code"],
                "country_code": g["country_code"],
                "missing_table": _expected_table(g["brand_code"], g["country_code"]),
                "record_count": int(g["record_count"]),
                "reason": "order table not found",
            }
        )
    return out


def find_anomalies(rows: List[Any]) -> List[Dict[str, Any]]:
    """
    汇总行异常：
    - zero_orders      : orders_total = 0
    - bucket_overflow  : 任一桶 > total
    - bucket_mismatch  : on_time + on_risk + breached != total
    """
    out: List[Dict[str, Any]] = []
    for r in rows:
        total = int(r["orders_total"] or 0)
        on_time = int(r["orders_on_time"] or 0)
        on_risk = int(r["orders_on_risk"] or 0)
        breached = int(r["orders_breached"] or 0)

        kinds: List[str] = []
        if total == 0:
            kinds.append("zero_orders")
        if max(on_time, on_risk, breached) > total:
            kinds.append("bucket_overflow")
        if on_time + on_risk + breached != total:
            kinds.append("bucket_mismatch")
        if not kinds:
            continue
        out.append(
            {
                "summary_date": r["summary_date"].isoformat() if r["summary_date"] else None,
                "brand_code": r["brand_code"],
                "country_code": r["country_code"],
                "stage": r["stage"],
                "orders_total": total,
                "bucket_sum": on_time + on_risk + breached,
                "issues": kinds,
            }
        )
    return out


class IntegrityService:
    def __init__(self, dbs: Databases) -> None:
        self.dbs = dbs

    async def validate(self) -> Dict[str, Any]:
        registry = await TableRegistry.discover(self.dbs.analytics)
        async with self.dbs.analytics_session() as session:
            return await self._validate(session, registry)

    async def _validate(self, session: AsyncSession, registry: TableRegistry) -> Dict[str, Any]:
        configs = await TatConfigIndex.load(session)
        groups = await summary_groups(session)
        orphans = await find_orphans(session, registry)

        tat_issues = [
            {
                "brand_name": g["brand_name"],
                "brand_code": g["brand_code"],
                "country_code": g["country_code"],
                "issue": "missing tat_config",
            }
            for g in groups
            if configs.row_for(g["brand_code"], g["country_code"]) is None
        ]
        # 有订单表但无 TAT 配置：分类会整体退化为 Unknown
        for t in registry:
            if configs.row_for(t.brand_code, t.country_code) is None and not any(
                i["brand_code"] == t.brand_code and i["country_code"] == t.country_code for i in tat_issues
            ):
                tat_issues.append(
                    {
                        "brand_name": t.brand_name,
                        "brand_code": t.brand_code,
                        "country_code": t.country_code,
                        "issue": "missing tat_config",
                    }
                )

        missing_tables = sorted({o["missing_table"] or f"{o['brand_code']}/{o['country_code']}" for o in orphans})

        rows = (await session.execute(select(SlaDailySummary))).scalars().all()
        anomalies = find_anomalies(
            [
                {
                    "summary_date": r.summary_date,
                    "brand_code": r.brand_code,
                    "country_code": r.country_code,
                    "stage": r.stage,
                    "orders_total": r.orders_total,
                    "orders_on_time": r.orders_on_time,
                    "orders_on_risk": r.orders_on_risk,
                    "orders_breached": r.orders_breached,
                }
                for r in rows
            ]
        )

        return {
            "tat_config_issues": tat_issues,
            "orphaned_summary_data": orphans,
            "missing_order_tables": missing_tables,
            "summary_anomalies": anomalies,
            "summary": {
                "total_issues": len(tat_issues) + len(orphans) + len(anomalies),
                "tat_issues": len(tat_issues),
                "orphaned_records": sum(o["record_count"] for o in orphans),
                "missing_tables": len(missing_tables),
                "anomalies": len(anomalies),
            },
        }

    async def cleanup_orphans(self, *, dry_run: bool = False) -> Dict[str, Any]:
        """删除孤儿汇总；dry_run=True 只出报告。"""
        await self.dbs.ensure_reachable()
        registry = await TableRegistry.discover(self.dbs.analytics)
        async with self.dbs.analytics_session() as session:
            orphans = await find_orphans(session, registry)
            deleted = 0
            if orphans and not dry_run:
                for o in orphans:
                    res = await session.execute(
                        delete(SlaDailySummary).where(
                            and_(
                                SlaDailySummary.brand_code == o["brand_code"],
                                SlaDailySummary.country_code == o["country_code"],
                            )
                        )
                    )
                    deleted += int(res.rowcount or 0)
                    logger.info(
                        "CLEANUP_ORPHAN brand=%s country=%s missing_table=%s rows=%d",
                        o["brand_code"],
                        o["country_code"],
                        o["missing_table"],
                        o["record_count"],
                    )
                await session.commit()
                CLEANUP_DELETED.inc(deleted)

        return {
            "orphaned_records": orphans,
            "total_orphaned": sum(o["record_count"] for o in orphans),
            "cleanup_performed": bool(orphans) and not dry_run,
            "deleted_records": deleted,
        }

    async def cleanup_with_report(self) -> Dict[str, Any]:
        result = await self.cleanup_orphans(dry_run=False)
        integrity = await self.validate()
        result["post_cleanup_integrity"] = integrity["summary"]
        result["recommendations"] = recommendations(result, integrity)
        return result

    async def etl_status(self, *, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(UTC)
        registry = await TableRegistry.discover(self.dbs.analytics)
        tables: List[Dict[str, Any]] = []
        async with self.dbs.analytics_session() as session:
            for t in registry:
                row = (
                    await session.execute(select(func.count(), func.max(t.table.c.updated_at)).select_from(t.table))
                ).one()
                tables.append(
                    {
                        "table": t.name,
                        "brand_code": t.brand_code,
                        "brand_name": t.brand_name,
                        "country_code": t.country_code,
                        "row_count": int(row[0] or 0),
                        "last_updated": row[1].isoformat() if row[1] else None,
                    }
                )
            summary_row = (
                await session.execute(select(func.count(), func.max(SlaDailySummary.refreshed_at)))
            ).one()
            integrity = await self._validate(session, registry)

        s = integrity["summary"]
        if s["orphaned_records"] or s["missing_tables"]:
            health = "critical"
        elif s["tat_issues"] or s["anomalies"]:
            health = "warning"
        else:
            health = "healthy"

        return {
            "checked_at": now.isoformat(),
            "health": health,
            "tables": tables,
            "summary_rows": int(summary_row[0] or 0),
            "last_summary_refresh": summary_row[1].isoformat() if summary_row[1] else None,
            "integrity": s,
        }


def recommendations(cleanup: Dict[str, Any], integrity: Dict[str, Any]) -> List[str]:
    s = integrity["summary"]
    out: List[str] = []
    if cleanup["cleanup_performed"]:
        out.append(f"Removed {cleanup['deleted_records']} orphaned summary rows.")
    if s["tat_issues"]:
        out.append(f"Add tat_config rows for {s['tat_issues']} brand/country combination(s); their orders classify as Unknown.")
    if s["anomalies"]:
        out.append(f"Regenerate summaries with force=true; {s['anomalies']} row(s) have inconsistent bucket counts.")
    if s["orphaned_records"]:
        out.append("Orphaned summaries remain; check that order tables were not dropped during cleanup.")
    if not out:
        out.append("No action needed.")
    return out
