# sla_tracker/services/dashboard_service.py
"""
基于 sla_daily_summary 的历史看板：汇总 KPI / 健康检查 / 过滤项。
"""
from __future__ import annotations

from collections import defaultdict
from datetime import UTC, date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sla_tracker.core.catalog import brand_name_for, country_name_for
from sla_tracker.core.config import AppSettings
from sla_tracker.db.session import Databases
from sla_tracker.domain.sla import CROSSING_STAGES
from sla_tracker.domain.sla.tat import as_utc
from sla_tracker.models.sla_daily_summary import SlaDailySummary
from sla_tracker.models.tat_config import TatConfig
from sla_tracker.services.integrity_service import find_anomalies
from sla_tracker.services.table_registry import TableRegistry


def _summary_filters(stmt, brand: Optional[str], country: Optional[str], from_date: Optional[date], to_date: Optional[date]):
    if brand:
        b = brand.strip().lower()
        stmt = stmt.where(
            (func.lower(SlaDailySummary.brand_code) == b) | (func.lower(SlaDailySummary.brand_name) == b)
        )
    if country:
        stmt = stmt.where(func.upper(SlaDailySummary.country_code) == country.strip().upper())
    if from_date:
        stmt = stmt.where(SlaDailySummary.summary_date >= from_date)
    if to_date:
        stmt = stmt.where(SlaDailySummary.summary_date <= to_date)
    return stmt


async def _summary_rows(session: AsyncSession, brand, country, from_date, to_date) -> List[SlaDailySummary]:
    stmt = _summary_filters(select(SlaDailySummary), brand, country, from_date, to_date).order_by(
        SlaDailySummary.summary_date, SlaDailySummary.brand_code, SlaDailySummary.country_code, SlaDailySummary.stage
    )
    return list((await session.execute(stmt)).scalars().all())


class DashboardService:
    def __init__(self, dbs: Databases, settings: AppSettings) -> None:
        self.dbs = dbs
        self.settings = settings

    async def summary(
        self,
        *,
        brand: Optional[str] = None,
        country: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        历史 KPI：total_orders 为各阶段到达事件数之和（同一订单在每个到达的阶段各计一次）。
        平均延误按 orders_breached 加权（avg_delay_sec 是超时订单的平均超出量），单位小时。
        """
        async with self.dbs.analytics_session() as session:
            rows = await _summary_rows(session, brand, country, from_date, to_date)

        per_stage: Dict[str, Dict[str, float]] = {
            st.value: {"total": 0, "on_time": 0, "on_risk": 0, "breached": 0, "delay_weighted": 0.0}
            for st in CROSSING_STAGES
        }
        for r in rows:
            s = per_stage.setdefault(
                r.stage, {"total": 0, "on_time": 0, "on_risk": 0, "breached": 0, "delay_weighted": 0.0}
            )
            s["total"] += r.orders_total
            s["on_time"] += r.orders_on_time
            s["on_risk"] += r.orders_on_risk
            s["breached"] += r.orders_breached
            s["delay_weighted"] += r.avg_delay_sec * r.orders_breached

        breakdown = []
        for stage, s in per_stage.items():
            total = int(s["total"])
            breakdown.append(
                {
                    "stage": stage,
                    "total": total,
                    "on_time": int(s["on_time"]),
                    "on_risk": int(s["on_risk"]),
                    "breached": int(s["breached"]),
                    "avg_delay_hours": round(s["delay_weighted"] / s["breached"] / 3600.0, 2) if s["breached"] else 0.0,
                }
            )

        return {
            "kpis": {
                "total_orders": sum(b["total"] for b in breakdown),
                "sla_breached": sum(b["breached"] for b in breakdown),
                "on_risk": sum(b["on_risk"] for b in breakdown),
                "completed": next((b["total"] for b in breakdown if b["stage"] == "Delivered"), 0),
            },
            "chart_data": [
                {"stage": b["stage"], "on_time": b["on_time"], "on_risk": b["on_risk"], "breached": b["breached"]}
                for b in breakdown
            ],
            "stage_breakdown": breakdown,
        }

    async def health(
        self,
        *,
        brand: Optional[str] = None,
        country: Optional[str] = None,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or datetime.now(UTC)
        window_end = as_utc(now).date()
        window_start = window_end - timedelta(days=max(days, 1) - 1)

        async with self.dbs.analytics_session() as session:
            rows = await _summary_rows(session, brand, country, window_start, window_end)
            last_refresh = (
                await session.execute(_summary_filters(select(func.max(SlaDailySummary.refreshed_at)), brand, country, None, None))
            ).scalar_one_or_none()

        # 新鲜度
        if last_refresh is None:
            hours_stale = None
            freshness = "critical"
        else:
            hours_stale = round((as_utc(now) - as_utc(last_refresh)).total_seconds() / 3600.0, 2)
            if hours_stale > self.settings.STALE_CRITICAL_HOURS:
                freshness = "critical"
            elif hours_stale > self.settings.STALE_WARNING_HOURS:
                freshness = "warning"
            else:
                freshness = "healthy"

        # 缺失日期 / 阶段不全
        stages_by_day: Dict[date, set[str]] = defaultdict(set)
        for r in rows:
            stages_by_day[r.summary_date].add(r.stage)
        missing_days = [
            (window_start + timedelta(days=i)).isoformat()
            for i in range((window_end - window_start).days + 1)
            if (window_start + timedelta(days=i)) not in stages_by_day
        ]
        expected = {st.value for st in CROSSING_STAGES}
        incomplete = [
            {"date": d.isoformat(), "missing_stages": sorted(expected - present)}
            for d, present in sorted(stages_by_day.items())
            if expected - present
        ]

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

        if freshness == "critical" or anomalies:
            status = "critical"
        elif freshness == "warning" or missing_days or incomplete:
            status = "warning"
        else:
            status = "healthy"

        return {
            "status": status,
            "window": {"from": window_start.isoformat(), "to": window_end.isoformat(), "days": days},
            "freshness": {
                "status": freshness,
                "last_refresh": last_refresh.isoformat() if last_refresh else None,
                "hours_stale": hours_stale,
            },
            "missing_days": missing_days,
            "incomplete_stages": incomplete,
            "anomalies": anomalies,
        }

    async def filters(self) -> Dict[str, Any]:
        """品牌 / 国家过滤项：优先取汇总表，否则取已发现的订单表。"""
        async with self.dbs.analytics_session() as session:
            pairs = (
                await session.execute(
                    select(SlaDailySummary.brand_code, SlaDailySummary.country_code).distinct()
                )
            ).all()
        if pairs:
            source = "summary"
            combos = {(b.lower(), c.upper()) for b, c in pairs}
        else:
            source = "tables"
            registry = await TableRegistry.discover(self.dbs.analytics)
            combos = {(t.brand_code, t.country_code) for t in registry}

        brands = sorted({b for b, _ in combos})
        countries = sorted({c for _, c in combos})
        return {
            "source": source,
            "brands": [{"code": b, "name": brand_name_for(b)} for b in brands],
            "countries": [{"code": c, "name": country_name_for(c)} for c in countries],
        }

    async def tat_configs(self) -> List[Dict[str, Any]]:
        async with self.dbs.analytics_session() as session:
            rows = (
                await session.execute(select(TatConfig).order_by(TatConfig.brand_code, TatConfig.country_code))
            ).scalars().all()
        return [
            {
                "brand_code": r.brand_code,
                "brand_name": r.brand_name,
                "country_code": r.country_code,
                "processed_tat": r.processed_tat,
                "shipped_tat": r.shipped_tat,
                "delivered_tat": r.delivered_tat,
                "risk_pct": r.risk_pct,
                "urgent_pct": r.urgent_pct,
                "critical_pct": r.critical_pct,
                "pending_not_processed_time": r.pending_not_processed_time,
                "pending_processed_time": r.pending_processed_time,
                "pending_shipped_time": r.pending_shipped_time,
            }
            for r in rows
        ]
