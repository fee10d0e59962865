# sla_tracker/services/live_kpi_service.py
"""
实时 KPI（只统计已确认订单）：每次请求现算，不缓存。
"""
from __future__ import annotations

from collections import Counter
from datetime import UTC, date, datetime
from typing import Any, Dict, Optional

from sla_tracker.core.config import AppSettings
from sla_tracker.db.session import Databases
from sla_tracker.domain.sla import (
    ALL_STAGES,
    CROSSING_STAGES,
    BreachSeverity,
    PendingStatus,
    SlaStatus,
    Stage,
    classify_order,
)
from sla_tracker.services.daily_summary_service import aggregate_stage_crossings
from sla_tracker.services.order_source import fetch_orders
from sla_tracker.services.table_registry import TableRegistry
from sla_tracker.services.tat_config_store import TatConfigIndex


def _rate(part: int, whole: int) -> float:
    return round(part * 100.0 / whole, 2) if whole else 0.0


class LiveKpiService:
    def __init__(self, dbs: Databases, settings: AppSettings) -> None:
        self.dbs = dbs
        self.settings = settings

    async def live_summary(
        self,
        *,
        brand: Optional[str] = None,
        country: Optional[str] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or datetime.now(UTC)
        registry = await TableRegistry.discover(self.dbs.analytics)

        kpi: Counter[str] = Counter()
        by_stage: Dict[Stage, Counter[str]] = {st: Counter() for st in ALL_STAGES}
        historical: Dict[Stage, Counter[str]] = {st: Counter() for st in CROSSING_STAGES}
        last_refresh: Optional[datetime] = None

        async with self.dbs.analytics_session() as session:
            configs = await TatConfigIndex.load(session)
            for tenant in registry.select(brand, country):
                policy = configs.policy_for(tenant.brand_code, tenant.country_code)
                rows = await fetch_orders(
                    session,
                    tenant,
                    confirmed_marker=self.settings.CONFIRMED_MARKER,
                    placed_from=from_date,
                    placed_to=to_date,
                )
                for row in rows:
                    c = classify_order(row, now, policy)
                    _tally(kpi, by_stage[c.stage], c)
                    updated = row["updated_at"]
                    if updated is not None and (last_refresh is None or updated > last_refresh):
                        last_refresh = updated

                for (_day, st), b in aggregate_stage_crossings(rows, policy).items():
                    h = historical[st]
                    h["total"] += b.total
                    h["on_time"] += b.on_time
                    h["on_risk"] += b.on_risk
                    h["breached"] += b.breached
                    h["delay_sec_sum"] += b.delay_sec_sum

        placed = kpi["placed"]
        return {
            "kpis": {
                "placed_orders": placed,
                "pending_orders": kpi["pending"],
                "breached_pending_orders": kpi["breached_pending"],
                "at_risk_pending_orders": kpi["at_risk_pending"],
                "at_risk_orders": kpi["at_risk_open"],
                "fulfilled_orders": kpi["fulfilled"],
                "fulfilled_breached_orders": kpi["fulfilled_breached"],
                "total_urgent_orders": kpi["urgent"],
                "total_critical_orders": kpi["critical"],
                "unknown_orders": kpi["unknown"],
                "completion_rate": _rate(kpi["delivered"], placed),
                "fulfillment_rate": _rate(kpi["fulfilled"], placed),
                "last_refresh": last_refresh.isoformat() if last_refresh else None,
            },
            "stage_breakdown": [_stage_row(st, by_stage[st]) for st in ALL_STAGES],
            "historical_stage_breakdown": [_historical_row(st, historical[st]) for st in CROSSING_STAGES],
            "generated_at": now.isoformat(),
        }


def _tally(kpi: Counter, stage_counter: Counter, c) -> None:
    delivered = c.stage is Stage.DELIVERED
    kpi["placed"] += 1
    stage_counter["total"] += 1

    if c.sla_status is SlaStatus.ON_TIME:
        stage_counter["on_time"] += 1
    elif c.sla_status is SlaStatus.AT_RISK:
        stage_counter["on_risk"] += 1
    elif c.sla_status is SlaStatus.BREACHED:
        stage_counter["breached"] += 1
    else:
        stage_counter["unknown"] += 1
        kpi["unknown"] += 1

    if c.pending_status is PendingStatus.PENDING:
        kpi["pending"] += 1
        stage_counter["pending"] += 1
    if c.breach_severity is BreachSeverity.URGENT:
        kpi["urgent"] += 1
        stage_counter["urgent"] += 1
    elif c.breach_severity is BreachSeverity.CRITICAL:
        kpi["critical"] += 1
        stage_counter["critical"] += 1

    if delivered:
        kpi["delivered"] += 1
        if c.sla_status in (SlaStatus.ON_TIME, SlaStatus.AT_RISK):
            kpi["fulfilled"] += 1
        elif c.sla_status is SlaStatus.BREACHED:
            kpi["fulfilled_breached"] += 1
    else:
        if c.sla_status is SlaStatus.BREACHED:
            kpi["breached_pending"] += 1
        elif c.sla_status is SlaStatus.AT_RISK:
            kpi["at_risk_open"] += 1
            if c.pending_status is PendingStatus.PENDING:
                kpi["at_risk_pending"] += 1


def _stage_row(st: Stage, c: Counter) -> Dict[str, Any]:
    return {
        "stage": st.value,
        "total": c["total"],
        "on_time": c["on_time"],
        "on_risk": c["on_risk"],
        "breached": c["breached"],
        "unknown": c["unknown"],
        "pending": c["pending"],
        "urgent": c["urgent"],
        "critical": c["critical"],
    }


def _historical_row(st: Stage, c: Counter) -> Dict[str, Any]:
    breached = c["breached"]
    return {
        "stage": st.value,
        "total": c["total"],
        "on_time": c["on_time"],
        "on_risk": c["on_risk"],
        "breached": breached,
        "avg_delay_hours": round(c["delay_sec_sum"] / breached / 3600.0, 2) if breached else 0.0,
    }
