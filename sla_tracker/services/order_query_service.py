# sla_tracker/services/order_query_service.py
"""
订单列表 / 详情：SQL 只做基础过滤，SLA 维度（stage / sla_status / pending / severity）
在统一分类之后按内存过滤，再分页。
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from sla_tracker.core.catalog import country_name_for, timezone_for
from sla_tracker.core.config import AppSettings
from sla_tracker.core.errors import OrderNotFoundError
from sla_tracker.db.session import Databases
from sla_tracker.domain.sla import OrderTimeline, classify_order, stage_analysis
from sla_tracker.domain.sla.tat import as_utc
from sla_tracker.services.order_source import fetch_orders
from sla_tracker.services.table_registry import TableRegistry, TenantTable
from sla_tracker.services.tat_config_store import TatConfigIndex

_TIME_FIELDS = ("placed_time", "processed_time", "shipped_time", "delivered_time", "updated_at")


@dataclass
class OrderFilters:
    brand: Optional[str] = None
    country: Optional[str] = None
    order_no: Optional[str] = None
    order_status: Optional[str] = None
    confirmation_status: Optional[str] = None
    stage: Optional[str] = None
    sla_status: Optional[str] = None
    pending_status: Optional[str] = None
    breach_severity: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None


def _norm(v: Optional[str]) -> Optional[str]:
    return v.strip().lower() if v and v.strip() else None


def _jsonable(v: Any) -> Any:
    if isinstance(v, datetime):
        return v.isoformat()
    if isinstance(v, Decimal):
        return float(v)
    return v


def serialize_order(row: Any, tenant: TenantTable) -> Dict[str, Any]:
    out = {k: _jsonable(v) for k, v in dict(row).items()}
    out["table"] = tenant.name
    out["brand_code"] = out.get("brand_code") or tenant.brand_code
    out["brand_name"] = out.get("brand_name") or tenant.brand_name
    out["country_code"] = (out.get("country_code") or tenant.country_code).upper()
    out["country_name"] = country_name_for(out["country_code"])
    return out


def local_times(row: Any, country_code: str) -> Dict[str, Optional[str]]:
    """库内时间按 UTC 存储，按国家时区给出本地时间展示。"""
    tz_name = timezone_for(country_code)
    if not tz_name:
        return {}
    tz = ZoneInfo(tz_name)
    out: Dict[str, Optional[str]] = {}
    for f in _TIME_FIELDS:
        v = row.get(f)
        out[f] = as_utc(v).astimezone(tz).isoformat() if isinstance(v, datetime) else None
    return out


class OrderQueryService:
    def __init__(self, dbs: Databases, settings: AppSettings) -> None:
        self.dbs = dbs
        self.settings = settings

    async def list_orders(
        self,
        filters: OrderFilters,
        *,
        page: int = 1,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        now = now or datetime.now(UTC)
        registry = await TableRegistry.discover(self.dbs.analytics)
        want_stage = _norm(filters.stage)
        want_sla = _norm(filters.sla_status)
        want_pending = _norm(filters.pending_status)
        want_severity = _norm(filters.breach_severity)

        items: List[Dict[str, Any]] = []
        async with self.dbs.analytics_session() as session:
            configs = await TatConfigIndex.load(session)
            for tenant in registry.select(filters.brand, filters.country):
                policy = configs.policy_for(tenant.brand_code, tenant.country_code)
                rows = await fetch_orders(
                    session,
                    tenant,
                    placed_from=filters.from_date,
                    placed_to=filters.to_date,
                    order_no_like=filters.order_no,
                    order_status=filters.order_status,
                    confirmation_status=filters.confirmation_status,
                )
                for row in rows:
                    c = classify_order(row, now, policy)
                    if want_stage and c.stage.value.lower() != want_stage:
                        continue
                    if want_sla and c.sla_status.value.lower() != want_sla:
                        continue
                    if want_pending and c.pending_status.value != want_pending:
                        continue
                    if want_severity and c.breach_severity.value.lower() != want_severity:
                        continue
                    item = serialize_order(row, tenant)
                    item.update(c.to_dict())
                    items.append(item)

        items.sort(key=lambda x: (x.get("placed_time") or "", x["order_no"]), reverse=True)
        total = len(items)
        start = (page - 1) * limit
        return {
            "items": items[start : start + limit],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
            },
        }

    async def get_order(self, order_no: str, *, now: Optional[datetime] = None) -> Dict[str, Any]:
        """跨全部租户表查找订单号；找不到抛 OrderNotFoundError。"""
        now = now or datetime.now(UTC)
        registry = await TableRegistry.discover(self.dbs.analytics)
        async with self.dbs.analytics_session() as session:
            configs = await TatConfigIndex.load(session)
            for tenant in registry:
                t = tenant.table
                row = (
                    (await session.execute(t.select().where(t.c.order_no == order_no))).mappings().first()
                )
                if row is None:
                    continue

                cfg = configs.row_for(tenant.brand_code, tenant.country_code)
                policy = configs.policy_for(tenant.brand_code, tenant.country_code)
                c = classify_order(row, now, policy)
                out = serialize_order(row, tenant)
                out.update(c.to_dict())
                out["stage_analysis"] = stage_analysis(OrderTimeline.from_row(row), now, policy)
                out["local_times"] = local_times(row, out["country_code"])
                out["tat_config"] = (
                    {
                        "processed_tat": cfg.processed_tat,
                        "shipped_tat": cfg.shipped_tat,
                        "delivered_tat": cfg.delivered_tat,
                        "risk_pct": cfg.risk_pct,
                        "urgent_pct": cfg.urgent_pct,
                        "critical_pct": cfg.critical_pct,
                    }
                    if cfg is not None
                    else None
                )
                return out
        raise OrderNotFoundError(order_no)
