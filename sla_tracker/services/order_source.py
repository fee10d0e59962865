# sla_tracker/services/order_source.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sla_tracker.services.table_registry import TenantTable


def day_start(d: date) -> datetime:
    return datetime.combine(d, time.min)


async def fetch_orders(
    session: AsyncSession,
    tenant: TenantTable,
    *,
    confirmed_marker: Optional[str] = None,
    placed_from: Optional[date] = None,
    placed_to: Optional[date] = None,
    order_no_like: Optional[str] = None,
    order_status: Optional[str] = None,
    confirmation_status: Optional[str] = None,
    columns: Optional[Sequence[str]] = None,
) -> List[Any]:
    """
    读取某租户订单表（只做 SQL 可表达的过滤；SLA 维度的过滤在分类之后做）。

    - confirmed_marker : 只取 confirmation_status 等于该值（不区分大小写）的订单
    - placed_from/to   : 按下单日期（含两端）
    """
    t = tenant.table
    cols = [t.c[c] for c in columns] if columns else [t]
    stmt = select(*cols)

    if confirmed_marker:
        stmt = stmt.where(func.upper(t.c.confirmation_status) == confirmed_marker.upper())
    if confirmation_status:
        stmt = stmt.where(func.upper(t.c.confirmation_status) == confirmation_status.strip().upper())
    if order_status:
        stmt = stmt.where(func.lower(t.c.order_status) == order_status.strip().lower())
    if order_no_like:
        stmt = stmt.where(t.c.order_no.contains(order_no_like.strip(), autoescape=True))
    if placed_from:
        stmt = stmt.where(t.c.placed_time >= day_start(placed_from))
    if placed_to:
        stmt = stmt.where(t.c.placed_time < day_start(placed_to + timedelta(days=1)))

    stmt = stmt.order_by(t.c.placed_time.desc(), t.c.order_no)
    return list((await session.execute(stmt)).mappings().all())
