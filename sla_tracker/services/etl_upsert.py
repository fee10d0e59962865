# sla_tracker/services/etl_upsert.py
"""
ETL 写入侧工具：源查询构造、行归一化、按方言的幂等 upsert 语句。
"""
from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import Select, Table, select
from sqlalchemy.dialects import mysql, postgresql, sqlite

from sla_tracker.core.catalog import brand_name_for
from sla_tracker.domain.sla import elapsed_minutes, format_tat
from sla_tracker.domain.sla.types import as_datetime
from sla_tracker.models.order_table import ORDER_COLUMNS
from sla_tracker.services.column_mapping import PAYMENT_FIELDS, SHIPMENT_FIELDS, resolve_columns
from sla_tracker.services.table_registry import SourceTable

_TIME_COLUMNS = ("placed_time", "processed_time", "shipped_time", "delivered_time")
_TAT_SOURCES = {
    "processed_tat": "processed_time",
    "shipped_tat": "shipped_time",
    "delivered_tat": "delivered_time",
}


def build_source_select(
    orders: Table,
    payments: Optional[Table] = None,
    shipments: Optional[Table] = None,
) -> Select:
    """
    源订单表 SELECT（列统一 label 为目标列名）：
    - 存在 _payments / _shipments 时按订单号 LEFT JOIN 补列
    - 订单表自身已有的列优先
    """
    mapping = resolve_columns(orders.c.keys(), table=orders.name)
    order_key = orders.c[mapping["order_no"]]
    cols = [orders.c[src].label(target) for target, src in mapping.items()]
    source = orders

    for side, fields in ((payments, PAYMENT_FIELDS), (shipments, SHIPMENT_FIELDS)):
        if side is None:
            continue
        side_map = resolve_columns(side.c.keys(), table=side.name, fields=fields)
        extra = {t: s for t, s in side_map.items() if t != "order_no" and t not in mapping}
        if not extra:
            continue
        source = source.outerjoin(side, side.c[side_map["order_no"]] == order_key)
        cols.extend(side.c[s].label(t) for t, s in extra.items())
        mapping.update(extra)

    return select(*cols).select_from(source).order_by(order_key)


def _to_naive_utc(v: Any) -> Optional[datetime]:
    dt = as_datetime(v)
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def _to_decimal(v: Any) -> Optional[Decimal]:
    if v is None or v == "":
        return None
    try:
        return Decimal(str(v))
    except (InvalidOperation, ValueError):
        return None


def _to_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def normalize_row(row: Mapping[str, Any], src: SourceTable, now: datetime) -> Dict[str, Any]:
    """
    源行 → 目标表完整行（所有目标列齐全，缺失列补 None / 表名元数据）。
    已实现 TAT 缺失时由时间戳推算（placed → 该阶段）。
    """
    rec: Dict[str, Any] = {c: None for c in ORDER_COLUMNS}
    for col in ORDER_COLUMNS:
        if col in row:
            rec[col] = row[col]

    for col in _TIME_COLUMNS:
        rec[col] = _to_naive_utc(rec[col])
    rec["amount"] = _to_decimal(rec["amount"])
    for col in ORDER_COLUMNS:
        if col not in _TIME_COLUMNS and col not in ("amount", "updated_at"):
            rec[col] = _to_str(rec[col])

    rec["brand_code"] = src.brand_code
    rec["brand_name"] = rec["brand_name"] or brand_name_for(src.brand_code)
    rec["country_code"] = (rec["country_code"] or src.country_code).upper()

    placed = rec["placed_time"]
    for tat_col, time_col in _TAT_SOURCES.items():
        if rec[tat_col] is None and placed is not None and rec[time_col] is not None:
            rec[tat_col] = format_tat(max(elapsed_minutes(placed, rec[time_col]), 0))

    rec["updated_at"] = _to_naive_utc(now)
    return rec


def build_upsert(table: Table, dialect_name: str):
    """按主键 order_no 的幂等 upsert（PG / SQLite: ON CONFLICT；MySQL: ON DUPLICATE KEY）。"""
    update_cols = [c.name for c in table.columns if c.name != "order_no"]

    if dialect_name in ("postgresql", "sqlite"):
        ins = postgresql.insert(table) if dialect_name == "postgresql" else sqlite.insert(table)
        return ins.on_conflict_do_update(
            index_elements=[table.c.order_no],
            set_={c: ins.excluded[c] for c in update_cols},
        )

    if dialect_name in ("mysql", "mariadb"):
        ins = mysql.insert(table)
        return ins.on_duplicate_key_update({c: ins.inserted[c] for c in update_cols})

    raise ValueError(f"upsert not supported for dialect {dialect_name!r}")
