# sla_tracker/models/order_table.py
"""
分析库中按 品牌 × 国家 拆分的订单表 orders_<brand>_<cc>。

表结构统一，由 build_order_table() 在运行时生成 Core Table；
表名只来自目录发现 / 校验后的品牌国家编码，从不拼接进 SQL 文本。
"""
from __future__ import annotations

import re
from typing import Optional

from sqlalchemy import Column, DateTime, MetaData, Numeric, String, Table

ORDER_TABLE_RE = re.compile(r"^orders_([a-z0-9]+)_([a-z]{2})$")

# 归一化后的目标列（顺序即建表顺序）
ORDER_COLUMNS: tuple[str, ...] = (
    "order_no",
    "order_status",
    "shipping_status",
    "confirmation_status",
    "brand_code",
    "brand_name",
    "country_code",
    "placed_time",
    "processed_time",
    "shipped_time",
    "delivered_time",
    "processed_tat",
    "shipped_tat",
    "delivered_tat",
    "currency",
    "invoice_no",
    "amount",
    "card_type",
    "transactionid",
    "shipmentid",
    "shipping_method",
    "carrier",
    "tracking_url",
    "updated_at",
)


def order_table_name(brand_code: str, country_code: str) -> str:
    name = f"orders_{(brand_code or '').strip().lower()}_{(country_code or '').strip().lower()}"
    if not ORDER_TABLE_RE.match(name):
        raise ValueError(f"invalid brand/country for order table: {brand_code!r}/{country_code!r}")
    return name


def parse_order_table_name(name: str) -> Optional[tuple[str, str]]:
    """orders_vs_my → ("vs", "MY")；不匹配返回 None。"""
    m = ORDER_TABLE_RE.match(name or "")
    if not m:
        return None
    return m.group(1), m.group(2).upper()


def build_order_table(name: str, metadata: Optional[MetaData] = None) -> Table:
    if not ORDER_TABLE_RE.match(name or ""):
        raise ValueError(f"invalid order table name: {name!r}")
    md = metadata if metadata is not None else MetaData()
    if name in md.tables:
        return md.tables[name]
    return Table(
        name,
        md,
        Column("order_no", String(64), primary_key=True),
        Column("order_status", String(64)),
        Column("shipping_status", String(64)),
        Column("confirmation_status", String(32)),
        Column("brand_code", String(32)),
        Column("brand_name", String(128)),
        Column("country_code", String(8)),
        Column("placed_time", DateTime, index=True),
        Column("processed_time", DateTime),
        Column("shipped_time", DateTime),
        Column("delivered_time", DateTime),
        Column("processed_tat", String(32)),
        Column("shipped_tat", String(32)),
        Column("delivered_tat", String(32)),
        Column("currency", String(8)),
        Column("invoice_no", String(64)),
        Column("amount", Numeric(12, 2)),
        Column("card_type", String(32)),
        Column("transactionid", String(128)),
        Column("shipmentid", String(128)),
        Column("shipping_method", String(64)),
        Column("carrier", String(64)),
        Column("tracking_url", String(512)),
        Column("updated_at", DateTime, index=True),
    )
