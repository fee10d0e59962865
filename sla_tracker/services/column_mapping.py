# sla_tracker/services/column_mapping.py
from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence, Tuple

from sla_tracker.core.errors import SchemaMismatchError

# 目标列 → 可接受的源列名（按顺序，先匹配先得）
ORDER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "order_no": ("order_no", "order_number", "orderno", "order_id"),
    "order_status": ("order_status", "status"),
    "shipping_status": ("shipping_status", "shipment_status"),
    "confirmation_status": ("confirmation_status", "confirm_status"),
    "brand_name": ("brand_name", "brand"),
    "country_code": ("country_code", "country"),
    "placed_time": ("placed_time", "order_created_date_time", "order_date", "created_at"),
    "processed_time": ("processed_time", "processing_time"),
    "shipped_time": ("shipped_time", "shipping_time"),
    "delivered_time": ("delivered_time", "delivery_time"),
    "processed_tat": ("processed_tat",),
    "shipped_tat": ("shipped_tat",),
    "delivered_tat": ("delivered_tat",),
    "currency": ("currency", "currency_code"),
    "invoice_no": ("invoice_no", "invoice_number"),
    "amount": ("amount", "total_amount", "order_amount"),
    "card_type": ("card_type",),
    "transactionid": ("transactionid", "transaction_id"),
    "shipmentid": ("shipmentid", "shipment_id"),
    "shipping_method": ("shipping_method",),
    "carrier": ("carrier",),
    "tracking_url": ("tracking_url",),
}

PAYMENT_FIELDS: Tuple[str, ...] = ("card_type", "amount", "transactionid")
SHIPMENT_FIELDS: Tuple[str, ...] = ("shipmentid", "shipping_method", "carrier", "tracking_url")


def resolve_columns(
    available: Iterable[str],
    *,
    table: str = "",
    fields: Optional[Sequence[str]] = None,
    required: Sequence[str] = ("order_no",),
) -> Dict[str, str]:
    """
    源列 → 目标列映射（大小写不敏感，返回源表中的实际列名）。

    required 中的目标列找不到时抛 SchemaMismatchError。
    """
    actual = {str(c).lower(): str(c) for c in available}
    wanted = list(fields) if fields is not None else list(ORDER_ALIASES)
    for r in required:
        if r not in wanted:
            wanted.insert(0, r)

    mapping: Dict[str, str] = {}
    for target in wanted:
        for alias in ORDER_ALIASES.get(target, (target,)):
            if alias in actual:
                mapping[target] = actual[alias]
                break

    for r in required:
        if r not in mapping:
            raise SchemaMismatchError(table, r, sorted(actual.values()))
    return mapping
