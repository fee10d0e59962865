# sla_tracker/core/errors.py
from __future__ import annotations


class SlaTrackerError(Exception):
    """项目内业务异常基类。"""


class SchemaMismatchError(SlaTrackerError):
    """源表缺少必需列（如订单号），仅该表同步失败。"""

    def __init__(self, table: str, missing: str, available: list[str]) -> None:
        self.table = table
        self.missing = missing
        self.available = available
        super().__init__(
            f"table {table!r} has no column usable as {missing!r} (available: {', '.join(available) or '-'})"
        )


class DatabaseUnavailableError(SlaTrackerError):
    """数据库不可达：整个操作失败。"""

    def __init__(self, store: str, reason: str) -> None:
        self.store = store
        self.reason = reason
        super().__init__(f"{store} database unavailable: {reason}")


class JobCancelledError(SlaTrackerError):
    pass


class OrderNotFoundError(SlaTrackerError):
    def __init__(self, order_no: str) -> None:
        self.order_no = order_no
        super().__init__(f"order {order_no!r} not found")
