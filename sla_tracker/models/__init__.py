from sla_tracker.models.order_table import ORDER_COLUMNS, build_order_table, order_table_name
from sla_tracker.models.sla_daily_summary import SlaDailySummary
from sla_tracker.models.tat_config import TatConfig

__all__ = [
    "ORDER_COLUMNS",
    "SlaDailySummary",
    "TatConfig",
    "build_order_table",
    "order_table_name",
]
