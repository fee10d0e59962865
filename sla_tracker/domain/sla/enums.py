# sla_tracker/domain/sla/enums.py
from __future__ import annotations

from enum import StrEnum


class Stage(StrEnum):
    """
    订单生命周期阶段（以最靠后的非空时间戳为准）：

    - NOT_PROCESSED  仅下单
    - PROCESSED      已处理未发货
    - SHIPPED        已发货未签收（含跳过 processed 的订单）
    - DELIVERED      已签收
    """

    NOT_PROCESSED = "Not Processed"
    PROCESSED = "Processed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"


class SlaStatus(StrEnum):
    ON_TIME = "On Time"
    AT_RISK = "At Risk"
    BREACHED = "Breached"
    UNKNOWN = "Unknown"


class PendingStatus(StrEnum):
    PENDING = "pending"
    NORMAL = "normal"


class BreachSeverity(StrEnum):
    """在途订单超时分级（与 SlaStatus 相互独立的第二条轴）。"""

    NONE = "None"
    URGENT = "Urgent"
    CRITICAL = "Critical"


# 有“到达时间戳”的阶段，历史汇总按这三个阶段出数
CROSSING_STAGES: tuple[Stage, ...] = (Stage.PROCESSED, Stage.SHIPPED, Stage.DELIVERED)
ALL_STAGES: tuple[Stage, ...] = (Stage.NOT_PROCESSED, Stage.PROCESSED, Stage.SHIPPED, Stage.DELIVERED)
