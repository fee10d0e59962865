# sla_tracker/domain/sla/stage.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sla_tracker.domain.sla.enums import Stage


def resolve_stage(
    placed_time: Optional[datetime] = None,
    processed_time: Optional[datetime] = None,
    shipped_time: Optional[datetime] = None,
    delivered_time: Optional[datetime] = None,
) -> Stage:
    # 最靠后的时间戳优先，中间阶段缺失（跳过）不影响结果
    if delivered_time is not None:
        return Stage.DELIVERED
    if shipped_time is not None:
        return Stage.SHIPPED
    if processed_time is not None:
        return Stage.PROCESSED
    return Stage.NOT_PROCESSED
