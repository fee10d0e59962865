# sla_tracker/domain/sla/pending.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sla_tracker.domain.sla.enums import PendingStatus
from sla_tracker.domain.sla.tat import elapsed_hours, elapsed_minutes
from sla_tracker.domain.sla.types import OrderTimeline, TatPolicy


@dataclass(frozen=True)
class PendingResult:
    status: PendingStatus
    hours: Optional[float] = None

    @property
    def is_pending(self) -> bool:
        return self.status is PendingStatus.PENDING


_NORMAL = PendingResult(PendingStatus.NORMAL)


def detect_pending(
    timeline: OrderTimeline,
    now: datetime,
    policy: Optional[TatPolicy],
) -> PendingResult:
    """
    停滞判定（看“当前阶段”已停留多久，与 SLA 是否超时无关）：

    - 无 processed/shipped/delivered，且 now - placed    > pending_not_processed_time
    - 有 processed 无 shipped，      且 now - processed > pending_processed_time
    - 有 shipped 无 delivered，      且 now - shipped   > pending_shipped_time

    已签收订单、无配置的订单一律 normal。
    """
    if policy is None or timeline.delivered_time is not None:
        return _NORMAL

    if timeline.shipped_time is not None:
        since, threshold = timeline.shipped_time, policy.pending_shipped_minutes
    elif timeline.processed_time is not None:
        since, threshold = timeline.processed_time, policy.pending_processed_minutes
    elif timeline.placed_time is not None:
        since, threshold = timeline.placed_time, policy.pending_not_processed_minutes
    else:
        return _NORMAL

    if elapsed_minutes(since, now) > threshold:
        return PendingResult(PendingStatus.PENDING, elapsed_hours(since, now))
    return _NORMAL
