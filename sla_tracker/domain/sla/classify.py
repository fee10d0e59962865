# sla_tracker/domain/sla/classify.py
"""
SLA 分类规则（纯函数，"now" 由调用方注入）。

实时口径：在途订单按“下一个未达成的截止点”与 now 比较；
历史口径：按订单到达某阶段时的已实现 TAT 与该阶段目标比较。
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sla_tracker.domain.sla.enums import BreachSeverity, SlaStatus, Stage
from sla_tracker.domain.sla.tat import elapsed_minutes
from sla_tracker.domain.sla.types import OrderTimeline, TatPolicy


def band(elapsed: int, target: int, risk_pct: float) -> SlaStatus:
    if elapsed > target:
        return SlaStatus.BREACHED
    if elapsed > target * risk_pct / 100.0:
        return SlaStatus.AT_RISK
    return SlaStatus.ON_TIME


def next_deadline_stage(stage: Stage) -> Optional[Stage]:
    """
    在途订单当前要对标的目标阶段：
    - Not Processed → Processed
    - Processed     → Shipped
    - Shipped（含跳过 processed）→ Delivered
    """
    if stage is Stage.NOT_PROCESSED:
        return Stage.PROCESSED
    if stage is Stage.PROCESSED:
        return Stage.SHIPPED
    if stage is Stage.SHIPPED:
        return Stage.DELIVERED
    return None


def classify_sla(
    stage: Stage,
    timeline: OrderTimeline,
    now: datetime,
    policy: Optional[TatPolicy],
) -> SlaStatus:
    if policy is None:
        return SlaStatus.UNKNOWN

    if stage is Stage.DELIVERED:
        realized = timeline.realized_minutes(Stage.DELIVERED)
        if realized is None:
            return SlaStatus.UNKNOWN
        return band(realized, policy.delivered_minutes, policy.risk_pct)

    target_stage = next_deadline_stage(stage)
    if target_stage is None or timeline.placed_time is None:
        return SlaStatus.UNKNOWN

    elapsed = elapsed_minutes(timeline.placed_time, now)
    return band(elapsed, policy.target_for(target_stage), policy.risk_pct)


def classify_breach_severity(
    stage: Stage,
    timeline: OrderTimeline,
    now: datetime,
    policy: Optional[TatPolicy],
) -> BreachSeverity:
    if policy is None or stage is Stage.DELIVERED or timeline.placed_time is None:
        return BreachSeverity.NONE

    target_stage = next_deadline_stage(stage)
    if target_stage is None:
        return BreachSeverity.NONE

    target = policy.target_for(target_stage)
    elapsed = elapsed_minutes(timeline.placed_time, now)
    if elapsed > target * policy.critical_pct / 100.0:
        return BreachSeverity.CRITICAL
    if elapsed > target * policy.urgent_pct / 100.0:
        return BreachSeverity.URGENT
    return BreachSeverity.NONE


def classify_stage_crossing(
    stage: Stage,
    timeline: OrderTimeline,
    policy: Optional[TatPolicy],
) -> tuple[SlaStatus, int]:
    """
    历史口径：订单到达 stage 时的表现。

    返回 (状态, 超时秒数)；超时秒数只在 Breached 时 > 0。
    未到达该阶段 / 无配置 / 无法得出已实现 TAT → (Unknown, 0)。
    """
    if policy is None or stage is Stage.NOT_PROCESSED or timeline.reached_at(stage) is None:
        return SlaStatus.UNKNOWN, 0

    realized = timeline.realized_minutes(stage)
    if realized is None:
        return SlaStatus.UNKNOWN, 0

    target = policy.target_for(stage)
    status = band(realized, target, policy.risk_pct)
    delay_sec = (realized - target) * 60 if status is SlaStatus.BREACHED else 0
    return status, delay_sec
