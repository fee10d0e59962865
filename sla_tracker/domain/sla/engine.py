# sla_tracker/domain/sla/engine.py
"""
单一分类入口：所有读路径（订单列表 / 详情 / 实时 KPI / 每日汇总）都走这里，
不在各自的查询里重复表达规则。
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from sla_tracker.domain.sla.classify import (
    classify_breach_severity,
    classify_sla,
    classify_stage_crossing,
    next_deadline_stage,
)
from sla_tracker.domain.sla.enums import (
    CROSSING_STAGES,
    BreachSeverity,
    PendingStatus,
    SlaStatus,
    Stage,
)
from sla_tracker.domain.sla.pending import detect_pending
from sla_tracker.domain.sla.stage import resolve_stage
from sla_tracker.domain.sla.tat import elapsed_minutes
from sla_tracker.domain.sla.types import OrderTimeline, TatPolicy


@dataclass(frozen=True)
class Classification:
    order_no: Optional[str]
    stage: Stage
    sla_status: SlaStatus
    pending_status: PendingStatus
    pending_hours: Optional[float]
    breach_severity: BreachSeverity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_no": self.order_no,
            "stage": self.stage.value,
            "sla_status": self.sla_status.value,
            "pending_status": self.pending_status.value,
            "pending_hours": self.pending_hours,
            "breach_severity": self.breach_severity.value,
        }


def classify_timeline(
    timeline: OrderTimeline,
    now: datetime,
    policy: Optional[TatPolicy],
    *,
    order_no: Optional[str] = None,
) -> Classification:
    stage = resolve_stage(
        timeline.placed_time,
        timeline.processed_time,
        timeline.shipped_time,
        timeline.delivered_time,
    )
    pending = detect_pending(timeline, now, policy)
    return Classification(
        order_no=order_no,
        stage=stage,
        sla_status=classify_sla(stage, timeline, now, policy),
        pending_status=pending.status,
        pending_hours=pending.hours,
        breach_severity=classify_breach_severity(stage, timeline, now, policy),
    )


def classify_order(row: Any, now: datetime, policy: Optional[TatPolicy]) -> Classification:
    """订单行（映射或对象）→ Classification；坏数据降级为 Unknown，不抛错。"""
    order_no = row.get("order_no") if isinstance(row, Mapping) else getattr(row, "order_no", None)
    return classify_timeline(OrderTimeline.from_row(row), now, policy, order_no=order_no)


def stage_analysis(
    timeline: OrderTimeline,
    now: datetime,
    policy: Optional[TatPolicy],
) -> Dict[str, Dict[str, Any]]:
    """
    订单详情用：逐阶段给出 实际分钟 / 目标 / 风险阈值 / 超出分钟 / 状态。

    已到达的阶段用历史口径；当前对标的下一阶段用 now 计算；其余为 pending。
    """
    out: Dict[str, Dict[str, Any]] = {}
    current = resolve_stage(
        timeline.placed_time,
        timeline.processed_time,
        timeline.shipped_time,
        timeline.delivered_time,
    )
    upcoming = next_deadline_stage(current)

    for st in CROSSING_STAGES:
        target = policy.target_for(st) if policy else None
        entry: Dict[str, Any] = {
            "target_minutes": target,
            "risk_threshold_minutes": policy.risk_threshold(target) if policy and target is not None else None,
            "actual_minutes": None,
            "exceeded_by_minutes": None,
            "status": "pending",
        }
        if timeline.reached_at(st) is not None:
            status, _ = classify_stage_crossing(st, timeline, policy)
            entry["actual_minutes"] = timeline.realized_minutes(st)
            entry["status"] = status.value
        elif st is upcoming and timeline.placed_time is not None:
            entry["actual_minutes"] = max(elapsed_minutes(timeline.placed_time, now), 0)
            entry["status"] = classify_sla(current, timeline, now, policy).value
        if target is not None and entry["actual_minutes"] is not None:
            entry["exceeded_by_minutes"] = max(entry["actual_minutes"] - target, 0)
        out[st.value] = entry
    return out
