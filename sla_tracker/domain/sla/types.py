# sla_tracker/domain/sla/types.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from sla_tracker.domain.sla.enums import Stage
from sla_tracker.domain.sla.tat import elapsed_minutes, parse_tat_minutes

DEFAULT_RISK_PCT = 80
DEFAULT_URGENT_PCT = 100
DEFAULT_CRITICAL_PCT = 150


def _get(src: Any, key: str) -> Any:
    if isinstance(src, Mapping):
        return src.get(key)
    return getattr(src, key, None)


def as_datetime(v: Any) -> Optional[datetime]:
    """datetime / ISO 字符串 → datetime；其它或非法值 → None。"""
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v
    if isinstance(v, str):
        s = v.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(s)
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class OrderTimeline:
    """单个订单的四个生命周期时间戳 + 已实现 TAT 字符串。"""

    placed_time: Optional[datetime] = None
    processed_time: Optional[datetime] = None
    shipped_time: Optional[datetime] = None
    delivered_time: Optional[datetime] = None
    processed_tat: Optional[str] = None
    shipped_tat: Optional[str] = None
    delivered_tat: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "OrderTimeline":
        """行映射 / ORM 对象均可；非法时间值按缺失处理。"""
        return cls(
            placed_time=as_datetime(_get(row, "placed_time")),
            processed_time=as_datetime(_get(row, "processed_time")),
            shipped_time=as_datetime(_get(row, "shipped_time")),
            delivered_time=as_datetime(_get(row, "delivered_time")),
            processed_tat=_get(row, "processed_tat") or None,
            shipped_tat=_get(row, "shipped_tat") or None,
            delivered_tat=_get(row, "delivered_tat") or None,
        )

    def reached_at(self, stage: Stage) -> Optional[datetime]:
        if stage is Stage.PROCESSED:
            return self.processed_time
        if stage is Stage.SHIPPED:
            return self.shipped_time
        if stage is Stage.DELIVERED:
            return self.delivered_time
        return self.placed_time

    def realized_minutes(self, stage: Stage) -> Optional[int]:
        """
        已实现 TAT（placed → stage）：
        - 优先已存储的 TAT 字符串
        - 其次用时间戳推算
        - 都没有 → None
        """
        stored = {
            Stage.PROCESSED: self.processed_tat,
            Stage.SHIPPED: self.shipped_tat,
            Stage.DELIVERED: self.delivered_tat,
        }.get(stage)
        if stored and str(stored).strip():
            return parse_tat_minutes(str(stored))

        reached = self.reached_at(stage)
        if stage is Stage.NOT_PROCESSED or reached is None or self.placed_time is None:
            return None
        return max(elapsed_minutes(self.placed_time, reached), 0)


@dataclass(frozen=True)
class TatPolicy:
    """TatConfig 解析后的分钟 / 百分比阈值。"""

    processed_minutes: int
    shipped_minutes: int
    delivered_minutes: int
    risk_pct: float = DEFAULT_RISK_PCT
    urgent_pct: float = DEFAULT_URGENT_PCT
    critical_pct: float = DEFAULT_CRITICAL_PCT
    pending_not_processed_minutes: int = 0
    pending_processed_minutes: int = 0
    pending_shipped_minutes: int = 0

    @classmethod
    def from_config(cls, cfg: Any) -> "TatPolicy":
        """TatConfig ORM / 映射 → TatPolicy；百分比为空时取默认值。"""

        def _pct(key: str, default: int) -> float:
            v = _get(cfg, key)
            return float(v) if v is not None else float(default)

        return cls(
            processed_minutes=parse_tat_minutes(_get(cfg, "processed_tat")),
            shipped_minutes=parse_tat_minutes(_get(cfg, "shipped_tat")),
            delivered_minutes=parse_tat_minutes(_get(cfg, "delivered_tat")),
            risk_pct=_pct("risk_pct", DEFAULT_RISK_PCT),
            urgent_pct=_pct("urgent_pct", DEFAULT_URGENT_PCT),
            critical_pct=_pct("critical_pct", DEFAULT_CRITICAL_PCT),
            pending_not_processed_minutes=parse_tat_minutes(_get(cfg, "pending_not_processed_time")),
            pending_processed_minutes=parse_tat_minutes(_get(cfg, "pending_processed_time")),
            pending_shipped_minutes=parse_tat_minutes(_get(cfg, "pending_shipped_time")),
        )

    def target_for(self, stage: Stage) -> int:
        """到达某阶段的目标时长（分钟）。"""
        if stage is Stage.PROCESSED:
            return self.processed_minutes
        if stage is Stage.SHIPPED:
            return self.shipped_minutes
        return self.delivered_minutes

    def risk_threshold(self, target_minutes: int) -> float:
        return target_minutes * self.risk_pct / 100.0
