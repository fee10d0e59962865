# sla_tracker/domain/sla/tat.py
"""
TAT 时长字符串 ⇄ 分钟数。

源数据形如 "1 d, 23 h, 10 m"、"9 m"、"2h"；d/h/m 任意子集、任意顺序。
解析永不抛错：空 / None / 无法识别 → 0 分钟。
"""
from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Optional

_DAYS_RE = re.compile(r"(\d+)\s*d", re.IGNORECASE)
_HOURS_RE = re.compile(r"(\d+)\s*h", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)\s*m", re.IGNORECASE)


def parse_tat_minutes(value: Optional[str]) -> int:
    if not value or not isinstance(value, str):
        return 0

    def _first(rx: re.Pattern[str]) -> int:
        m = rx.search(value)
        return int(m.group(1)) if m else 0

    return _first(_DAYS_RE) * 1440 + _first(_HOURS_RE) * 60 + _first(_MINUTES_RE)


def format_tat(minutes: Optional[int]) -> str:
    """分钟数 → "1 d, 23 h, 10 m"（省略为 0 的段；0 → "0 m"）。"""
    total = max(int(minutes or 0), 0)
    days, rest = divmod(total, 1440)
    hours, mins = divmod(rest, 60)

    parts: list[str] = []
    if days:
        parts.append(f"{days} d")
    if hours:
        parts.append(f"{hours} h")
    if mins or not parts:
        parts.append(f"{mins} m")
    return ", ".join(parts)


def as_utc(dt: datetime) -> datetime:
    """naive 时间按 UTC 解释。"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """整分钟差（向零截断）。"""
    return int((as_utc(end) - as_utc(start)).total_seconds() / 60)


def elapsed_hours(start: datetime, end: datetime) -> float:
    return round((as_utc(end) - as_utc(start)).total_seconds() / 3600.0, 2)
