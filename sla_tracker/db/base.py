# sla_tracker/db/base.py
from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """分析库 ORM 基类。"""


def init_models() -> None:
    """导入全部模型，确保注册到 Base.metadata（alembic / 测试建表用）。"""
    from sla_tracker.models import sla_daily_summary, tat_config  # noqa: F401
