# sla_tracker/api/deps.py
from __future__ import annotations

from datetime import UTC, datetime

from fastapi import Request

from sla_tracker.core.config import AppSettings
from sla_tracker.db.session import Databases


def get_databases(request: Request) -> Databases:
    """lifespan 中打开的连接容器（挂在 app.state 上）。"""
    return request.app.state.databases


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_now() -> datetime:
    """分类用的当前时间；测试中可通过 dependency_overrides 固定。"""
    return datetime.now(UTC)
