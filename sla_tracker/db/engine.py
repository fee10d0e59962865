# sla_tracker/db/engine.py
# 统一引擎工厂：PG 注入 application_name；SQLite 仅 check_same_thread
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

__all__ = ["create_async_engine_safe"]


def _connect_args_for(url_str: str, application_name: str) -> dict[str, Any]:
    """
    返回后端专属 connect_args：
    - PostgreSQL(psycopg): application_name
    - SQLite: 仅 check_same_thread
    """
    backend = make_url(url_str).get_backend_name()

    if backend.startswith("postgresql"):
        return {"application_name": application_name}

    if backend.startswith("sqlite"):
        return {"check_same_thread": False}

    return {}


def create_async_engine_safe(
    url_str: str,
    *,
    echo: bool = False,
    application_name: str = "sla-tracker",
    **extra: Any,
) -> AsyncEngine:
    """Async 引擎（'postgresql+psycopg' / 'sqlite+aiosqlite' / 'mysql+aiomysql'）。"""
    u = make_url(url_str)

    kwargs: dict[str, Any] = {"echo": echo}
    if not u.get_backend_name().startswith("sqlite"):
        kwargs["pool_pre_ping"] = True
    connect_args = _connect_args_for(url_str, application_name)
    if connect_args:
        kwargs["connect_args"] = connect_args
    kwargs.update(extra)

    return create_async_engine(url_str, **kwargs)
