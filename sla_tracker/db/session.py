# sla_tracker/db/session.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from sla_tracker.core.config import AppSettings, normalize_async_dsn
from sla_tracker.core.errors import DatabaseUnavailableError
from sla_tracker.db.engine import create_async_engine_safe

logger = logging.getLogger("sla_tracker.db")


class Databases:
    """
    主库 + 分析库连接容器（显式生命周期）：

    - open()  : 进程启动时创建两个 AsyncEngine 与分析库 Session 工厂
    - close() : 进程退出时释放连接池

    由 FastAPI lifespan / 作业入口创建并向下传递，不做模块级单例。
    """

    def __init__(self, master_url: str, analytics_url: str, *, echo: bool = False) -> None:
        self.master_url = normalize_async_dsn(master_url)
        self.analytics_url = normalize_async_dsn(analytics_url)
        self.echo = echo
        self._master: Optional[AsyncEngine] = None
        self._analytics: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "Databases":
        return cls(
            settings.MASTER_DATABASE_URL,
            settings.ANALYTICS_DATABASE_URL,
            echo=settings.SQL_ECHO,
        )

    # —— 生命周期 —— #

    def open(self) -> "Databases":
        if self._master is None:
            self._master = create_async_engine_safe(
                self.master_url, echo=self.echo, application_name="sla-tracker-master"
            )
        if self._analytics is None:
            self._analytics = create_async_engine_safe(
                self.analytics_url, echo=self.echo, application_name="sla-tracker-analytics"
            )
            self._session_factory = async_sessionmaker(
                bind=self._analytics,
                expire_on_commit=False,
                autoflush=False,
                class_=AsyncSession,
            )
        return self

    async def close(self) -> None:
        for engine in (self._master, self._analytics):
            if engine is not None:
                await engine.dispose()
        self._master = None
        self._analytics = None
        self._session_factory = None

    @property
    def is_open(self) -> bool:
        return self._master is not None and self._analytics is not None

    # —— 访问器 —— #

    @property
    def master(self) -> AsyncEngine:
        if self._master is None:
            raise RuntimeError("Databases.open() has not been called")
        return self._master

    @property
    def analytics(self) -> AsyncEngine:
        if self._analytics is None:
            raise RuntimeError("Databases.open() has not been called")
        return self._analytics

    @asynccontextmanager
    async def analytics_session(self) -> AsyncIterator[AsyncSession]:
        """分析库 Session（异常回滚，正常不自动提交）。"""
        if self._session_factory is None:
            raise RuntimeError("Databases.open() has not been called")
        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def ensure_reachable(self) -> None:
        """批处理前探活：任一库不可达即整体失败。"""
        await ensure_reachable(self.master, "master")
        await ensure_reachable(self.analytics, "analytics")


async def ensure_reachable(engine: AsyncEngine, store: str) -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (DBAPIError, OSError) as e:
        logger.error("DB_UNREACHABLE store=%s err=%s", store, e)
        raise DatabaseUnavailableError(store, str(e)) from e
