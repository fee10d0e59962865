# sla_tracker/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sla_tracker.core.config import AppSettings, get_settings
from sla_tracker.core.logging import setup_logging
from sla_tracker.db.session import Databases
from sla_tracker.http_problem_handlers import register_exception_handlers
from sla_tracker.router_mount import mount_routers

logger = logging.getLogger("sla_tracker")


def create_app(settings: Optional[AppSettings] = None, databases: Optional[Databases] = None) -> FastAPI:
    """
    应用工厂：

    - 未传入 databases 时在 lifespan 启动阶段按配置打开、退出时关闭
    - 传入的 databases 由调用方负责生命周期（测试 / 嵌入场景）
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "databases", None) is None:
            setup_logging(settings.LOG_LEVEL, settings.JSON_LOG)
            owned = Databases.from_settings(settings).open()
            app.state.databases = owned
            logger.info("databases opened master=%s analytics=%s", owned.master.url.render_as_string(), owned.analytics.url.render_as_string())
        try:
            yield
        finally:
            if owned is not None:
                await owned.close()
                app.state.databases = None
                logger.info("databases closed")

    app = FastAPI(
        title="SLA-Tracker",
        debug=settings.DEBUG,
        version="0.3.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.databases = databases

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    mount_routers(app)

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok"}

    return app


app = create_app()
