# tests/conftest.py
from __future__ import annotations

from datetime import datetime
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from sla_tracker.api.deps import get_now
from sla_tracker.core.config import AppSettings
from sla_tracker.db.base import Base, init_models
from sla_tracker.db.session import Databases
from sla_tracker.main import create_app
from tests.factories import FIXED_NOW, seed_master, seed_tat_config

# =========================================
# 配置：主库 / 分析库各一个临时 SQLite 文件
# =========================================
@pytest.fixture(scope="function")
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        MASTER_DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'master.db'}",
        ANALYTICS_DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'analytics.db'}",
        SYNC_BATCH_SIZE=3,
        SYNC_CHUNK_SIZE=2,
        SYNC_MAX_WORKERS=1,
        JOB_TIMEOUT_SEC=60,
    )


# =========================================
# 连接容器：每用例独立（建分析库基础表）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def dbs(settings: AppSettings) -> AsyncGenerator[Databases, None]:
    init_models()
    databases = Databases.from_settings(settings).open()
    async with databases.analytics.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield databases
    finally:
        await databases.close()


@pytest_asyncio.fixture(scope="function")
async def seeded(dbs: Databases) -> Databases:
    """主库源表 + vs/MY 的 TAT 配置。"""
    await seed_master(dbs.master)
    async with dbs.analytics_session() as session:
        await seed_tat_config(session)
    return dbs


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


# =========================================
# FastAPI / httpx AsyncClient
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(settings: AppSettings, dbs: Databases) -> AsyncGenerator[httpx.AsyncClient, None]:
    app = create_app(settings=settings, databases=dbs)
    app.dependency_overrides[get_now] = lambda: FIXED_NOW

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
    ) as c:
        yield c
