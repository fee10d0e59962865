# alembic/env.py：分析库迁移（tat_config / sla_daily_summary）
# orders_<brand>_<cc> 由 ETL 按需建表，不纳入迁移比较

from __future__ import annotations

import os
import re
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from sla_tracker.db.base import Base, init_models  # noqa: E402
from sla_tracker.models.order_table import ORDER_TABLE_RE  # noqa: E402

init_models()
target_metadata = Base.metadata


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    """
    - 租户订单表（orders_<brand>_<cc>）不参与 diff
    - DB 有而模型没有的对象不参与比较（不自动生成 drop）
    """
    if type_ == "table" and name and ORDER_TABLE_RE.match(name):
        return False
    if reflected and compare_to is None:
        return False
    return True


# ---------------------------------------------------------------------------
# URL：迁移走同步驱动
# ---------------------------------------------------------------------------

_SYNC_DRIVERS = (
    (re.compile(r"^sqlite\+aiosqlite://", re.I), "sqlite://"),
    (re.compile(r"^mysql\+aiomysql://", re.I), "mysql+pymysql://"),
    (re.compile(r"^postgres(ql)?(\+asyncpg|\+psycopg2)?://", re.I), "postgresql+psycopg://"),
)


def normalize_sync_url(url: str) -> str:
    url = url.strip().strip('"').strip("'")
    for rx, repl in _SYNC_DRIVERS:
        if rx.match(url):
            return rx.sub(repl, url, count=1)
    return url


def get_url() -> str:
    """
    优先级：
      1. SLA_ANALYTICS_DATABASE_URL
      2. alembic.ini 里的 sqlalchemy.url
    """
    url = os.getenv("SLA_ANALYTICS_DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("Alembic cannot determine the database URL: set SLA_ANALYTICS_DATABASE_URL")
    return normalize_sync_url(url)


def run_migrations_offline() -> None:
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        include_object=include_object,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(get_url(), poolclass=NullPool, future=True)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            include_object=include_object,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
