"""sla analytics base: tat_config + sla_daily_summary

Revision ID: 20251014_0001
Revises:
Create Date: 2025-10-14 10:00:00
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20251014_0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tat_config",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("brand_code", sa.String(32), nullable=False),
        sa.Column("country_code", sa.String(8), nullable=False),
        sa.Column("brand_name", sa.String(128), nullable=False),
        sa.Column("processed_tat", sa.String(32), nullable=True),
        sa.Column("shipped_tat", sa.String(32), nullable=True),
        sa.Column("delivered_tat", sa.String(32), nullable=True),
        sa.Column("risk_pct", sa.Integer(), nullable=False, server_default="80"),
        sa.Column("urgent_pct", sa.Integer(), nullable=True, server_default="100"),
        sa.Column("critical_pct", sa.Integer(), nullable=True, server_default="150"),
        sa.Column("pending_not_processed_time", sa.String(32), nullable=True),
        sa.Column("pending_processed_time", sa.String(32), nullable=True),
        sa.Column("pending_shipped_time", sa.String(32), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("brand_code", "country_code", name="uq_tat_config_brand_country"),
    )
    op.create_index("ix_tat_config_brand_code", "tat_config", ["brand_code"])

    op.create_table(
        "sla_daily_summary",
        sa.Column("summary_date", sa.Date(), nullable=False),
        sa.Column("brand_code", sa.String(32), nullable=False),
        sa.Column("country_code", sa.String(8), nullable=False),
        sa.Column("stage", sa.String(32), nullable=False),
        sa.Column("brand_name", sa.String(128), nullable=False),
        sa.Column("orders_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("orders_on_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("orders_on_risk", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("orders_breached", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_delay_sec", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("refreshed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("summary_date", "brand_code", "country_code", "stage"),
    )
    op.create_index(
        "ix_sla_daily_summary_brand_country",
        "sla_daily_summary",
        ["brand_code", "country_code"],
    )


def downgrade() -> None:
    op.drop_index("ix_sla_daily_summary_brand_country", table_name="sla_daily_summary")
    op.drop_table("sla_daily_summary")
    op.drop_index("ix_tat_config_brand_code", table_name="tat_config")
    op.drop_table("tat_config")
