# sla_tracker/models/tat_config.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from sla_tracker.db.base import Base


class TatConfig(Base):
    """
    品牌 × 国家 TAT 配置（分类引擎只读）：

    - processed_tat / shipped_tat / delivered_tat : 目标时长（如 "2 h"、"1 d, 12 h"）
    - risk_pct                                   : 达到目标时长的百分比即 At Risk
    - urgent_pct / critical_pct                  : 在途订单超时分级阈值（百分比）
    - pending_*_time                             : 各阶段允许停留时长（Pending 判定）
    """

    __tablename__ = "tat_config"
    __table_args__ = (UniqueConstraint("brand_code", "country_code", name="uq_tat_config_brand_country"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    brand_code: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    country_code: Mapped[str] = mapped_column(String(8), nullable=False)
    brand_name: Mapped[str] = mapped_column(String(128), nullable=False)

    processed_tat: Mapped[str | None] = mapped_column(String(32), nullable=True)
    shipped_tat: Mapped[str | None] = mapped_column(String(32), nullable=True)
    delivered_tat: Mapped[str | None] = mapped_column(String(32), nullable=True)

    risk_pct: Mapped[int] = mapped_column(Integer, nullable=False, default=80)
    urgent_pct: Mapped[int | None] = mapped_column(Integer, nullable=True, default=100)
    critical_pct: Mapped[int | None] = mapped_column(Integer, nullable=True, default=150)

    pending_not_processed_time: Mapped[str | None] = mapped_column(String(32), nullable=True)
    pending_processed_time: Mapped[str | None] = mapped_column(String(32), nullable=True)
    pending_shipped_time: Mapped[str | None] = mapped_column(String(32), nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
