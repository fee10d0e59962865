# sla_tracker/models/sla_daily_summary.py
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from sla_tracker.db.base import Base


class SlaDailySummary(Base):
    """
    每日 SLA 汇总（按 日期 × 品牌 × 国家 × 阶段 一行）。

    健康的行满足 orders_on_time + orders_on_risk + orders_breached == orders_total；
    缺 TAT 配置时订单记入 orders_total 但不进任何桶，用于监控发现异常。
    整表（品牌×国家）重建，不做局部修补。

    stage 只取 Processed / Shipped / Delivered（按到达该阶段的日期记账）；
    Not Processed 没有到达时刻，不写入本表，未处理订单看实时接口 /dashboard/live。
    """

    __tablename__ = "sla_daily_summary"
    __table_args__ = (Index("ix_sla_daily_summary_brand_country", "brand_code", "country_code"),)

    summary_date: Mapped[date] = mapped_column(Date, primary_key=True)
    brand_code: Mapped[str] = mapped_column(String(32), primary_key=True)
    country_code: Mapped[str] = mapped_column(String(8), primary_key=True)
    stage: Mapped[str] = mapped_column(String(32), primary_key=True)

    brand_name: Mapped[str] = mapped_column(String(128), nullable=False)

    orders_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    orders_on_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    orders_on_risk: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    orders_breached: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_delay_sec: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    refreshed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
