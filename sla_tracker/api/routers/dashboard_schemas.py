# sla_tracker/api/routers/dashboard_schemas.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class LiveKpisModel(BaseModel):
    placed_orders: int = Field(..., description="已确认订单数")
    pending_orders: int = Field(..., description="当前阶段停留超限的订单数")
    breached_pending_orders: int = Field(..., description="未签收且已超时")
    at_risk_pending_orders: int = Field(..., description="未签收、At Risk 且停滞")
    at_risk_orders: int = Field(..., description="未签收且 At Risk")
    fulfilled_orders: int = Field(..., description="已签收且 On Time / At Risk")
    fulfilled_breached_orders: int = Field(..., description="已签收但超时")
    total_urgent_orders: int
    total_critical_orders: int
    unknown_orders: int = Field(..., description="缺 TAT 配置等原因无法判定的订单")
    completion_rate: float = Field(..., description="签收率（%）")
    fulfillment_rate: float = Field(..., description="按时签收率（%）")
    last_refresh: Optional[str] = Field(None, description="最近一次同步时间")


class LiveStageRowModel(BaseModel):
    stage: str
    total: int
    on_time: int
    on_risk: int
    breached: int
    unknown: int
    pending: int
    urgent: int
    critical: int


class HistoricalStageRowModel(BaseModel):
    stage: str
    total: int
    on_time: int
    on_risk: int
    breached: int
    avg_delay_hours: float


class LiveSummaryModel(BaseModel):
    kpis: LiveKpisModel
    stage_breakdown: List[LiveStageRowModel]
    historical_stage_breakdown: List[HistoricalStageRowModel]
    generated_at: str


class SummaryKpisModel(BaseModel):
    total_orders: int
    sla_breached: int
    on_risk: int
    completed: int


class ChartPointModel(BaseModel):
    stage: str
    on_time: int
    on_risk: int
    breached: int


class SummaryStageRowModel(BaseModel):
    stage: str
    total: int
    on_time: int
    on_risk: int
    breached: int
    avg_delay_hours: float


class DashboardSummaryModel(BaseModel):
    kpis: SummaryKpisModel
    chart_data: List[ChartPointModel]
    stage_breakdown: List[SummaryStageRowModel]


class FilterOptionModel(BaseModel):
    code: str
    name: str


class FiltersModel(BaseModel):
    source: str
    brands: List[FilterOptionModel]
    countries: List[FilterOptionModel]


class TatConfigModel(BaseModel):
    brand_code: str
    brand_name: str
    country_code: str
    processed_tat: Optional[str] = None
    shipped_tat: Optional[str] = None
    delivered_tat: Optional[str] = None
    risk_pct: int
    urgent_pct: Optional[int] = None
    critical_pct: Optional[int] = None
    pending_not_processed_time: Optional[str] = None
    pending_processed_time: Optional[str] = None
    pending_shipped_time: Optional[str] = None
