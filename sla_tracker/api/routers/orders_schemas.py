# sla_tracker/api/routers/orders_schemas.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ClassifiedOrderModel(BaseModel):
    """
    订单行 + 统一分类结果：

    - stage           : Not Processed / Processed / Shipped / Delivered
    - sla_status      : On Time / At Risk / Breached / Unknown
    - pending_status  : pending / normal
    - pending_hours   : 当前阶段已停留小时数（仅 pending 时有值）
    - breach_severity : None / Urgent / Critical
    """

    model_config = ConfigDict(extra="allow")

    order_no: str
    table: str
    brand_code: str
    brand_name: str
    country_code: str
    country_name: str
    order_status: Optional[str] = None
    confirmation_status: Optional[str] = None
    placed_time: Optional[str] = None
    processed_time: Optional[str] = None
    shipped_time: Optional[str] = None
    delivered_time: Optional[str] = None
    processed_tat: Optional[str] = None
    shipped_tat: Optional[str] = None
    delivered_tat: Optional[str] = None

    stage: str
    sla_status: str
    pending_status: str
    pending_hours: Optional[float] = None
    breach_severity: str


class PaginationModel(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrdersPageModel(BaseModel):
    items: List[ClassifiedOrderModel]
    pagination: PaginationModel


class OrderDetailModel(ClassifiedOrderModel):
    stage_analysis: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    local_times: Dict[str, Optional[str]] = Field(default_factory=dict)
    tat_config: Optional[Dict[str, Any]] = None
