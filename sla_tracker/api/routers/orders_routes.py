# sla_tracker/api/routers/orders_routes.py
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from sla_tracker.api.deps import get_app_settings, get_databases, get_now
from sla_tracker.api.problem import raise_422
from sla_tracker.api.routers.orders_schemas import OrderDetailModel, OrdersPageModel
from sla_tracker.core.config import AppSettings
from sla_tracker.db.session import Databases
from sla_tracker.services.order_query_service import OrderFilters, OrderQueryService


def register(router: APIRouter) -> None:
    @router.get("", response_model=OrdersPageModel)
    async def list_orders(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        brand: Optional[str] = Query(None, description="品牌编码或展示名"),
        country: Optional[str] = Query(None, description="国家编码"),
        order_no: Optional[str] = Query(None, description="订单号模糊匹配"),
        order_status: Optional[str] = Query(None),
        confirmation_status: Optional[str] = Query(None),
        stage: Optional[str] = Query(None, description="Not Processed / Processed / Shipped / Delivered"),
        sla_status: Optional[str] = Query(None, description="On Time / At Risk / Breached / Unknown"),
        pending_status: Optional[str] = Query(None, description="pending / normal"),
        breach_severity: Optional[str] = Query(None, description="None / Urgent / Critical"),
        from_date: Optional[date] = Query(None, description="下单日期起（含）"),
        to_date: Optional[date] = Query(None, description="下单日期止（含）"),
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
        now: datetime = Depends(get_now),
    ) -> OrdersPageModel:
        if from_date and to_date and from_date > to_date:
            raise_422("invalid_date_range", "from_date must not be after to_date")

        filters = OrderFilters(
            brand=brand,
            country=country,
            order_no=order_no,
            order_status=order_status,
            confirmation_status=confirmation_status,
            stage=stage,
            sla_status=sla_status,
            pending_status=pending_status,
            breach_severity=breach_severity,
            from_date=from_date,
            to_date=to_date,
        )
        data = await OrderQueryService(dbs, settings).list_orders(filters, page=page, limit=limit, now=now)
        return OrdersPageModel.model_validate(data)

    @router.get("/{order_no}", response_model=OrderDetailModel)
    async def get_order(
        order_no: str,
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
        now: datetime = Depends(get_now),
    ) -> OrderDetailModel:
        """按订单号跨全部品牌 / 国家表查找，附逐阶段分析。"""
        data = await OrderQueryService(dbs, settings).get_order(order_no, now=now)
        return OrderDetailModel.model_validate(data)
