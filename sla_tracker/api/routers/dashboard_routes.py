# sla_tracker/api/routers/dashboard_routes.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from sla_tracker.api.deps import get_app_settings, get_databases, get_now
from sla_tracker.api.problem import raise_422
from sla_tracker.api.routers.dashboard_schemas import (
    DashboardSummaryModel,
    FiltersModel,
    LiveSummaryModel,
    TatConfigModel,
)
from sla_tracker.core.config import AppSettings
from sla_tracker.db.session import Databases
from sla_tracker.services.dashboard_service import DashboardService
from sla_tracker.services.live_kpi_service import LiveKpiService


def _check_range(from_date: Optional[date], to_date: Optional[date]) -> None:
    if from_date and to_date and from_date > to_date:
        raise_422("invalid_date_range", "from_date must not be after to_date")


def register(router: APIRouter) -> None:
    @router.get("/summary", response_model=DashboardSummaryModel)
    async def dashboard_summary(
        brand: Optional[str] = Query(None),
        country: Optional[str] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
    ) -> DashboardSummaryModel:
        """历史看板（来自 sla_daily_summary）。"""
        _check_range(from_date, to_date)
        data = await DashboardService(dbs, settings).summary(
            brand=brand, country=country, from_date=from_date, to_date=to_date
        )
        return DashboardSummaryModel.model_validate(data)

    @router.get("/live", response_model=LiveSummaryModel)
    async def dashboard_live(
        brand: Optional[str] = Query(None),
        country: Optional[str] = Query(None),
        from_date: Optional[date] = Query(None, description="下单日期起（含）"),
        to_date: Optional[date] = Query(None, description="下单日期止（含）"),
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
        now: datetime = Depends(get_now),
    ) -> LiveSummaryModel:
        """实时 KPI：已确认订单按 now 现场分类。"""
        _check_range(from_date, to_date)
        data = await LiveKpiService(dbs, settings).live_summary(
            brand=brand, country=country, from_date=from_date, to_date=to_date, now=now
        )
        return LiveSummaryModel.model_validate(data)

    @router.get("/health")
    async def dashboard_health(
        brand: Optional[str] = Query(None),
        country: Optional[str] = Query(None),
        days: int = Query(7, ge=1, le=90),
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
        now: datetime = Depends(get_now),
    ) -> Dict[str, Any]:
        return await DashboardService(dbs, settings).health(brand=brand, country=country, days=days, now=now)

    @router.get("/filters", response_model=FiltersModel)
    async def dashboard_filters(
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
    ) -> FiltersModel:
        return FiltersModel.model_validate(await DashboardService(dbs, settings).filters())

    @router.get("/tat-configs", response_model=List[TatConfigModel])
    async def list_tat_configs(
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
    ) -> List[TatConfigModel]:
        return [TatConfigModel(**c) for c in await DashboardService(dbs, settings).tat_configs()]
