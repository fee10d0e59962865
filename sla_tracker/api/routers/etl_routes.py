# sla_tracker/api/routers/etl_routes.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from sla_tracker.api.deps import get_app_settings, get_databases, get_now
from sla_tracker.api.routers.etl_helpers import batch_response, summary_has_failures
from sla_tracker.api.routers.etl_schemas import (
    CleanupResponseModel,
    DiscoveredTableModel,
    GenerateSummaryResponseModel,
    JobTriggerIn,
    SyncResponseModel,
)
from sla_tracker.core.config import AppSettings
from sla_tracker.db.session import Databases
from sla_tracker.services.daily_summary_service import DailySummaryService
from sla_tracker.services.etl_sync_service import EtlSyncService
from sla_tracker.services.integrity_service import IntegrityService


def register(router: APIRouter) -> None:
    @router.post("/sync", response_model=SyncResponseModel, responses={207: {"model": SyncResponseModel}})
    async def trigger_sync(
        body: Optional[JobTriggerIn] = None,
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
        now: datetime = Depends(get_now),
    ):
        """
        主库 → 分析库同步：

        - 逐表 upsert；单表 / 单行失败不影响其它
        - 每表同步成功后生成该表每日汇总（force=true 时重建）
        - 有任一表失败返回 207
        """
        body = body or JobTriggerIn()
        report = await EtlSyncService(dbs, settings).run_sync(
            brand=body.brand, country=body.country, force=body.force, now=now
        )
        model = SyncResponseModel.model_validate(report.to_dict())
        return batch_response(model, has_failures=report.has_failures)

    @router.post(
        "/generate-summary",
        response_model=GenerateSummaryResponseModel,
        responses={207: {"model": GenerateSummaryResponseModel}},
    )
    async def trigger_generate_summary(
        body: Optional[JobTriggerIn] = None,
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
        now: datetime = Depends(get_now),
    ):
        body = body or JobTriggerIn()
        report = await DailySummaryService(dbs, settings).generate(
            brand=body.brand, country=body.country, force=body.force, now=now
        )
        model = GenerateSummaryResponseModel.model_validate(report)
        return batch_response(model, has_failures=summary_has_failures(report))

    @router.get("/cleanup", response_model=CleanupResponseModel)
    async def preview_cleanup(dbs: Databases = Depends(get_databases)) -> CleanupResponseModel:
        """孤儿汇总预览（不删除）。"""
        return CleanupResponseModel.model_validate(await IntegrityService(dbs).cleanup_orphans(dry_run=True))

    @router.post("/cleanup", response_model=CleanupResponseModel)
    async def trigger_cleanup(dbs: Databases = Depends(get_databases)) -> CleanupResponseModel:
        """删除孤儿汇总，并返回清理后的完整性指标与建议。"""
        return CleanupResponseModel.model_validate(await IntegrityService(dbs).cleanup_with_report())

    @router.get("/status")
    async def etl_status(
        dbs: Databases = Depends(get_databases),
        now: datetime = Depends(get_now),
    ) -> Dict[str, Any]:
        return await IntegrityService(dbs).etl_status(now=now)

    @router.get("/validate")
    async def validate_integrity(dbs: Databases = Depends(get_databases)) -> Dict[str, Any]:
        return await IntegrityService(dbs).validate()

    @router.get("/discover", response_model=List[DiscoveredTableModel])
    async def discover_tables(
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
    ) -> List[DiscoveredTableModel]:
        return [DiscoveredTableModel(**d) for d in await EtlSyncService(dbs, settings).discover()]

    @router.post("/discover", response_model=List[DiscoveredTableModel])
    async def discover_and_create_tables(
        create_missing: bool = Query(True, description="是否补建缺失的分析库订单表"),
        dbs: Databases = Depends(get_databases),
        settings: AppSettings = Depends(get_app_settings),
    ) -> List[DiscoveredTableModel]:
        items = await EtlSyncService(dbs, settings).discover(create_missing=create_missing)
        return [DiscoveredTableModel(**d) for d in items]
