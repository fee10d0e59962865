# sla_tracker/api/routers/etl_schemas.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class JobTriggerIn(BaseModel):
    """同步 / 汇总作业触发参数（品牌、国家均不区分大小写）。"""

    brand: Optional[str] = Field(None, description="品牌编码或展示名，如 vs / Victoria's Secret")
    country: Optional[str] = Field(None, description="国家编码，如 MY")
    force: bool = Field(False, description="同步：强制重建汇总；汇总：覆盖已存在的汇总")


class TableSyncResultModel(BaseModel):
    brand: str
    country: str
    source_table: str
    target_table: str
    success: bool
    processed: int = Field(..., description="成功 upsert 的行数")
    failed_rows: int = Field(0, description="upsert 失败被跳过的行数")
    duration_sec: float = 0.0
    error: Optional[str] = None
    summary: Optional[Dict[str, Any]] = Field(None, description="该表的每日汇总生成结果")


class SyncSummaryModel(BaseModel):
    total_jobs: int
    successful_jobs: int
    failed_jobs: int
    total_processed: int
    total_failed_rows: int = 0
    timed_out: bool = False
    cancelled: bool = False


class SyncResponseModel(BaseModel):
    summary: SyncSummaryModel
    results: List[TableSyncResultModel]


class SummaryResultModel(BaseModel):
    brand: str
    country: str
    table: str
    success: bool
    skipped: bool = False
    records_processed: int = 0
    summary_records: int = 0
    message: Optional[str] = None
    error: Optional[str] = None


class SummaryTotalsModel(BaseModel):
    total_tables_processed: int
    successful_generations: int
    failed_generations: int
    skipped_tables: int = 0
    total_records_processed: int
    total_summary_records: int
    timed_out: bool = False


class GenerateSummaryResponseModel(BaseModel):
    summary: SummaryTotalsModel
    results: List[SummaryResultModel]


class OrphanRecordModel(BaseModel):
    brand_name: str
    brand_code: str
    country_code: str
    missing_table: Optional[str] = None
    record_count: int
    reason: str


class CleanupResponseModel(BaseModel):
    orphaned_records: List[OrphanRecordModel]
    total_orphaned: int
    cleanup_performed: bool
    deleted_records: int = 0
    post_cleanup_integrity: Optional[Dict[str, int]] = None
    recommendations: Optional[List[str]] = None


class DiscoveredTableModel(BaseModel):
    source_table: str
    brand_code: str
    brand_name: str
    country_code: str
    target_table: str
    target_exists: bool
    payments_table: Optional[str] = None
    shipments_table: Optional[str] = None
