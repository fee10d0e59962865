# sla_tracker/metrics.py
from __future__ import annotations

import os

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client import multiprocess

# ETL
ETL_ROWS = Counter("sla_etl_rows_upserted_total", "Rows upserted by ETL sync", ["brand", "country"])
ETL_ROW_ERRS = Counter("sla_etl_row_failures_total", "Rows skipped after upsert failure", ["brand", "country"])
ETL_TABLES = Counter("sla_etl_tables_total", "Tables synced", ["result"])
ETL_TABLE_SECONDS = Histogram("sla_etl_table_seconds", "Per-table sync duration (seconds)")

# 汇总 / 清理
SUMMARY_ROWS = Counter("sla_summary_rows_written_total", "Daily summary rows written", ["brand", "country"])
CLEANUP_DELETED = Counter("sla_cleanup_orphans_deleted_total", "Orphaned summary rows deleted")

router = APIRouter()


@router.get("/metrics")
def metrics() -> Response:
    """
    单进程直接导出默认 REGISTRY；
    设置了 PROMETHEUS_MULTIPROC_DIR 时用 MultiProcessCollector 合并各进程分片。
    """
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        payload = generate_latest(registry)
    else:
        payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
