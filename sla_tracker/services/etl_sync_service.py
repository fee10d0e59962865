# sla_tracker/services/etl_sync_service.py
"""
ETL 同步：主库 <brandpart>_<cc>_orders → 分析库 orders_<brand>_<cc>。

- 每张源表是独立的工作单元：一张表失败不影响其它表
- 行级 upsert 失败记录日志后跳过
- 同表内按 chunk 并发写入，并发度受 SYNC_MAX_WORKERS 限制
- 协作式取消（CancelToken）+ 整体超时（JOB_TIMEOUT_SEC）
- 连接故障（OperationalError / InterfaceError）不算单表失败，整个同步以 DatabaseUnavailableError 结束
"""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import MetaData, Table
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError

from sla_tracker.core.config import AppSettings
from sla_tracker.core.errors import DatabaseUnavailableError, JobCancelledError, SchemaMismatchError
from sla_tracker.db.session import Databases
from sla_tracker.metrics import ETL_ROW_ERRS, ETL_ROWS, ETL_TABLE_SECONDS, ETL_TABLES
from sla_tracker.models.order_table import build_order_table
from sla_tracker.services.daily_summary_service import DailySummaryService
from sla_tracker.services.etl_sync_types import CancelToken, SyncReport, TableSyncResult
from sla_tracker.services.etl_upsert import build_source_select, build_upsert, normalize_row
from sla_tracker.services.table_registry import SourceTable, TableRegistry, discover_source_tables

logger = logging.getLogger("sla_tracker.etl")


def _reflect_source(sync_conn, src: SourceTable) -> Tuple[Table, Optional[Table], Optional[Table]]:
    md = MetaData()
    orders = Table(src.name, md, autoload_with=sync_conn)
    payments = Table(src.payments_name, md, autoload_with=sync_conn) if src.payments_name else None
    shipments = Table(src.shipments_name, md, autoload_with=sync_conn) if src.shipments_name else None
    return orders, payments, shipments


def _matches(src: SourceTable, brand: Optional[str], country: Optional[str]) -> bool:
    if brand:
        b = brand.strip().lower()
        if b not in (src.brand_code, src.brand_part.lower(), src.brand_name.lower()):
            return False
    if country and country.strip().upper() != src.country_code:
        return False
    return True


class EtlSyncService:
    def __init__(self, dbs: Databases, settings: AppSettings) -> None:
        self.dbs = dbs
        self.settings = settings

    async def discover(self, *, create_missing: bool = False) -> List[Dict[str, Any]]:
        """列出源表及其目标表；create_missing=True 时补建缺失的目标表。"""
        sources = await discover_source_tables(self.dbs.master)
        registry = await TableRegistry.discover(self.dbs.analytics)
        out: List[Dict[str, Any]] = []
        for src in sources:
            exists = registry.get(src.brand_code, src.country_code) is not None
            if not exists and create_missing:
                await self._ensure_target(build_order_table(src.target_name))
                exists = True
            out.append(
                {
                    "source_table": src.name,
                    "brand_code": src.brand_code,
                    "brand_name": src.brand_name,
                    "country_code": src.country_code,
                    "target_table": src.target_name,
                    "target_exists": exists,
                    "payments_table": src.payments_name,
                    "shipments_table": src.shipments_name,
                }
            )
        return out

    async def run_sync(
        self,
        *,
        brand: Optional[str] = None,
        country: Optional[str] = None,
        force: bool = False,
        now: Optional[datetime] = None,
        cancel_token: Optional[CancelToken] = None,
        with_summary: bool = True,
    ) -> SyncReport:
        now = now or datetime.now(UTC)
        token = cancel_token or CancelToken()

        await self.dbs.ensure_reachable()
        sources = [s for s in await discover_source_tables(self.dbs.master) if _matches(s, brand, country)]
        logger.info("ETL_SYNC_START tables=%d brand=%s country=%s force=%s", len(sources), brand, country, force)

        report = SyncReport()
        pending = list(sources)
        summarizing: Optional[TableSyncResult] = None
        try:
            async with asyncio.timeout(self.settings.JOB_TIMEOUT_SEC):
                while pending:
                    src = pending[0]
                    if token.cancelled:
                        break
                    result = await self.sync_table(src, now=now, token=token)
                    # 行已落库：先记结果，汇总超时不影响本表的同步结论
                    report.results.append(result)
                    pending.pop(0)
                    if result.success and with_summary:
                        summarizing = result
                        result.summary = await self._refresh_summary(src, force=force, now=now)
                        summarizing = None
        except TimeoutError:
            report.timed_out = True
            if summarizing is not None:
                summarizing.summary = {"error": "timeout"}
            logger.error("ETL_SYNC_TIMEOUT after %.0fs, %d table(s) not finished", self.settings.JOB_TIMEOUT_SEC, len(pending))

        if pending:
            reason = "timeout" if report.timed_out else (token.reason or "cancelled")
            for src in pending:
                report.results.append(
                    TableSyncResult(
                        brand=src.brand_code,
                        country=src.country_code,
                        source_table=src.name,
                        target_table=src.target_name,
                        error=reason,
                    )
                )
                ETL_TABLES.labels(result="failed").inc()

        report.cancelled = token.cancelled and not report.timed_out
        logger.info(
            "ETL_SYNC_DONE jobs=%d ok=%d failed=%d processed=%d",
            report.total_jobs,
            report.successful_jobs,
            report.failed_jobs,
            report.total_processed,
        )
        return report

    async def sync_table(
        self,
        src: SourceTable,
        *,
        now: datetime,
        token: Optional[CancelToken] = None,
    ) -> TableSyncResult:
        token = token or CancelToken()
        result = TableSyncResult(
            brand=src.brand_code,
            country=src.country_code,
            source_table=src.name,
            target_table=src.target_name,
        )
        t0 = time.perf_counter()
        logger.info("ETL_TABLE_START %s -> %s", src.name, src.target_name)

        store = "master"
        try:
            async with self.dbs.master.connect() as conn:
                orders, payments, shipments = await conn.run_sync(_reflect_source, src)
            stmt = build_source_select(orders, payments, shipments)

            target = build_order_table(src.target_name)
            store = "analytics"
            await self._ensure_target(target)

            batch = self.settings.SYNC_BATCH_SIZE
            offset = 0
            while True:
                token.raise_if_cancelled()
                store = "master"
                async with self.dbs.master.connect() as conn:
                    rows = (await conn.execute(stmt.limit(batch).offset(offset))).mappings().all()
                if not rows:
                    break

                records = {}
                for r in rows:
                    rec = normalize_row(r, src, now)
                    if rec["order_no"]:
                        records[rec["order_no"]] = rec
                store = "analytics"
                ok, failed = await self._upsert_records(target, list(records.values()), src, token)
                result.processed += ok
                result.failed_rows += failed

                offset += len(rows)
                if len(rows) < batch:
                    break

            token.raise_if_cancelled()
            result.success = True
        except SchemaMismatchError as e:
            result.error = str(e)
            logger.error("ETL_TABLE_SCHEMA_MISMATCH %s: %s", src.name, e)
        except JobCancelledError as e:
            result.error = str(e) or "cancelled"
            logger.warning("ETL_TABLE_CANCELLED %s processed=%d", src.name, result.processed)
        except (OperationalError, InterfaceError) as e:
            # 连接层故障：整个同步失败，不按单表失败处理
            logger.error("ETL_TABLE_DB_UNAVAILABLE %s store=%s err=%s", src.name, store, e)
            raise DatabaseUnavailableError(store, str(e)) from e
        except SQLAlchemyError as e:
            result.error = f"{type(e).__name__}: {e}"
            logger.exception("ETL_TABLE_FAILED %s", src.name)

        result.duration_sec = time.perf_counter() - t0
        ETL_TABLE_SECONDS.observe(result.duration_sec)
        ETL_TABLES.labels(result="ok" if result.success else "failed").inc()
        logger.info(
            "ETL_TABLE_DONE %s ok=%s processed=%d failed_rows=%d",
            src.name,
            result.success,
            result.processed,
            result.failed_rows,
        )
        return result

    # —— 内部 —— #

    async def _ensure_target(self, target: Table) -> None:
        async with self.dbs.analytics.begin() as conn:
            await conn.run_sync(target.metadata.create_all, tables=[target], checkfirst=True)

    async def _upsert_records(
        self,
        target: Table,
        records: List[Dict[str, Any]],
        src: SourceTable,
        token: CancelToken,
    ) -> Tuple[int, int]:
        if not records:
            return 0, 0

        engine = self.dbs.analytics
        stmt = build_upsert(target, engine.dialect.name)
        size = self.settings.SYNC_CHUNK_SIZE
        chunks = [records[i : i + size] for i in range(0, len(records), size)]
        sem = asyncio.Semaphore(self.settings.SYNC_MAX_WORKERS)

        async def _worker(chunk: Sequence[Dict[str, Any]]) -> Tuple[int, int]:
            async with sem:
                if token.cancelled:
                    return 0, 0
                try:
                    async with engine.begin() as conn:
                        await conn.execute(stmt, list(chunk))
                    return len(chunk), 0
                except SQLAlchemyError as e:
                    logger.warning("UPSERT_CHUNK_FAILED %s size=%d err=%s; retry row by row", target.name, len(chunk), e)

                ok = failed = 0
                for rec in chunk:
                    try:
                        async with engine.begin() as conn:
                            await conn.execute(stmt, [rec])
                        ok += 1
                    except SQLAlchemyError as e:
                        failed += 1
                        logger.warning("UPSERT_ROW_FAILED %s order_no=%s err=%s", target.name, rec.get("order_no"), e)
                return ok, failed

        done = await asyncio.gather(*(_worker(c) for c in chunks))
        ok = sum(d[0] for d in done)
        failed = sum(d[1] for d in done)

        ETL_ROWS.labels(brand=src.brand_code, country=src.country_code).inc(ok)
        if failed:
            ETL_ROW_ERRS.labels(brand=src.brand_code, country=src.country_code).inc(failed)
        return ok, failed

    async def _refresh_summary(self, src: SourceTable, *, force: bool, now: datetime) -> Dict[str, Any]:
        registry = TableRegistry()
        tenant = registry.register(src.brand_code, src.country_code)
        res = await DailySummaryService(self.dbs, self.settings).generate_for_table(tenant, force=force, now=now)
        return res.to_dict()
