# sla_tracker/services/etl_sync_types.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sla_tracker.core.errors import JobCancelledError


class CancelToken:
    """协作式取消：在表与表、批与批之间检查。"""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise JobCancelledError(self.reason or "cancelled")


@dataclass
class TableSyncResult:
    """单表同步结果。"""

    brand: str
    country: str
    source_table: str
    target_table: str
    success: bool = False
    processed: int = 0
    failed_rows: int = 0
    error: Optional[str] = None
    duration_sec: float = 0.0
    summary: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "brand": self.brand,
            "country": self.country,
            "source_table": self.source_table,
            "target_table": self.target_table,
            "success": self.success,
            "processed": self.processed,
            "failed_rows": self.failed_rows,
            "duration_sec": round(self.duration_sec, 3),
        }
        if self.error:
            out["error"] = self.error
        if self.summary is not None:
            out["summary"] = self.summary
        return out


@dataclass
class SyncReport:
    results: List[TableSyncResult] = field(default_factory=list)
    timed_out: bool = False
    cancelled: bool = False

    @property
    def total_jobs(self) -> int:
        return len(self.results)

    @property
    def successful_jobs(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_jobs(self) -> int:
        return self.total_jobs - self.successful_jobs

    @property
    def total_processed(self) -> int:
        return sum(r.processed for r in self.results)

    @property
    def has_failures(self) -> bool:
        return self.failed_jobs > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "total_jobs": self.total_jobs,
                "successful_jobs": self.successful_jobs,
                "failed_jobs": self.failed_jobs,
                "total_processed": self.total_processed,
                "total_failed_rows": sum(r.failed_rows for r in self.results),
                "timed_out": self.timed_out,
                "cancelled": self.cancelled,
            },
            "results": [r.to_dict() for r in self.results],
        }
