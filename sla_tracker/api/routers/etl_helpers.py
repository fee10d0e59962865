# sla_tracker/api/routers/etl_helpers.py
from __future__ import annotations

from typing import Any, Dict

from fastapi.responses import JSONResponse
from pydantic import BaseModel


def batch_response(model: BaseModel, *, has_failures: bool) -> JSONResponse:
    """批处理接口：全部成功 200，部分失败 207（始终带逐项结果）。"""
    return JSONResponse(status_code=207 if has_failures else 200, content=model.model_dump(mode="json"))


def summary_has_failures(report: Dict[str, Any]) -> bool:
    return int(report["summary"]["failed_generations"]) > 0
