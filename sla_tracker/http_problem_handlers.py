# sla_tracker/http_problem_handlers.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

from sla_tracker.api.problem import make_problem
from sla_tracker.core.errors import DatabaseUnavailableError, OrderNotFoundError

logger = logging.getLogger("sla_tracker.api")


def _new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


def _ctx(req: Request) -> Dict[str, Any]:
    return {"path": getattr(req.url, "path", ""), "method": req.method}


def _problem_from_http_exc(req: Request, exc: HTTPException) -> Dict[str, Any]:
    """
    HTTPException.detail → Problem 形状：
    - 已是 Problem（含 error_code/message）：补齐 http_status / trace_id / context
    - str / 其它：兜底为 http_error
    """
    status_code = int(exc.status_code)
    trace_id = _new_trace_id()
    d = exc.detail

    if isinstance(d, dict) and "error_code" in d and "message" in d:
        out = dict(d)
        out.setdefault("http_status", status_code)
        out.setdefault("trace_id", trace_id)
        merged = _ctx(req)
        if isinstance(out.get("context"), dict):
            merged.update(out["context"])
        out["context"] = merged
        return out

    msg = str(d) if d is not None else "request rejected"
    return make_problem(
        status_code=status_code,
        error_code="http_error",
        message=msg,
        context=_ctx(req),
        details=[{"type": "state", "reason": msg}],
        trace_id=trace_id,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def _unhandled_exc(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        logger.exception("UNHANDLED_EXC[%s]: %s", trace_id, exc)
        content = make_problem(
            status_code=500,
            error_code="internal_error",
            message="internal error, please retry later",
            context=_ctx(req),
            trace_id=trace_id,
        )
        return JSONResponse(status_code=500, content=content)

    async def _db_unavailable(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        store = getattr(exc, "store", None)
        logger.error("DB_UNAVAILABLE[%s] store=%s: %s", trace_id, store, exc)
        content = make_problem(
            status_code=503,
            error_code="database_unavailable",
            message=str(exc) if isinstance(exc, DatabaseUnavailableError) else "database connection failed",
            context={**_ctx(req), **({"store": store} if store else {})},
            details=[{"type": "connectivity", "reason": type(exc).__name__}],
            trace_id=trace_id,
        )
        return JSONResponse(status_code=503, content=content)

    app.add_exception_handler(DatabaseUnavailableError, _db_unavailable)
    app.add_exception_handler(OperationalError, _db_unavailable)
    app.add_exception_handler(InterfaceError, _db_unavailable)

    @app.exception_handler(OrderNotFoundError)
    async def _order_not_found(req: Request, exc: OrderNotFoundError):
        content = make_problem(
            status_code=404,
            error_code="order_not_found",
            message=str(exc),
            context=_ctx(req),
            details=[{"type": "not_found", "order_no": exc.order_no}],
            trace_id=_new_trace_id(),
        )
        return JSONResponse(status_code=404, content=content)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(req: Request, exc: RequestValidationError):
        details: List[Dict[str, Any]] = []
        for i, e in enumerate(exc.errors()):
            if not isinstance(e, dict):
                continue
            loc = ".".join(str(p) for p in e.get("loc") or ()) or f"validation[{i}]"
            details.append(
                {
                    "type": "validation",
                    "path": loc,
                    "reason": str(e.get("msg") or e.get("type") or "invalid"),
                }
            )
        content = make_problem(
            status_code=422,
            error_code="request_validation_error",
            message="invalid request parameters",
            context=_ctx(req),
            details=details,
            trace_id=_new_trace_id(),
        )
        return JSONResponse(status_code=422, content=content)

    @app.exception_handler(HTTPException)
    async def _http_exc(req: Request, exc: HTTPException):
        return JSONResponse(status_code=int(exc.status_code), content=_problem_from_http_exc(req, exc))
