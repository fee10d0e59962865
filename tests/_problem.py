# tests/_problem.py
from __future__ import annotations

from typing import Any, Dict


def as_problem(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    断言 API 错误响应为顶层 Problem 形状并原样返回。
    """
    assert isinstance(payload, dict), payload
    for key in ("error_code", "message", "http_status"):
        assert key in payload, f"missing {key!r} in problem payload: {payload}"
    return payload
