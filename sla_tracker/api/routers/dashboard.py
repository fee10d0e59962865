# sla_tracker/api/routers/dashboard.py
from __future__ import annotations

from fastapi import APIRouter

from sla_tracker.api.routers import dashboard_routes

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
)


def _register_all_routes() -> None:
    dashboard_routes.register(router)


_register_all_routes()

__all__ = ["router"]
