# sla_tracker/api/routers/orders.py
from __future__ import annotations

from fastapi import APIRouter

from sla_tracker.api.routers import orders_routes

router = APIRouter(
    prefix="/orders",
    tags=["orders"],
)


def _register_all_routes() -> None:
    orders_routes.register(router)


_register_all_routes()

__all__ = ["router"]
