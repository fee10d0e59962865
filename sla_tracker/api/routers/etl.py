# sla_tracker/api/routers/etl.py
from __future__ import annotations

from fastapi import APIRouter

from sla_tracker.api.routers import etl_routes

router = APIRouter(
    prefix="/etl",
    tags=["etl"],
)


def _register_all_routes() -> None:
    etl_routes.register(router)


_register_all_routes()

__all__ = ["router"]
