# sla_tracker/router_mount.py
from __future__ import annotations

from fastapi import FastAPI


def mount_routers(app: FastAPI) -> None:
    # ---------------------------------------------------------------------------
    # routers imports
    # ---------------------------------------------------------------------------
    from sla_tracker.api.routers.dashboard import router as dashboard_router
    from sla_tracker.api.routers.etl import router as etl_router
    from sla_tracker.api.routers.orders import router as orders_router
    from sla_tracker.metrics import router as metrics_router

    # ---------------------------------------------------------------------------
    # 作业触发：sync / generate-summary / cleanup / status / validate / discover
    # ---------------------------------------------------------------------------
    app.include_router(etl_router)

    # ---------------------------------------------------------------------------
    # 读接口：订单 / 看板
    # ---------------------------------------------------------------------------
    app.include_router(orders_router)
    app.include_router(dashboard_router)

    # ---------------------------------------------------------------------------
    # 观测
    # ---------------------------------------------------------------------------
    app.include_router(metrics_router)
