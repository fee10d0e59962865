# sla_tracker/jobs/etl_sync.py
from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
from typing import Optional

from sla_tracker.core.config import AppSettings, get_settings
from sla_tracker.core.logging import setup_logging
from sla_tracker.db.session import Databases
from sla_tracker.services.etl_sync_service import EtlSyncService
from sla_tracker.services.etl_sync_types import CancelToken, SyncReport

logger = logging.getLogger("sla_tracker.jobs.etl_sync")


async def run_once(
    dbs: Databases,
    settings: AppSettings,
    *,
    brand: Optional[str] = None,
    country: Optional[str] = None,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> SyncReport:
    return await EtlSyncService(dbs, settings).run_sync(
        brand=brand,
        country=country,
        force=force,
        cancel_token=cancel_token,
    )


async def _main_async(args: argparse.Namespace) -> int:
    settings = get_settings()
    token = CancelToken()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # SIGINT/SIGTERM：当前表当前批写完后停止
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, token.cancel, f"signal {sig.name}")

    dbs = Databases.from_settings(settings).open()
    try:
        report = await run_once(
            dbs,
            settings,
            brand=args.brand,
            country=args.country,
            force=args.force,
            cancel_token=token,
        )
    finally:
        await dbs.close()

    print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    return 1 if report.has_failures else 0


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Sync master order tables into the analytics store")
    ap.add_argument("--brand", help="brand code or name (case-insensitive)")
    ap.add_argument("--country", help="country code, e.g. MY")
    ap.add_argument("--force", action="store_true", help="rebuild daily summaries of synced tables")
    args = ap.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.JSON_LOG)
    return asyncio.run(_main_async(args))


def run_cli() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run_cli()
