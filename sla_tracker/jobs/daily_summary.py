# sla_tracker/jobs/daily_summary.py
from __future__ import annotations

import argparse
import asyncio
import json
from datetime import datetime
from typing import Any, Dict, Optional

from sla_tracker.core.config import AppSettings, get_settings
from sla_tracker.core.logging import setup_logging
from sla_tracker.db.session import Databases
from sla_tracker.services.daily_summary_service import DailySummaryService


async def run_once(
    dbs: Databases,
    settings: AppSettings,
    *,
    brand: Optional[str] = None,
    country: Optional[str] = None,
    force: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    return await DailySummaryService(dbs, settings).generate(brand=brand, country=country, force=force, now=now)


async def _main_async(args: argparse.Namespace) -> int:
    settings = get_settings()
    dbs = Databases.from_settings(settings).open()
    try:
        report = await run_once(dbs, settings, brand=args.brand, country=args.country, force=args.force)
    finally:
        await dbs.close()

    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 1 if report["summary"]["failed_generations"] else 0


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Generate sla_daily_summary rows per brand/country table")
    ap.add_argument("--brand")
    ap.add_argument("--country")
    ap.add_argument("--force", action="store_true", help="overwrite existing summaries")
    args = ap.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.JSON_LOG)
    return asyncio.run(_main_async(args))


def run_cli() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run_cli()
