# sla_tracker/jobs/summary_cleanup.py
from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, Dict, Optional

from sla_tracker.core.config import get_settings
from sla_tracker.core.logging import setup_logging
from sla_tracker.db.session import Databases
from sla_tracker.services.integrity_service import IntegrityService


async def run_once(dbs: Databases, *, dry_run: bool = False) -> Dict[str, Any]:
    svc = IntegrityService(dbs)
    if dry_run:
        return await svc.cleanup_orphans(dry_run=True)
    return await svc.cleanup_with_report()


async def _main_async(args: argparse.Namespace) -> int:
    dbs = Databases.from_settings(get_settings()).open()
    try:
        report = await run_once(dbs, dry_run=args.dry_run)
    finally:
        await dbs.close()
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Delete daily summaries whose order table no longer exists")
    ap.add_argument("--dry-run", action="store_true", help="report only, delete nothing")
    args = ap.parse_args(argv)

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.JSON_LOG)
    return asyncio.run(_main_async(args))


def run_cli() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run_cli()
