# tests/jobs/test_jobs.py
from __future__ import annotations

import json

import pytest
from sqlalchemy import create_engine

from sla_tracker.core.config import get_settings
from sla_tracker.db.base import Base, init_models
from sla_tracker.jobs import daily_summary, etl_sync, summary_cleanup


@pytest.mark.asyncio
async def test_job_entrypoints_share_services(seeded, settings):
    report = await etl_sync.run_once(seeded, settings, brand="vs")
    assert report.total_jobs == 1
    assert not report.has_failures

    summary = await daily_summary.run_once(seeded, settings, brand="vs", force=True)
    assert summary["summary"]["total_summary_records"] == 8

    cleanup = await summary_cleanup.run_once(seeded, dry_run=True)
    assert cleanup["total_orphaned"] == 0


def test_cleanup_cli_dry_run(tmp_path, monkeypatch, capsys):
    analytics = tmp_path / "analytics.db"
    init_models()
    engine = create_engine(f"sqlite:///{analytics}")
    Base.metadata.create_all(engine)
    engine.dispose()

    monkeypatch.setenv("SLA_MASTER_DATABASE_URL", f"sqlite:///{tmp_path / 'master.db'}")
    monkeypatch.setenv("SLA_ANALYTICS_DATABASE_URL", f"sqlite:///{analytics}")
    get_settings.cache_clear()
    try:
        rc = summary_cleanup.main(["--dry-run"])
    finally:
        get_settings.cache_clear()

    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["cleanup_performed"] is False
    assert out["orphaned_records"] == []
