from datetime import date

from sla_tracker.domain.sla import Stage, TatPolicy
from sla_tracker.services.daily_summary_service import aggregate_stage_crossings
from sla_tracker.services.integrity_service import find_anomalies, recommendations

POLICY = TatPolicy.from_config({"processed_tat": "2 h", "shipped_tat": "1 d", "delivered_tat": "3 d", "risk_pct": 80})


def _row(**kw):
    base = {"placed_time": None, "processed_time": None, "shipped_time": None, "delivered_time": None}
    base.update(kw)
    return base


def test_aggregate_stage_crossings_dates_by_crossing_day():
    rows = [
        _row(
            placed_time="2025-06-30T23:00:00",
            processed_time="2025-07-01T00:30:00",
            shipped_time="2025-07-02T02:00:00",
        ),
        _row(placed_time="2025-07-01T10:00:00", processed_time="2025-07-01T13:00:00"),
    ]
    buckets = aggregate_stage_crossings(rows, POLICY)

    processed = buckets[(date(2025, 7, 1), Stage.PROCESSED)]
    assert (processed.total, processed.on_time, processed.breached) == (2, 1, 1)
    assert processed.avg_delay_sec == 3600

    shipped = buckets[(date(2025, 7, 2), Stage.SHIPPED)]
    # 27h > 24h
    assert (shipped.total, shipped.breached, shipped.avg_delay_sec) == (1, 1, 3 * 3600)
    assert (date(2025, 6, 30), Stage.PROCESSED) not in buckets


def test_aggregate_stage_crossings_without_policy_is_unknown():
    rows = [_row(placed_time="2025-07-01T10:00:00", processed_time="2025-07-01T11:00:00")]
    buckets = aggregate_stage_crossings(rows, None)
    assert len(buckets) == 1
    (b,) = buckets.values()
    assert (b.total, b.on_time, b.on_risk, b.breached) == (1, 0, 0, 0)


def test_find_anomalies_kinds():
    common = {"summary_date": date(2025, 7, 1), "brand_code": "vs", "country_code": "MY"}
    rows = [
        dict(common, stage="Processed", orders_total=0, orders_on_time=0, orders_on_risk=0, orders_breached=0),
        dict(common, stage="Shipped", orders_total=2, orders_on_time=3, orders_on_risk=0, orders_breached=0),
        dict(common, stage="Delivered", orders_total=2, orders_on_time=1, orders_on_risk=1, orders_breached=0),
    ]
    out = find_anomalies(rows)
    assert [a["issues"] for a in out] == [["zero_orders"], ["bucket_overflow", "bucket_mismatch"]]
    assert out[1]["summary_date"] == "2025-07-01"


def test_recommendations_when_clean():
    integrity = {"summary": {"tat_issues": 0, "anomalies": 0, "orphaned_records": 0}}
    assert recommendations({"cleanup_performed": False, "deleted_records": 0}, integrity) == ["No action needed."]
