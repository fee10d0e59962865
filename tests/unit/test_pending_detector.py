from datetime import UTC, datetime, timedelta

from sla_tracker.domain.sla import OrderTimeline, PendingStatus, TatPolicy, detect_pending

NOW = datetime(2025, 7, 2, 12, 0, tzinfo=UTC)

POLICY = TatPolicy.from_config(
    {
        "processed_tat": "2 h",
        "shipped_tat": "1 d",
        "delivered_tat": "3 d",
        "pending_not_processed_time": "2 h",
        "pending_processed_time": "12 h",
        "pending_shipped_time": "2 d",
    }
)


def ago(**kw) -> datetime:
    return (NOW - timedelta(**kw)).replace(tzinfo=None)


def test_not_processed_over_threshold_is_pending():
    res = detect_pending(OrderTimeline(placed_time=ago(hours=3)), NOW, POLICY)
    assert res.status is PendingStatus.PENDING
    assert res.is_pending
    assert res.hours == 3.0


def test_not_processed_at_threshold_is_normal():
    res = detect_pending(OrderTimeline(placed_time=ago(hours=2)), NOW, POLICY)
    assert res.status is PendingStatus.NORMAL
    assert res.hours is None


def test_processed_measures_from_processed_time():
    tl = OrderTimeline(placed_time=ago(days=5), processed_time=ago(hours=6))
    assert detect_pending(tl, NOW, POLICY).status is PendingStatus.NORMAL

    tl = OrderTimeline(placed_time=ago(days=5), processed_time=ago(hours=12, minutes=30))
    res = detect_pending(tl, NOW, POLICY)
    assert res.status is PendingStatus.PENDING
    assert res.hours == 12.5


def test_shipped_measures_from_shipped_time_even_when_processed_skipped():
    tl = OrderTimeline(placed_time=ago(days=4), shipped_time=ago(days=3))
    res = detect_pending(tl, NOW, POLICY)
    assert res.status is PendingStatus.PENDING
    assert res.hours == 72.0

    tl = OrderTimeline(placed_time=ago(days=4), shipped_time=ago(days=1))
    assert detect_pending(tl, NOW, POLICY).status is PendingStatus.NORMAL


def test_delivered_is_never_pending():
    tl = OrderTimeline(placed_time=ago(days=30), delivered_time=ago(days=20))
    assert detect_pending(tl, NOW, POLICY).status is PendingStatus.NORMAL


def test_without_policy_is_normal():
    tl = OrderTimeline(placed_time=ago(days=30))
    assert detect_pending(tl, NOW, None).status is PendingStatus.NORMAL


def test_without_any_timestamp_is_normal():
    assert detect_pending(OrderTimeline(), NOW, POLICY).status is PendingStatus.NORMAL


def test_pending_is_independent_from_sla_breach():
    # 下单很久但刚刚处理：SLA 已超时，停滞判定看的是处理后的时长
    tl = OrderTimeline(placed_time=ago(days=3), processed_time=ago(hours=1))
    assert detect_pending(tl, NOW, POLICY).status is PendingStatus.NORMAL
