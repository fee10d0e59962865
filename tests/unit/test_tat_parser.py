import pytest

from sla_tracker.domain.sla import format_tat, parse_tat_minutes


@pytest.mark.parametrize(
    "raw, minutes",
    [
        ("1 d, 23 h, 10 m", 1 * 1440 + 23 * 60 + 10),
        ("9 m", 9),
        ("2 h", 120),
        ("2h", 120),
        ("3 d", 4320),
        ("10 m, 1 h", 70),
        ("1d 5h 30m", 1440 + 300 + 30),
        ("2 D, 1 H", 2 * 1440 + 60),
    ],
)
def test_parse_tat_minutes(raw, minutes):
    assert parse_tat_minutes(raw) == minutes


@pytest.mark.parametrize("raw", [None, "", "   ", "soon", "n/a"])
def test_parse_tat_minutes_degrades_to_zero(raw):
    assert parse_tat_minutes(raw) == 0


def test_parse_tat_minutes_non_string_is_zero():
    assert parse_tat_minutes(42) == 0  # type: ignore[arg-type]


def test_format_tat_skips_zero_parts():
    assert format_tat(1 * 1440 + 23 * 60 + 10) == "1 d, 23 h, 10 m"
    assert format_tat(9) == "9 m"
    assert format_tat(120) == "2 h"
    assert format_tat(1440 + 5) == "1 d, 5 m"


def test_format_tat_zero_and_negative():
    assert format_tat(0) == "0 m"
    assert format_tat(None) == "0 m"
    assert format_tat(-30) == "0 m"


def test_format_then_parse_keeps_minutes():
    for minutes in (0, 9, 59, 60, 1439, 1440, 2830, 10_000):
        assert parse_tat_minutes(format_tat(minutes)) == minutes
