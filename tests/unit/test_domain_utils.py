"""Tests for domain utility functions."""

import pytest

from mikrotik_dashboard.domain.utils import (
    DEFAULT_UPTIME_LABEL,
    format_uptime,
    parse_routeros_uptime,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("1w2d3h4m5s", 788645),
        ("5h30m", 19800),
        ("45s", 45),
        ("", 0),
        (None, 0),
        ("garbage", 0),
    ],
)
def test_parse_routeros_uptime(value, expected) -> None:
    assert parse_routeros_uptime(value) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (15 * 86400 + 3 * 3600 + 42 * 60 + 59, "15d 3h 42m"),
        (59, "0d 0h 0m"),
        (3600, "0d 1h 0m"),
        (0, DEFAULT_UPTIME_LABEL),
        (None, DEFAULT_UPTIME_LABEL),
        (-5, DEFAULT_UPTIME_LABEL),
    ],
)
def test_format_uptime(seconds, expected) -> None:
    assert format_uptime(seconds) == expected


def test_round_trip_from_routeros_string() -> None:
    assert format_uptime(parse_routeros_uptime("2w1d3h42m10s")) == "15d 3h 42m"
