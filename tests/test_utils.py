"""Tests for time parsing and formatting helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from alert2snow.core.utils import format_restored_date, format_utc, parse_timestamp


def test_format_restored_date_uses_12_hour_clock():
    dt = datetime(2024, 1, 15, 13, 4, 5, tzinfo=timezone.utc)
    assert format_restored_date(dt) == "01/15/2024 01:04:05 PM"


def test_format_restored_date_converts_to_utc():
    dt = datetime(2024, 1, 15, 8, 0, 0, tzinfo=timezone(timedelta(hours=8)))
    assert format_restored_date(dt) == "01/15/2024 12:00:00 AM"


def test_format_restored_date_defaults_to_now():
    assert format_restored_date().endswith(("AM", "PM"))


def test_format_utc_none_is_zero_time():
    assert format_utc(None) == "0001-01-01 00:00:00 UTC"


def test_format_utc_naive_is_treated_as_utc():
    assert format_utc(datetime(2024, 1, 15, 10, 0, 0)) == "2024-01-15 10:00:00 UTC"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-01-15T10:30:00Z", datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)),
        ("2024-01-15T10:30:00.123Z", datetime(2024, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc)),
        (
            "2026-02-10T01:47:51.122980105+08:00",
            datetime(2026, 2, 9, 17, 47, 51, 122980, tzinfo=timezone.utc),
        ),
        ("", None),
        (None, None),
    ],
)
def test_parse_timestamp(raw, expected):
    assert parse_timestamp(raw) == expected


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("yesterday")
