"""
Tests for business-timezone time parsing and the injected clock.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from gamedesk.application.exceptions import InvalidTimeInput
from gamedesk.application.utils.time_basis import TimeBasis, minutes_of_day, parse_calendar_date, parse_clock_time

IST = ZoneInfo("Asia/Kolkata")


def test_parse_clock_time_formats():
    """Test 24-hour, seconds and AM/PM inputs all parse to the same wall time."""
    assert parse_clock_time("14:00") == time(14, 0)
    assert parse_clock_time("14:00:30") == time(14, 0, 30)
    assert parse_clock_time("2:00 PM") == time(14, 0)
    assert parse_clock_time("02:00pm") == time(14, 0)
    assert parse_clock_time("12:15 AM") == time(0, 15)
    assert parse_clock_time("12:15 PM") == time(12, 15)


def test_parse_clock_time_rejects_garbage():
    """Test invalid times raise InvalidTimeInput instead of a bare ValueError."""
    for value in ("", "25:00", "14", "13:00 PM", "ab:cd"):
        with pytest.raises(InvalidTimeInput):
            parse_clock_time(value)

    with pytest.raises(InvalidTimeInput):
        parse_clock_time(None)  # type: ignore[arg-type]


def test_parse_calendar_date_accepts_compact_form():
    """Test the booking service's YYYYMMDD keys parse like ISO dates."""
    assert parse_calendar_date("2025-01-10") == date(2025, 1, 10)
    assert parse_calendar_date("20250110") == date(2025, 1, 10)

    with pytest.raises(InvalidTimeInput):
        parse_calendar_date("2025-02-30")
    with pytest.raises(InvalidTimeInput):
        parse_calendar_date("10/01/2025")


def test_minutes_of_day():
    assert minutes_of_day("00:00") == 0
    assert minutes_of_day("15:30") == 930
    assert minutes_of_day("3:30 pm") == 930


def test_now_reads_injected_clock_in_business_zone():
    """Test naive clock readings are business-local and aware ones are converted."""
    naive = TimeBasis(IST, clock=lambda: datetime(2025, 1, 10, 14, 30))
    assert naive.now() == datetime(2025, 1, 10, 14, 30, tzinfo=IST)

    # 09:00 UTC is 14:30 in India
    aware = TimeBasis(IST, clock=lambda: datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc))
    assert aware.now().hour == 14
    assert aware.now().minute == 30
    assert aware.today() == "2025-01-10"


def test_to_instant_uses_business_zone():
    basis = TimeBasis(IST)
    instant = basis.to_instant("2025-01-10", "14:00")
    assert instant.tzinfo == IST
    assert instant.utcoffset().total_seconds() == 5.5 * 3600
