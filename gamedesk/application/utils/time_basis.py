from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from gamedesk.application.exceptions import InvalidTimeInput

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?\s*(am|pm)?$", re.IGNORECASE)
_DATE_PATTERNS = (
    re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"),
    re.compile(r"^(\d{4})(\d{2})(\d{2})$"),
)


def parse_clock_time(value: str) -> time:
    """Parse "HH:MM", "HH:MM:SS" or "hh:MM AM/PM" into a time."""
    if not isinstance(value, str):
        raise InvalidTimeInput(f"time must be a string, got {type(value).__name__}")

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeInput(f"unparseable time: {value!r}")

    hour = int(match.group(1))
    minute = int(match.group(2))
    second = int(match.group(3)) if match.group(3) else 0
    am_pm = (match.group(4) or "").lower()

    if am_pm:
        if not 1 <= hour <= 12:
            raise InvalidTimeInput(f"invalid 12-hour time: {value!r}")
        if am_pm == "pm" and hour != 12:
            hour += 12
        elif am_pm == "am" and hour == 12:
            hour = 0

    try:
        return time(hour, minute, second)
    except ValueError as e:
        raise InvalidTimeInput(f"invalid time: {value!r}") from e


def parse_calendar_date(value: str) -> date:
    """Parse "YYYY-MM-DD" or the booking service's compact "YYYYMMDD"."""
    if not isinstance(value, str):
        raise InvalidTimeInput(f"date must be a string, got {type(value).__name__}")

    normalized = value.strip()
    for pattern in _DATE_PATTERNS:
        match = pattern.match(normalized)
        if match:
            try:
                return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            except ValueError as e:
                raise InvalidTimeInput(f"invalid date: {value!r}") from e
    raise InvalidTimeInput(f"unparseable date: {value!r}")


def minutes_of_day(value: str) -> int:
    parsed = parse_clock_time(value)
    return parsed.hour * 60 + parsed.minute


class TimeBasis:
    """
    Single source of "now" for pricing and live timers.

    Every instant is expressed in one fixed civil timezone so proration does not
    depend on the host clock's zone.
    """

    def __init__(self, tz: ZoneInfo, clock: Callable[[], datetime] | None = None) -> None:
        self._tz = tz
        self._clock = clock

    @property
    def timezone(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        if self._clock is None:
            return datetime.now(self._tz)
        current = self._clock()
        # Naive clock readings are taken as business-local wall time.
        if current.tzinfo is None:
            return current.replace(tzinfo=self._tz)
        return current.astimezone(self._tz)

    def to_instant(self, date_value: str, time_value: str) -> datetime:
        return datetime.combine(parse_calendar_date(date_value), parse_clock_time(time_value), tzinfo=self._tz)

    def today(self) -> str:
        return self.now().date().isoformat()
