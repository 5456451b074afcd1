from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from gamedesk.application.exceptions import InvalidTimeInput
from gamedesk.application.use_cases.pricing import coerce_amount
from gamedesk.application.utils.time_basis import TimeBasis, minutes_of_day
from gamedesk.domain.entities.session import ActiveSession, MergedSession, SessionTimer

ACTIVE_STATUS = "active"


def format_duration(seconds: int | float | None) -> str:
    """Render seconds as HH:MM:SS; anything invalid shows as 00:00:00."""
    if seconds is None or seconds != seconds or seconds < 0:
        return "00:00:00"
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def search_rows(rows: Iterable[MergedSession], query: str) -> list[MergedSession]:
    needle = query.strip().lower()
    if not needle:
        return list(rows)
    return [row for row in rows if needle in row.username.lower() or needle in row.console_type.lower()]


class SessionMerger:
    """
    Collapses back-to-back sessions of one customer on one console into a
    single live-table row and derives its timers.
    """

    def __init__(self, time_basis: TimeBasis, default_rate_per_hour: float = 100.0) -> None:
        self._time_basis = time_basis
        self._default_rate_per_hour = default_rate_per_hour
        self._logger = logging.getLogger(__name__)

    def merge(self, sessions: Iterable[ActiveSession | MergedSession]) -> list[MergedSession]:
        rows: dict[tuple, MergedSession] = {}
        for session in sessions:
            row = session if isinstance(session, MergedSession) else MergedSession.from_session(session)
            # Duplicate records of the same slot(s): the latest copy wins.
            rows[tuple(str(slot_id) for slot_id in row.slot_ids)] = row

        parsed: list[tuple[int, int, MergedSession]] = []
        unparsed: list[MergedSession] = []
        for row in rows.values():
            try:
                parsed.append((minutes_of_day(row.start_time), minutes_of_day(row.end_time), row))
            except InvalidTimeInput as e:
                self._logger.warning("Session kept unmerged, invalid time", extra={"slot_id": row.slot_id, "error": str(e)})
                unparsed.append(row)

        groups: dict[tuple[str, str, str, str], list[tuple[int, int, MergedSession]]] = {}
        for entry in parsed:
            row = entry[2]
            groups.setdefault((row.date, row.username, row.console_type, row.console_number), []).append(entry)

        merged: list[tuple[int, MergedSession]] = []
        for entries in groups.values():
            entries.sort(key=lambda e: (e[0], e[1], str(e[2].slot_id)))
            used = [False] * len(entries)
            for head_index, (start, end, head) in enumerate(entries):
                if used[head_index]:
                    continue
                used[head_index] = True
                current = head
                current_end = end
                while _is_active(current):
                    next_index = _find_successor(entries, used, current_end)
                    if next_index is None:
                        break
                    used[next_index] = True
                    _, next_end, successor = entries[next_index]
                    current = _join(current, successor)
                    current_end = next_end
                merged.append((start, current))

        result = [row for _, row in sorted(merged, key=lambda item: _row_order(item[0], item[1]))]
        return result + sorted(unparsed, key=lambda row: _row_order(-1, row))

    def timer(self, row: MergedSession, now: datetime | None = None, rate_per_hour: float | None = None) -> SessionTimer:
        current = now if now is not None else self._time_basis.now()
        try:
            start = self._time_basis.to_instant(row.date, row.start_time)
            end = self._time_basis.to_instant(row.date, row.end_time)
        except InvalidTimeInput as e:
            self._logger.warning("No timer for session with invalid time", extra={"slot_id": row.slot_id, "error": str(e)})
            return SessionTimer(elapsed_seconds=0, extra_seconds=0, progress_percent=0.0, overtime_amount=0)

        elapsed = max(0, int((current - start).total_seconds()))
        extra = max(0, int((current - end).total_seconds()))
        duration = (end - start).total_seconds()
        progress = 100.0 if duration <= 0 else min(100.0, elapsed / duration * 100)

        return SessionTimer(
            elapsed_seconds=elapsed,
            extra_seconds=extra,
            progress_percent=round(progress, 2),
            overtime_amount=self.overtime_amount(extra, self.rate_for(row, rate_per_hour)),
        )

    def rate_for(self, row: MergedSession, rate_per_hour: float | None = None) -> float:
        if rate_per_hour is not None and coerce_amount(rate_per_hour) > 0:
            return coerce_amount(rate_per_hour)
        if coerce_amount(row.unit_price) > 0:
            return coerce_amount(row.unit_price)
        return self._default_rate_per_hour

    @staticmethod
    def overtime_amount(extra_seconds: int, rate_per_hour: float) -> int:
        if extra_seconds <= 0:
            return 0
        owed = extra_seconds * coerce_amount(rate_per_hour) / 3600
        # rounded first so float noise does not push exact amounts up by one
        return math.ceil(round(owed, 6))


def _is_active(row: MergedSession) -> bool:
    return (row.status or "").strip().lower() == ACTIVE_STATUS


def _find_successor(entries: list[tuple[int, int, MergedSession]], used: list[bool], end: int) -> int | None:
    for index, (start, _, row) in enumerate(entries):
        if not used[index] and start == end and _is_active(row):
            return index
    return None


def _join(current: MergedSession, successor: MergedSession) -> MergedSession:
    booking_ids = current.booking_ids + tuple(b for b in successor.booking_ids if b not in current.booking_ids)
    return replace(
        current,
        end_time=successor.end_time,
        booking_id=successor.booking_id,
        unit_price=successor.unit_price,
        total_price=current.total_price + successor.total_price,
        slot_ids=current.slot_ids + successor.slot_ids,
        booking_ids=booking_ids,
    )


def _row_order(start_minutes: int, row: MergedSession) -> tuple:
    return (row.date, start_minutes, row.console_type, row.console_number, row.username, str(row.slot_id))
