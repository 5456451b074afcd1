from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from gamedesk.application.use_cases.pricing import coerce_amount
from gamedesk.application.use_cases.session_merger import SessionMerger
from gamedesk.domain.entities.notification import NotificationEvent, NotificationKind, PayAtCafeRequest
from gamedesk.domain.entities.session import ActiveSession, MergedSession, SessionTimer


@dataclass(frozen=True)
class LiveRow:
    session: MergedSession
    timer: SessionTimer


class LiveSessionFeed:
    """
    Live-monitoring state: running sessions keyed by slot id and pending
    pay-at-cafe requests keyed by booking id.

    One writer (poller or notification handler), many readers. Every write
    builds a new mapping and swaps it in, and every event is idempotent by id.
    Accepted/rejected booking ids are remembered for `resolved_ttl_seconds`, so
    a duplicate "new request" arriving after the decision is ignored.
    """

    def __init__(
        self,
        merger: SessionMerger,
        clock: Callable[[], float] = time.time,
        resolved_ttl_seconds: float = 86400,
    ) -> None:
        self._merger = merger
        self._clock = clock
        self._resolved_ttl_seconds = resolved_ttl_seconds
        self._sessions: dict[str, ActiveSession] = {}
        self._pending: dict[str, PayAtCafeRequest] = {}
        self._resolved_at: dict[str, float] = {}
        self._released_slot_ids: frozenset[str] = frozenset()
        self._logger = logging.getLogger(__name__)

    @property
    def sessions(self) -> tuple[ActiveSession, ...]:
        return tuple(self._sessions.values())

    @property
    def pending_requests(self) -> tuple[PayAtCafeRequest, ...]:
        return tuple(self._pending.values())

    def replace_sessions(self, sessions: Iterable[ActiveSession]) -> None:
        """Swap in an authoritative polled snapshot."""
        self._sessions = {str(session.slot_id): session for session in sessions}
        self._released_slot_ids = frozenset()
        self._forget_resolved()

    def apply(self, event: NotificationEvent) -> bool:
        """Apply one notification. Returns True if visible state changed."""
        if event.kind is NotificationKind.NEW_PAY_AT_CAFE_REQUEST:
            return self._add_request(event)
        if event.kind in (NotificationKind.BOOKING_ACCEPTED, NotificationKind.BOOKING_REJECTED):
            changed = self._resolve_request(event)
            if event.kind is NotificationKind.BOOKING_ACCEPTED and event.session is not None:
                changed = self._upsert(event.session) or changed
            return changed
        if event.kind is NotificationKind.SESSION_STARTED:
            return event.session is not None and self._upsert(event.session)
        if event.kind is NotificationKind.CONSOLE_RELEASED:
            return self._release(event)
        return False

    def rows(self, now: datetime | None = None, rate_per_hour: float | None = None) -> list[LiveRow]:
        merged = self._merger.merge(self._sessions.values())
        return [LiveRow(session=row, timer=self._merger.timer(row, now, rate_per_hour)) for row in merged]

    def find_row(self, booking_id: str, now: datetime | None = None) -> LiveRow | None:
        for row in self.rows(now):
            if str(row.session.booking_id) == str(booking_id) or str(booking_id) in {str(b) for b in row.session.booking_ids}:
                return row
        return None

    def _add_request(self, event: NotificationEvent) -> bool:
        booking_id = event.booking_id
        self._forget_resolved()
        if not booking_id or booking_id in self._pending or booking_id in self._resolved_at:
            return False
        payload = event.payload
        request = PayAtCafeRequest(
            booking_id=booking_id,
            username=str(payload.get("username") or payload.get("userName") or ""),
            console_type=event.console_type or "",
            amount=coerce_amount(payload.get("amount")),
            received_at=self._clock(),
        )
        self._pending = {**self._pending, booking_id: request}
        self._logger.info("Pay-at-cafe request received", extra={"booking_id": booking_id})
        return True

    def _resolve_request(self, event: NotificationEvent) -> bool:
        booking_id = event.booking_id
        if not booking_id:
            return False
        self._forget_resolved()
        self._resolved_at = {**self._resolved_at, booking_id: self._clock()}
        if booking_id not in self._pending:
            return False
        self._pending = {key: value for key, value in self._pending.items() if key != booking_id}
        self._logger.info("Pay-at-cafe request resolved", extra={"booking_id": booking_id, "event": event.kind.value})
        return True

    def _forget_resolved(self) -> None:
        cutoff = self._clock() - self._resolved_ttl_seconds
        self._resolved_at = {key: at for key, at in self._resolved_at.items() if at >= cutoff}

    def _upsert(self, session: ActiveSession) -> bool:
        key = str(session.slot_id)
        if key in self._released_slot_ids or self._sessions.get(key) == session:
            return False
        self._sessions = {**self._sessions, key: session}
        return True

    def _release(self, event: NotificationEvent) -> bool:
        def matches(session: ActiveSession) -> bool:
            if event.slot_id and str(session.slot_id) == event.slot_id:
                return True
            if not event.console_number or str(session.console_number) != event.console_number:
                return False
            if event.console_type and session.console_type != event.console_type:
                return False
            if event.game_id and session.game_id and str(session.game_id) != event.game_id:
                return False
            return True

        released = {key for key, session in self._sessions.items() if matches(session)}
        if not released:
            return False
        self._sessions = {key: session for key, session in self._sessions.items() if key not in released}
        self._released_slot_ids = self._released_slot_ids | released
        self._logger.info("Console released", extra={"slot_id": ",".join(sorted(released))})
        return True
