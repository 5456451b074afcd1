from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from gamedesk.domain.entities.notification import NotificationEvent, NotificationKind
from gamedesk.domain.entities.session import ActiveSession


class NotificationEventDTO(BaseModel):
    event: str
    data: dict[str, Any] = Field(default_factory=dict)

    def to_event(self, vendor_id: int | None = None) -> NotificationEvent | None:
        """Translate a channel message into a domain event, or None if it is not ours to handle."""
        data = self.data or {}
        event_vendor = _first(data, "vendorId", "vendor_id")
        if vendor_id is not None and event_vendor is not None and str(event_vendor) != str(vendor_id):
            return None

        name = (self.event or "").strip().lower()
        status = str(data.get("status") or "").strip().lower()
        kind: NotificationKind | None = None

        if name == "booking" and status == "pending_acceptance":
            kind = NotificationKind.NEW_PAY_AT_CAFE_REQUEST
        elif name == "pay_at_cafe_accepted":
            kind = NotificationKind.BOOKING_ACCEPTED
        elif name == "pay_at_cafe_rejected":
            kind = NotificationKind.BOOKING_REJECTED
        elif name == "console_availability" and data.get("is_available") is True:
            kind = NotificationKind.CONSOLE_RELEASED
        elif name == "console_released":
            kind = NotificationKind.CONSOLE_RELEASED
        elif name == "upcoming_booking":
            kind = NotificationKind.SESSION_STARTED

        if kind is None:
            return None

        game = data.get("game") if isinstance(data.get("game"), dict) else {}
        console_type = _text(_first(data, "consoleType", "console_type", "game_name") or game.get("game_name"))
        amount = _first(data, "amount", "slot_price")
        if isinstance(amount, dict):
            amount = amount.get("single_slot_price")
        if amount is None:
            amount = game.get("single_slot_price")

        return NotificationEvent(
            kind=kind,
            booking_id=_text(_first(data, "bookingId", "booking_id")),
            slot_id=_text(_first(data, "slotId", "slot_id")),
            console_number=_text(_first(data, "consoleNumber", "console_number", "console_id")),
            console_type=console_type,
            game_id=_text(_first(data, "gameId", "game_id") or game.get("id")),
            vendor_id=int(event_vendor) if event_vendor is not None and str(event_vendor).isdigit() else vendor_id,
            session=_session(data, console_type),
            payload={**data, "amount": amount},
        )


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _session(data: dict[str, Any], console_type: str | None) -> ActiveSession | None:
    slot_id = _first(data, "slotId", "slot_id")
    start = _first(data, "startTime", "start_time")
    end = _first(data, "endTime", "end_time")
    date = _first(data, "date", "bookedDate", "booking_date")
    if slot_id is None or start is None or end is None or date is None:
        return None

    try:
        price = float(_first(data, "price", "slot_price", "amount") or 0)
    except (TypeError, ValueError):
        price = 0.0

    return ActiveSession(
        slot_id=slot_id,
        booking_id=_first(data, "bookingId", "booking_id") or "",
        console_number=str(_first(data, "consoleNumber", "console_number", "console_id") or ""),
        console_type=console_type or "",
        start_time=str(start),
        end_time=str(end),
        date=str(date),
        price=price,
        username=str(_first(data, "username", "userName") or ""),
        status=str(data.get("session_status") or "active"),
        user_id=_text(_first(data, "userId", "user_id")),
        game_id=_text(_first(data, "gameId", "game_id")),
    )
