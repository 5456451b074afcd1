from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gamedesk.domain.entities.session import ActiveSession


class NotificationKind(str, Enum):
    NEW_PAY_AT_CAFE_REQUEST = "new_pay_at_cafe_request"
    BOOKING_ACCEPTED = "booking_accepted"
    BOOKING_REJECTED = "booking_rejected"
    CONSOLE_RELEASED = "console_released"
    SESSION_STARTED = "session_started"


@dataclass(frozen=True)
class NotificationEvent:
    kind: NotificationKind
    booking_id: str | None = None
    slot_id: str | None = None
    console_number: str | None = None
    console_type: str | None = None
    game_id: str | None = None
    vendor_id: int | None = None
    session: ActiveSession | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PayAtCafeRequest:
    booking_id: str
    username: str
    console_type: str
    amount: float
    received_at: float | None = None


@dataclass(frozen=True)
class BookingCreated:
    vendor_id: int
    booking_id: str | None
    booking_mode: str
    slot_ids: tuple[int, ...]


@dataclass(frozen=True)
class OvertimeSettled:
    vendor_id: int
    booking_id: str
    console_number: str
    amount: int
    waive_off: float
