from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ActiveSession:
    slot_id: int | str
    booking_id: int | str
    console_number: str
    console_type: str
    start_time: str  # "HH:MM" or "hh:MM AM"
    end_time: str
    date: str
    price: float = 0.0
    username: str = ""
    status: str = "active"
    user_id: str | None = None
    game_id: str | None = None


@dataclass(frozen=True)
class MergedSession:
    """One live-table row covering one or more back-to-back sessions."""

    slot_id: int | str  # first covered slot
    booking_id: int | str  # latest segment, used for release/settle
    console_number: str
    console_type: str
    start_time: str
    end_time: str
    date: str
    username: str
    status: str
    unit_price: float
    total_price: float
    slot_ids: tuple[int | str, ...]
    booking_ids: tuple[int | str, ...]
    user_id: str | None = None
    game_id: str | None = None

    @classmethod
    def from_session(cls, session: ActiveSession) -> "MergedSession":
        return cls(
            slot_id=session.slot_id,
            booking_id=session.booking_id,
            console_number=session.console_number,
            console_type=session.console_type,
            start_time=session.start_time,
            end_time=session.end_time,
            date=session.date,
            username=session.username,
            status=session.status,
            unit_price=session.price,
            total_price=session.price,
            slot_ids=(session.slot_id,),
            booking_ids=(session.booking_id,),
            user_id=session.user_id,
            game_id=session.game_id,
        )


@dataclass(frozen=True)
class SessionTimer:
    elapsed_seconds: int
    extra_seconds: int
    progress_percent: float
    overtime_amount: int
