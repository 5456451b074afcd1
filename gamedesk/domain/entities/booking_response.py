from __future__ import annotations

from dataclasses import dataclass

from gamedesk.domain.entities.customer import Pass


@dataclass(frozen=True)
class BookingResponse:
    success: bool
    booking_id: str | None = None
    message: str | None = None
    failed_slots: tuple[int | str, ...] = ()


@dataclass(frozen=True)
class PassValidation:
    valid: bool
    pass_: Pass | None = None
    error: str | None = None


@dataclass(frozen=True)
class Accepted:
    booking_id: str | None = None


@dataclass(frozen=True)
class RecoverableError:
    message: str


@dataclass(frozen=True)
class SlotConflict:
    message: str
    failed_slot_ids: tuple[int | str, ...] = ()


SubmissionOutcome = Accepted | RecoverableError | SlotConflict
