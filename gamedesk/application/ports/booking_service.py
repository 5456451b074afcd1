from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from gamedesk.domain.entities.booking_response import BookingResponse, PassValidation
from gamedesk.domain.entities.booking_state import BookingSubmission
from gamedesk.domain.entities.customer import CustomerRecord
from gamedesk.domain.entities.time_slot import TimeSlot


class BookingServicePort(ABC):
    @abstractmethod
    async def fetch_slots(self, vendor_id: int, console_id: int, date: str, console_name: str = "") -> list[TimeSlot]:
        """Slots for one console on one date, with their availability flag."""
        raise NotImplementedError

    @abstractmethod
    async def fetch_customers(self, vendor_id: int) -> list[CustomerRecord]:
        """Customer directory used for name/email/phone suggestions."""
        raise NotImplementedError

    @abstractmethod
    async def validate_pass(self, vendor_id: int, pass_uid: str) -> PassValidation:
        raise NotImplementedError

    @abstractmethod
    async def redeem_pass(
        self,
        vendor_id: int,
        pass_uid: str,
        hours_to_deduct: float,
        session_start: str,
        session_end: str,
        notes: str,
    ) -> None:
        """Deduct hours server-side. Raises RecoverableSubmissionError on refusal."""
        raise NotImplementedError

    @abstractmethod
    async def create_booking(self, vendor_id: int, submission: BookingSubmission) -> BookingResponse:
        raise NotImplementedError

    @abstractmethod
    async def create_extra_booking(self, payload: dict[str, Any]) -> None:
        """Record an overtime settlement."""
        raise NotImplementedError

    @abstractmethod
    async def release_console(self, game_id: str, console_number: str, vendor_id: int) -> None:
        raise NotImplementedError
