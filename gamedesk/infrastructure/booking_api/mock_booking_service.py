from __future__ import annotations

import logging
from typing import Any

from gamedesk.application.exceptions import (
    ExternalServiceUnavailable,
    RecoverableSubmissionError,
)
from gamedesk.application.ports.booking_service import BookingServicePort
from gamedesk.domain.entities.booking_response import BookingResponse, PassValidation
from gamedesk.domain.entities.booking_state import BookingSubmission
from gamedesk.domain.entities.customer import CustomerRecord, Pass
from gamedesk.domain.entities.time_slot import TimeSlot


class MockBookingService(BookingServicePort):
    """In-memory booking backend for local runs and tests."""

    def __init__(
        self,
        slots: list[TimeSlot] | None = None,
        customers: list[CustomerRecord] | None = None,
        passes: list[Pass] | None = None,
    ) -> None:
        self._slots: dict[int, TimeSlot] = {slot.slot_id: slot for slot in slots or []}
        self._customers: list[CustomerRecord] = list(customers or [])
        self._passes: dict[str, Pass] = {p.pass_uid: p for p in passes or []}
        self.bookings: dict[str, dict[str, Any]] = {}
        self.extra_bookings: list[dict[str, Any]] = []
        self.released: list[tuple[str, str, int]] = []
        self.redemptions: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.unavailable = False
        self.refuse_redeem = False
        self._logger = logging.getLogger(__name__)

    async def fetch_slots(self, vendor_id: int, console_id: int, date: str, console_name: str = "") -> list[TimeSlot]:
        self.calls.append("fetch_slots")
        self._raise_if_unavailable()
        return [slot for slot in self._slots.values() if slot.console_id == console_id and slot.date == date]

    async def fetch_customers(self, vendor_id: int) -> list[CustomerRecord]:
        self.calls.append("fetch_customers")
        self._raise_if_unavailable()
        return list(self._customers)

    async def validate_pass(self, vendor_id: int, pass_uid: str) -> PassValidation:
        self.calls.append("validate_pass")
        self._raise_if_unavailable()
        found = self._passes.get(pass_uid.strip())
        if found is None:
            return PassValidation(valid=False, error="Invalid pass")
        return PassValidation(valid=True, pass_=found)

    async def redeem_pass(
        self,
        vendor_id: int,
        pass_uid: str,
        hours_to_deduct: float,
        session_start: str,
        session_end: str,
        notes: str,
    ) -> None:
        self.calls.append("redeem_pass")
        self._raise_if_unavailable()
        found = self._passes.get(pass_uid.strip())
        if self.refuse_redeem or found is None or found.remaining_hours < hours_to_deduct:
            raise RecoverableSubmissionError("Failed to redeem pass")

        self._passes[found.pass_uid] = Pass(
            pass_uid=found.pass_uid,
            remaining_hours=found.remaining_hours - hours_to_deduct,
            total_hours=found.total_hours,
            owner=found.owner,
        )
        self.redemptions.append(
            {
                "pass_uid": found.pass_uid,
                "hours_to_deduct": hours_to_deduct,
                "session_start": session_start,
                "session_end": session_end,
                "notes": notes,
            }
        )

    async def create_booking(self, vendor_id: int, submission: BookingSubmission) -> BookingResponse:
        self.calls.append("create_booking")
        self._raise_if_unavailable()

        taken = [slot_id for slot_id in submission.slot_ids if slot_id in self._slots and not self._slots[slot_id].available]
        if taken:
            return BookingResponse(success=False, message="Some slots are no longer available", failed_slots=tuple(taken))

        for slot_id in submission.slot_ids:
            if slot_id in self._slots:
                slot = self._slots[slot_id]
                self._slots[slot_id] = TimeSlot(
                    slot_id=slot.slot_id,
                    date=slot.date,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    console_id=slot.console_id,
                    console_name=slot.console_name,
                    unit_price=slot.unit_price,
                    available=False,
                )

        booking_id = f"mock_booking_{len(self.bookings) + 1}"
        self.bookings[booking_id] = submission.to_payload()
        if not any(c.email == submission.email and c.phone == submission.phone for c in self._customers):
            self._customers.append(CustomerRecord(name=submission.name, email=submission.email, phone=submission.phone))

        self._logger.info("Mock booking created", extra={"vendor_id": vendor_id, "booking_id": booking_id})
        return BookingResponse(success=True, booking_id=booking_id, message="Booking confirmed")

    async def create_extra_booking(self, payload: dict[str, Any]) -> None:
        self.calls.append("create_extra_booking")
        self._raise_if_unavailable()
        self.extra_bookings.append(dict(payload))

    async def release_console(self, game_id: str, console_number: str, vendor_id: int) -> None:
        self.calls.append("release_console")
        self._raise_if_unavailable()
        self.released.append((game_id, console_number, vendor_id))
        self._logger.info("Mock console released", extra={"vendor_id": vendor_id, "console": console_number})

    def remaining_hours(self, pass_uid: str) -> float | None:
        found = self._passes.get(pass_uid)
        return found.remaining_hours if found else None

    def _raise_if_unavailable(self) -> None:
        if self.unavailable:
            raise ExternalServiceUnavailable("Mock booking service is offline")
