from __future__ import annotations

import logging
from datetime import datetime

from gamedesk.application.exceptions import (
    ExternalServiceUnavailable,
    RecoverableSubmissionError,
    SlotConflictError,
)
from gamedesk.application.ports.booking_service import BookingServicePort
from gamedesk.application.ports.event_publisher import EventPublisherPort
from gamedesk.application.use_cases.booking_form import (
    BeginSubmit,
    BookingFormMachine,
    SlotGridRefreshed,
    SubmissionResolved,
)
from gamedesk.application.use_cases.customer_directory import CustomerDirectoryCache
from gamedesk.application.use_cases.slot_availability import SlotAvailabilityLoader
from gamedesk.application.use_cases.slot_conflict import SlotConflictHandler
from gamedesk.domain.entities.booking_response import Accepted, RecoverableError, SlotConflict
from gamedesk.domain.entities.booking_state import BookingFormState, BookingSubmission, FormStatus, PaymentMethod
from gamedesk.domain.entities.notification import BookingCreated


class SubmitBookingUseCase:
    """
    Drives one submission: validate, redeem pass hours (when paying by pass),
    create the booking, then react to the classified outcome.

    Never raises for service failures; they come back as form state.
    """

    def __init__(
        self,
        service: BookingServicePort,
        machine: BookingFormMachine,
        conflict_handler: SlotConflictHandler,
        publisher: EventPublisherPort,
        directory: CustomerDirectoryCache | None = None,
        slot_loader: SlotAvailabilityLoader | None = None,
    ) -> None:
        self._service = service
        self._machine = machine
        self._conflicts = conflict_handler
        self._publisher = publisher
        self._directory = directory
        self._slot_loader = slot_loader
        self._logger = logging.getLogger(__name__)

    async def submit(self, vendor_id: int, state: BookingFormState, now: datetime | None = None) -> BookingFormState:
        state = self._machine.reduce(state, BeginSubmit())
        if state.status is not FormStatus.SUBMITTING:
            return state

        submission = self._machine.build_submission(state, now)

        if submission.payment_type is PaymentMethod.PASS:
            failure = await self._redeem(vendor_id, state, submission)
            if failure is not None:
                return self._machine.reduce(state, SubmissionResolved(failure))

        try:
            response = await self._service.create_booking(vendor_id, submission)
            outcome = self._conflicts.classify(response)
        except (SlotConflictError, RecoverableSubmissionError, ExternalServiceUnavailable) as e:
            self._logger.error("Booking submission failed", extra={"vendor_id": vendor_id, "error": str(e)})
            outcome = self._conflicts.from_error(e)

        state = self._machine.reduce(state, SubmissionResolved(outcome))

        if isinstance(outcome, Accepted):
            await self._on_accepted(vendor_id, submission, outcome)
        elif isinstance(outcome, SlotConflict):
            state = await self._on_conflict(vendor_id, state)
        return state

    async def _redeem(self, vendor_id: int, state: BookingFormState, submission: BookingSubmission) -> RecoverableError | None:
        draft = state.draft
        count = len(submission.slot_ids)
        if submission.slot_ids:
            notes = f"Booking for {submission.console_type} - {count} slots"
        else:
            notes = f"Private booking for {submission.console_type} - {submission.duration_hours} hrs"

        try:
            await self._service.redeem_pass(
                vendor_id,
                draft.pass_uid.strip(),
                submission.hours_required,
                (submission.start_time or "")[:5],
                (submission.end_time or "")[:5],
                notes,
            )
        except (RecoverableSubmissionError, ExternalServiceUnavailable) as e:
            self._logger.error("Pass redemption failed", extra={"vendor_id": vendor_id, "error": str(e)})
            return RecoverableError(message=str(e) or "Failed to redeem pass")

        self._logger.info("Pass redeemed", extra={"vendor_id": vendor_id, "hours": submission.hours_required})
        return None

    async def _on_accepted(self, vendor_id: int, submission: BookingSubmission, outcome: Accepted) -> None:
        self._logger.info("Booking created", extra={"vendor_id": vendor_id, "booking_id": outcome.booking_id})
        self._publisher.publish(
            BookingCreated(
                vendor_id=vendor_id,
                booking_id=outcome.booking_id,
                booking_mode=submission.booking_mode.value,
                slot_ids=submission.slot_ids,
            )
        )
        if self._directory is not None:
            await self._directory.refresh_if_new_customer(submission.email, submission.phone)

    async def _on_conflict(self, vendor_id: int, state: BookingFormState) -> BookingFormState:
        if self._slot_loader is None:
            return state
        refreshed = await self._slot_loader.refresh()
        if refreshed is None or self._slot_loader.error:
            self._logger.warning("Slot grid refresh after conflict did not complete", extra={"vendor_id": vendor_id})
            return state
        return self._machine.reduce(state, SlotGridRefreshed())
