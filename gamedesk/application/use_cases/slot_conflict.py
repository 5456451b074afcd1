from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from gamedesk.application.exceptions import (
    ExternalServiceUnavailable,
    RecoverableSubmissionError,
    SlotConflictError,
)
from gamedesk.domain.entities.booking_response import (
    Accepted,
    BookingResponse,
    RecoverableError,
    SlotConflict,
    SubmissionOutcome,
)

DEFAULT_ERROR_MESSAGE = "Unknown error"


class SlotConflictHandler:
    """Classifies a create-booking outcome into accepted / recoverable / slot conflict."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def classify(self, response: BookingResponse | Mapping[str, Any]) -> SubmissionOutcome:
        if not isinstance(response, BookingResponse):
            response = response_from_mapping(response)

        if response.success:
            return Accepted(booking_id=response.booking_id)

        message = (response.message or "").strip() or DEFAULT_ERROR_MESSAGE
        if response.failed_slots:
            failed = ", ".join(str(slot_id) for slot_id in response.failed_slots)
            self._logger.warning("Booking rejected, slots already taken", extra={"reason": message, "failed_slots": failed})
            return SlotConflict(message=f"{message} (Failed slots: {failed})", failed_slot_ids=response.failed_slots)

        self._logger.warning("Booking rejected", extra={"reason": message})
        return RecoverableError(message=message)

    def from_error(self, error: Exception) -> SubmissionOutcome:
        if isinstance(error, SlotConflictError):
            return SlotConflict(message=str(error) or DEFAULT_ERROR_MESSAGE, failed_slot_ids=error.failed_slot_ids)
        if isinstance(error, (RecoverableSubmissionError, ExternalServiceUnavailable)):
            return RecoverableError(message=str(error) or DEFAULT_ERROR_MESSAGE)
        raise error


def response_from_mapping(data: Mapping[str, Any]) -> BookingResponse:
    booking_id = data.get("booking_id") or data.get("bookingId")
    failed = data.get("failed_slots") or ()
    if not isinstance(failed, (list, tuple)):
        failed = (failed,)
    return BookingResponse(
        success=bool(data.get("success")),
        booking_id=str(booking_id) if booking_id is not None else None,
        message=data.get("message") or data.get("error"),
        failed_slots=tuple(failed),
    )
