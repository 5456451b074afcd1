from __future__ import annotations

import logging
from dataclasses import dataclass

from gamedesk.application.exceptions import ExternalServiceUnavailable
from gamedesk.application.ports.booking_service import BookingServicePort
from gamedesk.application.utils.validators import format_hours
from gamedesk.domain.entities.customer import Pass


@dataclass(frozen=True)
class PassCheckResult:
    pass_: Pass | None
    error: str | None
    service_available: bool = True


class PassValidationUseCase:
    def __init__(self, service: BookingServicePort) -> None:
        self._service = service
        self._logger = logging.getLogger(__name__)

    async def validate(self, vendor_id: int, pass_uid: str, hours_required: float) -> PassCheckResult:
        uid = (pass_uid or "").strip()
        if not uid:
            return PassCheckResult(pass_=None, error=None)

        try:
            result = await self._service.validate_pass(vendor_id, uid)
        except ExternalServiceUnavailable as e:
            self._logger.warning("Pass validation unavailable", extra={"vendor_id": vendor_id, "error": str(e)})
            return PassCheckResult(pass_=None, error="Failed to validate pass", service_available=False)

        if not result.valid or result.pass_ is None:
            return PassCheckResult(pass_=None, error=result.error or "Invalid pass")

        remaining = float(result.pass_.remaining_hours)
        if hours_required > remaining:
            return PassCheckResult(
                pass_=None,
                error=f"Insufficient hours. Need {format_hours(hours_required)} hrs, available {format_hours(remaining)} hrs",
            )

        self._logger.info("Pass validated", extra={"vendor_id": vendor_id, "pass_uid": uid})
        return PassCheckResult(pass_=result.pass_, error=None)
