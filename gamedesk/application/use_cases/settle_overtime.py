from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from gamedesk.application.exceptions import ValidationError
from gamedesk.application.ports.booking_service import BookingServicePort
from gamedesk.application.ports.event_publisher import EventPublisherPort
from gamedesk.application.use_cases.live_sessions import LiveSessionFeed
from gamedesk.application.use_cases.pricing import PricingAggregator, coerce_amount
from gamedesk.application.use_cases.session_merger import SessionMerger
from gamedesk.application.utils.time_basis import TimeBasis
from gamedesk.domain.entities.notification import NotificationEvent, NotificationKind, OvertimeSettled
from gamedesk.domain.entities.session import MergedSession


@dataclass(frozen=True)
class OvertimeQuote:
    extra_seconds: int
    rate_per_hour: float
    amount: int
    waive_off: float
    net_amount: float


class SettleOvertimeUseCase:
    """Charges a session's extra time, then frees its console."""

    def __init__(
        self,
        service: BookingServicePort,
        merger: SessionMerger,
        pricing: PricingAggregator,
        feed: LiveSessionFeed,
        publisher: EventPublisherPort,
        time_basis: TimeBasis,
    ) -> None:
        self._service = service
        self._merger = merger
        self._pricing = pricing
        self._feed = feed
        self._publisher = publisher
        self._time_basis = time_basis
        self._logger = logging.getLogger(__name__)

    def quote(
        self,
        row: MergedSession,
        waive_off: Any = 0,
        now: datetime | None = None,
        rate_per_hour: float | None = None,
    ) -> OvertimeQuote:
        current = now if now is not None else self._time_basis.now()
        rate = self._merger.rate_for(row, rate_per_hour)
        timer = self._merger.timer(row, current, rate)

        try:
            requested = float(waive_off or 0)
        except (TypeError, ValueError):
            requested = 0.0
        if requested < 0:
            raise ValidationError({"waive_off": "Waive-off amount cannot be negative"})
        if requested > timer.overtime_amount:
            raise ValidationError({"waive_off": f"Waive-off amount cannot exceed {timer.overtime_amount:.2f}"})

        return OvertimeQuote(
            extra_seconds=timer.extra_seconds,
            rate_per_hour=rate,
            amount=timer.overtime_amount,
            waive_off=coerce_amount(requested),
            net_amount=self._pricing.total(console_total=timer.overtime_amount, manual_waive_off=requested),
        )

    async def settle(
        self,
        vendor_id: int,
        row: MergedSession,
        payment_mode: str,
        waive_off: Any = 0,
        now: datetime | None = None,
        rate_per_hour: float | None = None,
    ) -> OvertimeQuote:
        current = now if now is not None else self._time_basis.now()
        quote = self.quote(row, waive_off, current, rate_per_hour)
        if row.game_id in (None, ""):
            # The release endpoint is addressed by game id.
            raise ValidationError({"game_id": "Session has no game; cannot release console"})

        payload = {
            "consoleNumber": row.console_number,
            "consoleType": row.console_type,
            "date": current.date().isoformat(),
            "slotId": row.slot_id,
            "userId": row.user_id,
            "username": row.username,
            "amount": quote.amount,
            "gameId": row.game_id,
            "vendorId": vendor_id,
            "modeOfPayment": payment_mode,
            "waiveOffAmount": quote.waive_off,
        }
        await self._service.create_extra_booking(payload)
        await self._service.release_console(str(row.game_id), row.console_number, vendor_id)

        self._feed.apply(
            NotificationEvent(
                kind=NotificationKind.CONSOLE_RELEASED,
                console_number=row.console_number,
                console_type=row.console_type,
                game_id=str(row.game_id) if row.game_id is not None else None,
                vendor_id=vendor_id,
            )
        )
        self._publisher.publish(
            OvertimeSettled(
                vendor_id=vendor_id,
                booking_id=str(row.booking_id),
                console_number=row.console_number,
                amount=quote.amount,
                waive_off=quote.waive_off,
            )
        )
        self._logger.info(
            "Overtime settled",
            extra={"vendor_id": vendor_id, "booking_id": row.booking_id, "amount": quote.amount},
        )
        return quote
