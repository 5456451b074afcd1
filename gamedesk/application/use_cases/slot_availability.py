from __future__ import annotations

import asyncio
import logging

from gamedesk.application.exceptions import ExternalServiceUnavailable
from gamedesk.application.ports.booking_service import BookingServicePort
from gamedesk.domain.entities.time_slot import TimeSlot


class SlotAvailabilityLoader:
    """
    Holds the slot grid for the currently selected console/date.

    Only the latest selection may write the grid: selecting again cancels the
    fetch in flight and any response for an older selection is discarded.
    """

    def __init__(self, service: BookingServicePort, vendor_id: int) -> None:
        self._service = service
        self._vendor_id = vendor_id
        self._generation = 0
        self._inflight: asyncio.Task | None = None
        self._selection: tuple[int, str, str] | None = None
        self._slots: tuple[TimeSlot, ...] = ()
        self._loaded_for: tuple[int, str, str] | None = None
        self._error: str | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def selection(self) -> tuple[int, str, str] | None:
        return self._selection

    @property
    def slots(self) -> tuple[TimeSlot, ...]:
        return self._slots

    @property
    def error(self) -> str | None:
        return self._error

    def available_slots(self) -> list[TimeSlot]:
        return [slot for slot in self._slots if slot.available]

    async def select(self, console_id: int, date: str, console_name: str = "") -> tuple[TimeSlot, ...] | None:
        """Load slots for a new selection. Returns None if superseded before completion."""
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

        self._generation += 1
        generation = self._generation
        self._selection = (console_id, date, console_name)
        task = asyncio.ensure_future(self._service.fetch_slots(self._vendor_id, console_id, date, console_name))
        self._inflight = task

        try:
            slots = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                self._logger.debug("Slot fetch superseded", extra={"vendor_id": self._vendor_id})
                return None
            raise
        except ExternalServiceUnavailable as e:
            if generation != self._generation:
                return None
            self._logger.warning("Slot fetch failed", extra={"vendor_id": self._vendor_id, "error": str(e)})
            self._error = "Failed to load slots"
            if self._loaded_for != self._selection:
                # The grid on hand belongs to another console or date.
                self._slots = ()
            return self._slots

        if generation != self._generation:
            return None

        self._slots = tuple(slots)
        self._loaded_for = self._selection
        self._error = None
        return self._slots

    async def refresh(self) -> tuple[TimeSlot, ...] | None:
        """Re-fetch only the current console/date, e.g. after a slot conflict."""
        if self._selection is None:
            return None
        console_id, date, console_name = self._selection
        return await self.select(console_id, date, console_name)
