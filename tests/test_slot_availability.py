"""
Tests for the cancellable slot-grid loader.
"""

from __future__ import annotations

import asyncio

from gamedesk.application.use_cases.slot_availability import SlotAvailabilityLoader
from gamedesk.domain.entities.time_slot import TimeSlot
from gamedesk.infrastructure.booking_api.mock_booking_service import MockBookingService


class GatedService(MockBookingService):
    """Holds each slot fetch until the test opens its gate."""

    def __init__(self, slots: list[TimeSlot]) -> None:
        super().__init__(slots=slots)
        self.gates: dict[str, asyncio.Event] = {}
        self.cancelled: list[str] = []

    async def fetch_slots(self, vendor_id: int, console_id: int, date: str, console_name: str = "") -> list[TimeSlot]:
        gate = self.gates.setdefault(date, asyncio.Event())
        try:
            await gate.wait()
        except asyncio.CancelledError:
            self.cancelled.append(date)
            raise
        return await super().fetch_slots(vendor_id, console_id, date, console_name)


def _slot(slot_id: int, date: str, available: bool = True) -> TimeSlot:
    return TimeSlot(slot_id, date, "14:00", "14:30", 7, "PS5", 100, available)


def test_select_loads_slots():
    service = MockBookingService(slots=[_slot(1, "2025-01-10"), _slot(2, "2025-01-10", available=False), _slot(3, "2025-01-11")])
    loader = SlotAvailabilityLoader(service, vendor_id=11)

    slots = asyncio.run(loader.select(7, "2025-01-10", "PS5"))

    assert [slot.slot_id for slot in slots] == [1, 2]
    assert [slot.slot_id for slot in loader.available_slots()] == [1]
    assert loader.selection == (7, "2025-01-10", "PS5")
    assert loader.error is None


def test_newer_selection_wins():
    """Test switching date cancels the older fetch and its result never lands."""
    service = GatedService([_slot(1, "2025-01-10"), _slot(2, "2025-01-11")])
    loader = SlotAvailabilityLoader(service, vendor_id=11)

    async def scenario():
        first = asyncio.ensure_future(loader.select(7, "2025-01-10"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        second = asyncio.ensure_future(loader.select(7, "2025-01-11"))
        await asyncio.sleep(0)

        service.gates.setdefault("2025-01-11", asyncio.Event()).set()
        service.gates.setdefault("2025-01-10", asyncio.Event()).set()
        return await first, await second

    first, second = asyncio.run(scenario())

    assert first is None
    assert [slot.slot_id for slot in second] == [2]
    assert [slot.slot_id for slot in loader.slots] == [2]
    assert service.cancelled == ["2025-01-10"]


def test_failed_fetch_keeps_previous_grid():
    service = MockBookingService(slots=[_slot(1, "2025-01-10")])
    loader = SlotAvailabilityLoader(service, vendor_id=11)

    async def scenario():
        await loader.select(7, "2025-01-10")
        service.unavailable = True
        return await loader.refresh()

    slots = asyncio.run(scenario())

    assert [slot.slot_id for slot in slots] == [1]
    assert loader.error == "Failed to load slots"


def test_refresh_without_selection_is_noop():
    loader = SlotAvailabilityLoader(MockBookingService(), vendor_id=11)
    assert asyncio.run(loader.refresh()) is None


def test_failed_fetch_for_new_selection_clears_grid():
    """Test console 7's grid is not shown for console 9 when console 9 fails to load."""
    service = MockBookingService(slots=[_slot(1, "2025-01-10")])
    loader = SlotAvailabilityLoader(service, vendor_id=11)

    async def scenario():
        await loader.select(7, "2025-01-10", "PS5")
        service.unavailable = True
        return await loader.select(9, "2025-01-12", "PC")

    slots = asyncio.run(scenario())

    assert slots == ()
    assert loader.slots == ()
    assert loader.available_slots() == []
    assert loader.selection == (9, "2025-01-12", "PC")
    assert loader.error == "Failed to load slots"
