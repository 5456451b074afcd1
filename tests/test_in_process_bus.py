"""
Tests for the in-process domain event bus.
"""

from __future__ import annotations

from gamedesk.domain.entities.notification import BookingCreated, OvertimeSettled
from gamedesk.infrastructure.events.in_process_bus import InProcessEventBus


def test_handlers_receive_only_their_event_type():
    bus = InProcessEventBus()
    created: list[object] = []
    settled: list[object] = []
    bus.subscribe(BookingCreated, created.append).subscribe(OvertimeSettled, settled.append)

    event = BookingCreated(vendor_id=11, booking_id="B1", booking_mode="regular", slot_ids=(1,))
    bus.publish(event)

    assert created == [event]
    assert settled == []


def test_failing_handler_does_not_stop_others():
    """Test a subscriber error is logged and later subscribers still run."""
    bus = InProcessEventBus()
    seen: list[object] = []

    def broken(event: object) -> None:
        raise RuntimeError("dashboard offline")

    bus.subscribe(BookingCreated, broken).subscribe(BookingCreated, seen.append)
    bus.publish(BookingCreated(vendor_id=11, booking_id=None, booking_mode="private", slot_ids=()))

    assert len(seen) == 1
