"""
Tests for the booking desk endpoints: slot grid, suggestions, pass checks and submission.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi.testclient import TestClient

from gamedesk.application.use_cases.booking_form import BookingFormMachine
from gamedesk.application.use_cases.customer_directory import CustomerDirectoryCache
from gamedesk.application.use_cases.pass_validation import PassValidationUseCase
from gamedesk.application.use_cases.pricing import PricingAggregator
from gamedesk.application.use_cases.proration import ProrationEngine
from gamedesk.application.use_cases.slot_availability import SlotAvailabilityLoader
from gamedesk.application.use_cases.slot_conflict import SlotConflictHandler
from gamedesk.application.use_cases.submit_booking import SubmitBookingUseCase
from gamedesk.application.utils.time_basis import TimeBasis
from gamedesk.domain.entities.customer import CustomerRecord, Pass
from gamedesk.domain.entities.time_slot import TimeSlot
from gamedesk.infrastructure.booking_api.mock_booking_service import MockBookingService
from gamedesk.infrastructure.events.in_process_bus import InProcessEventBus
from gamedesk.main import app
from gamedesk.wiring.dependencies import (
    get_customer_directory,
    get_form_machine,
    get_pass_validation_use_case,
    get_slot_loader,
    get_submit_booking_use_case,
    get_vendor_id,
)

IST = ZoneInfo("Asia/Kolkata")
MORNING = datetime(2025, 1, 10, 9, 0, tzinfo=IST)
VENDOR = 11


def _slot(slot_id: int, start: str, end: str) -> TimeSlot:
    return TimeSlot(slot_id, "2025-01-10", start, end, 7, "PS5", 100)


def _wire(service: MockBookingService) -> None:
    machine = BookingFormMachine(ProrationEngine(TimeBasis(IST, clock=lambda: MORNING)), PricingAggregator())
    directory = CustomerDirectoryCache(service, VENDOR)
    loader = SlotAvailabilityLoader(service, VENDOR)
    submit = SubmitBookingUseCase(service, machine, SlotConflictHandler(), InProcessEventBus(), directory, loader)

    app.dependency_overrides[get_form_machine] = lambda: machine
    app.dependency_overrides[get_customer_directory] = lambda: directory
    app.dependency_overrides[get_slot_loader] = lambda: loader
    app.dependency_overrides[get_pass_validation_use_case] = lambda: PassValidationUseCase(service)
    app.dependency_overrides[get_submit_booking_use_case] = lambda: submit
    app.dependency_overrides[get_vendor_id] = lambda: VENDOR


def _service() -> MockBookingService:
    return MockBookingService(
        slots=[_slot(40, "14:00", "14:30"), _slot(41, "14:30", "15:00")],
        customers=[
            CustomerRecord("Asha Rao", "asha@example.com", "9000000000"),
            CustomerRecord("Ravi", "ravi@example.com", "9876543210"),
        ],
        passes=[Pass("PASS-1", remaining_hours=4), Pass("LOW", remaining_hours=0.5)],
    )


def _booking(**overrides) -> dict:
    body = {
        "name": "Ravi",
        "email": "ravi@example.com",
        "phone": "9876543210",
        "payment_method": "Cash",
        "slot_ids": [40, 41],
    }
    body.update(overrides)
    return body


def test_slot_grid_for_console_and_date():
    service = _service()
    _wire(service)
    with TestClient(app) as client:
        response = client.get("/slots", params={"console_id": 7, "date": "2025-01-10", "console_name": "PS5"})

        assert response.status_code == 200
        assert [slot["slot_id"] for slot in response.json()] == [40, 41]

        service.unavailable = True
        assert client.get("/slots", params={"console_id": 7, "date": "2025-01-10"}).status_code == 502
    app.dependency_overrides.clear()


def test_booking_then_conflict_on_same_slots():
    """Test the second booking of taken slots reports which slots failed."""
    service = _service()
    _wire(service)
    with TestClient(app) as client:
        client.get("/slots", params={"console_id": 7, "date": "2025-01-10", "console_name": "PS5"})

        first = client.post("/bookings", json=_booking())
        assert first.status_code == 200
        assert first.json() == {"status": "success", "booking_id": "mock_booking_1"}
        assert service.bookings["mock_booking_1"]["slotId"] == [40, 41]

        second = client.post("/bookings", json=_booking())
        assert second.status_code == 409
        assert second.json()["detail"]["failed_slot_ids"] == [40, 41]
    app.dependency_overrides.clear()


def test_invalid_booking_returns_field_errors():
    service = _service()
    _wire(service)
    with TestClient(app) as client:
        client.get("/slots", params={"console_id": 7, "date": "2025-01-10", "console_name": "PS5"})

        response = client.post("/bookings", json=_booking(name=" ", slot_ids=[40]))
        assert response.status_code == 400
        assert response.json()["detail"]["name"] == "Name is required"

        unknown = client.post("/bookings", json=_booking(slot_ids=[99]))
        assert unknown.status_code == 400
        assert "slots" in unknown.json()["detail"]
    assert "create_booking" not in service.calls
    app.dependency_overrides.clear()


def test_pass_booking_redeems_hours():
    service = _service()
    _wire(service)
    with TestClient(app) as client:
        client.get("/slots", params={"console_id": 7, "date": "2025-01-10", "console_name": "PS5"})

        response = client.post("/bookings", json=_booking(payment_method="Pass", pass_uid="PASS-1"))
        assert response.status_code == 200
        assert service.remaining_hours("PASS-1") == 3.0

        short = client.post("/bookings", json=_booking(payment_method="Pass", pass_uid="LOW"))
        assert short.status_code == 400
        assert short.json()["detail"]["pass"] == "Insufficient hours. Need 1.0 hrs, available 0.5 hrs"
    app.dependency_overrides.clear()


def test_validate_pass_endpoint():
    service = _service()
    _wire(service)
    with TestClient(app) as client:
        ok = client.post("/passes/validate", json={"pass_uid": "PASS-1", "hours_required": 1})
        assert ok.json() == {"valid": True, "error": None, "remaining_hours": 4.0}

        unknown = client.post("/passes/validate", json={"pass_uid": "NOPE"})
        assert unknown.json()["valid"] is False
        assert unknown.json()["error"] == "Invalid pass"
    app.dependency_overrides.clear()


def test_customer_suggestions():
    service = _service()
    _wire(service)
    with TestClient(app) as client:
        response = client.get("/customers/suggestions", params={"field": "name", "q": "asha"})
        assert [c["email"] for c in response.json()] == ["asha@example.com"]

        assert client.get("/customers/suggestions", params={"field": "age"}).status_code == 400
    app.dependency_overrides.clear()
