"""
Tests for the booking form reducer: validation, error clearing and submit guards.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from gamedesk.application.exceptions import ValidationError
from gamedesk.application.use_cases.booking_form import (
    SLOT_REFRESH_MESSAGE,
    BeginSubmit,
    BookingFormMachine,
    ResetForm,
    SelectAddOn,
    SetField,
    SetManualInterval,
    SetSlots,
    SetValidatedPass,
    SlotGridRefreshed,
    SubmissionResolved,
    ToggleSlot,
    TogglePrivateMode,
    build_manual_interval,
)
from gamedesk.application.use_cases.pricing import PricingAggregator
from gamedesk.application.use_cases.proration import ProrationEngine
from gamedesk.application.utils.time_basis import TimeBasis
from gamedesk.domain.entities.add_on import AddOnLine
from gamedesk.domain.entities.booking_response import Accepted, RecoverableError, SlotConflict
from gamedesk.domain.entities.booking_state import BookingMode, FormStatus, PaymentMethod
from gamedesk.domain.entities.customer import Pass
from gamedesk.domain.entities.time_slot import TimeSlot

IST = ZoneInfo("Asia/Kolkata")
BEFORE_OPENING = datetime(2025, 1, 10, 9, 0, tzinfo=IST)


def _machine() -> BookingFormMachine:
    basis = TimeBasis(IST, clock=lambda: BEFORE_OPENING)
    return BookingFormMachine(ProrationEngine(basis), PricingAggregator(), phone_digits=10)


def _slots(count: int = 3) -> tuple[TimeSlot, ...]:
    starts = ["14:00", "14:30", "15:00", "15:30", "16:00"]
    ends = ["14:30", "15:00", "15:30", "16:00", "16:30"]
    return tuple(
        TimeSlot(40 + i, "2025-01-10", starts[i], ends[i], 7, "PS5", 100) for i in range(count)
    )


def _filled(machine: BookingFormMachine, count: int = 3):
    state = machine.initial_state()
    for action in (
        SetField("name", "Ravi"),
        SetField("email", "ravi@example.com"),
        SetField("phone", "9876543210"),
        SetSlots(_slots(count)),
    ):
        state = machine.reduce(state, action)
    return state


def test_empty_form_reports_every_field():
    machine = _machine()
    errors = machine.validate(machine.initial_state().draft)

    assert errors["name"] == "Name is required"
    assert errors["email"] == "Email is required"
    assert errors["phone"] == "Phone is required"
    assert errors["slots"] == "Please select at least one slot"


def test_email_and_phone_format():
    machine = _machine()
    state = _filled(machine)
    state = machine.reduce(state, SetField("email", "ravi@example"))
    state = machine.reduce(state, SetField("phone", "98765"))
    errors = machine.validate(state.draft)

    assert errors == {"email": "Invalid email format", "phone": "Phone must be 10 digits"}


def test_pass_with_insufficient_hours_blocks_submission():
    """Test 3 slots need 1.5 hours and a 1.0 hour pass is refused."""
    machine = _machine()
    state = _filled(machine, count=3)
    state = machine.reduce(state, SetField("payment_method", PaymentMethod.PASS))
    state = machine.reduce(state, SetField("pass_uid", "PASS-1"))
    state = machine.reduce(state, SetValidatedPass(Pass("PASS-1", remaining_hours=1.0)))

    assert machine.hours_required(state.draft) == 1.5
    state = machine.reduce(state, BeginSubmit())

    assert state.status is FormStatus.EDITING
    assert state.errors["pass"] == "Insufficient hours. Need 1.5 hrs, available 1.0 hrs"
    with pytest.raises(ValidationError):
        machine.build_submission(state)


def test_pass_must_be_validated_first():
    machine = _machine()
    state = _filled(machine)
    state = machine.reduce(state, SetField("payment_method", "Pass"))
    assert machine.validate(state.draft)["pass"] == "Please validate the pass first"


def test_changing_pass_uid_discards_validated_pass():
    """Test typing a different uid clears the pass validated for the old one."""
    machine = _machine()
    state = _filled(machine)
    state = machine.reduce(state, SetField("payment_method", PaymentMethod.PASS))
    state = machine.reduce(state, SetField("pass_uid", "PASS-1"))
    state = machine.reduce(state, SetValidatedPass(Pass("PASS-1", remaining_hours=5)))
    assert state.draft.validated_pass is not None

    state = machine.reduce(state, SetField("pass_uid", "PASS-2"))
    assert state.draft.validated_pass is None


def test_editing_a_field_clears_only_its_error():
    machine = _machine()
    state = machine.reduce(machine.initial_state(), BeginSubmit())
    assert {"name", "email", "phone", "slots"} <= set(state.errors)

    state = machine.reduce(state, SetField("name", "Ravi"))
    assert "name" not in state.errors
    assert "email" in state.errors

    state = machine.reduce(state, ToggleSlot(_slots(1)[0]))
    assert "slots" not in state.errors
    assert "phone" in state.errors


def test_valid_form_enters_submitting_once():
    """Test a second submit while one is in flight is ignored."""
    machine = _machine()
    state = machine.reduce(_filled(machine), BeginSubmit())
    assert state.status is FormStatus.SUBMITTING

    again = machine.reduce(state, BeginSubmit())
    assert again is state

    edited = machine.reduce(state, SetField("name", "Other"))
    assert edited.draft.name == "Ravi"


def test_resolution_transitions():
    machine = _machine()
    submitting = machine.reduce(_filled(machine), BeginSubmit())

    ok = machine.reduce(submitting, SubmissionResolved(Accepted(booking_id="B1")))
    assert ok.status is FormStatus.SUCCESS
    assert ok.booking_id == "B1"

    failed = machine.reduce(submitting, SubmissionResolved(RecoverableError("Server busy")))
    assert failed.status is FormStatus.FAILED_RECOVERABLE
    assert failed.message == "Server busy"
    assert len(failed.draft.selected_slots) == 3


def test_conflict_clears_slots_and_requires_refresh():
    """Test a conflict drops the selection and blocks retry until the grid reloads."""
    machine = _machine()
    submitting = machine.reduce(_filled(machine), BeginSubmit())
    state = machine.reduce(submitting, SubmissionResolved(SlotConflict("Slots taken (Failed slots: 42)", (42,))))

    assert state.status is FormStatus.FAILED_CONFLICT
    assert state.failed_slot_ids == (42,)
    assert len(state.draft.selected_slots) == 0
    assert state.needs_slot_refresh

    state = machine.reduce(state, SetSlots(_slots(1)))
    blocked = machine.reduce(state, BeginSubmit())
    assert blocked.status is not FormStatus.SUBMITTING
    assert blocked.message == SLOT_REFRESH_MESSAGE

    refreshed = machine.reduce(blocked, SlotGridRefreshed())
    assert machine.reduce(refreshed, BeginSubmit()).status is FormStatus.SUBMITTING


def test_build_submission_for_regular_booking():
    machine = _machine()
    state = _filled(machine, count=2)
    state = machine.reduce(state, SetField("manual_waive_off", "20"))
    state = machine.reduce(state, SetField("extra_fee", 30))
    state = machine.reduce(state, SelectAddOn(AddOnLine(5, "Cola", 40, 2)))

    submission = machine.build_submission(state, BEFORE_OPENING)
    payload = submission.to_payload()

    assert submission.booking_mode is BookingMode.REGULAR
    assert submission.total == 200 - 20 + 30 + 80
    assert submission.hours_required == 1.0
    assert payload["slotId"] == [40, 41]
    assert payload["consoleType"] == "PS5"
    assert payload["bookedDate"] == "2025-01-10"
    assert payload["paymentType"] == "Cash"
    assert payload["waiveOffAmount"] == 20
    assert payload["selectedMeals"] == [{"menu_item_id": 5, "quantity": 2}]


def test_submission_includes_auto_waive_off():
    """Test a slot half over at submit time is half waived."""
    machine = _machine()
    state = _filled(machine, count=1)
    submission = machine.build_submission(state, datetime(2025, 1, 10, 14, 15, tzinfo=IST))
    assert submission.waive_off_total == 50
    assert submission.total == 50


def test_private_mode_uses_manual_interval():
    machine = _machine()
    state = machine.initial_state()
    for action in (
        TogglePrivateMode(),
        SetField("name", "Team Alpha"),
        SetField("email", "alpha@example.com"),
        SetField("phone", "+91 98765"),
        SetManualInterval(build_manual_interval("2025-01-10", "14:00", "16:20", 150, console_id=7, console_name="PS5")),
    ):
        state = machine.reduce(state, action)

    assert machine.validate(state.draft) == {}
    submission = machine.build_submission(state)
    payload = submission.to_payload()

    assert submission.booking_mode is BookingMode.PRIVATE
    assert submission.duration_hours == 2.5
    assert submission.total == 375
    assert payload["game_id"] == 7
    assert payload["user_info"]["phone"] == "+91 98765"


def test_private_mode_requires_interval():
    machine = _machine()
    state = machine.reduce(machine.initial_state(), TogglePrivateMode())
    errors = machine.validate(state.draft)
    assert "slots" not in errors
    assert errors["time"] == "Start and end time are required"


def test_reset_returns_initial_state():
    machine = _machine()
    state = machine.reduce(_filled(machine), ResetForm())
    assert state == machine.initial_state()


def test_slot_from_another_console_or_date_starts_new_selection():
    machine = _machine()
    ps5 = TimeSlot(1, "2025-01-10", "14:00", "14:30", 7, "PS5", 100)
    pc = TimeSlot(2, "2025-01-12", "14:00", "14:30", 9, "PC", 80)

    state = machine.reduce(_filled(machine, count=0), ToggleSlot(ps5))
    state = machine.reduce(state, ToggleSlot(pc))

    assert state.draft.selected_slots.slot_ids == (2,)
    state = machine.reduce(state, BeginSubmit())
    submission = machine.build_submission(state, BEFORE_OPENING)
    assert submission.console_type == "PC"
    assert submission.booked_date == "2025-01-12"


def test_mixed_slot_list_fails_validation():
    machine = _machine()
    mixed = (
        TimeSlot(1, "2025-01-10", "14:00", "14:30", 7, "PS5", 100),
        TimeSlot(2, "2025-01-12", "14:00", "14:30", 9, "PC", 80),
    )
    state = machine.reduce(_filled(machine, count=0), SetSlots(mixed))

    state = machine.reduce(state, BeginSubmit())

    assert state.status is FormStatus.EDITING
    assert state.errors["slots"] == "Slots must be on one console and date"


def test_session_window_ignores_pick_order():
    """Test the window runs from the earliest start to the latest end."""
    machine = _machine()
    later, earlier = _slots(3)[2], _slots(3)[1]
    state = machine.reduce(_filled(machine, count=0), ToggleSlot(later))
    state = machine.reduce(state, ToggleSlot(earlier))

    submission = machine.build_submission(state, BEFORE_OPENING)

    assert submission.slot_ids == (42, 41)
    assert submission.start_time == "14:30"
    assert submission.end_time == "15:30"
