from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from gamedesk.application.exceptions import InvalidTimeInput, ValidationError
from gamedesk.application.use_cases.pricing import PricingAggregator, PricingBreakdown, coerce_amount
from gamedesk.application.use_cases.proration import ProrationEngine
from gamedesk.application.utils.time_basis import minutes_of_day
from gamedesk.application.utils.validators import format_hours, is_valid_email, is_valid_phone
from gamedesk.domain.entities.add_on import AddOnLine
from gamedesk.domain.entities.booking_response import Accepted, RecoverableError, SlotConflict, SubmissionOutcome
from gamedesk.domain.entities.booking_state import (
    BookingDraft,
    BookingFormState,
    BookingMode,
    BookingSubmission,
    FormStatus,
    PaymentMethod,
)
from gamedesk.domain.entities.customer import Pass
from gamedesk.domain.entities.time_slot import ManualInterval, SelectedSlotSet, TimeSlot

TEXT_FIELDS = ("name", "email", "phone", "pass_uid", "notes")
AMOUNT_FIELDS = ("manual_waive_off", "extra_fee")
SLOT_REFRESH_MESSAGE = "Slot availability changed. Please re-select slots."


@dataclass(frozen=True)
class SetField:
    field: str
    value: Any


@dataclass(frozen=True)
class SetSlots:
    slots: tuple[TimeSlot, ...]


@dataclass(frozen=True)
class ToggleSlot:
    slot: TimeSlot


@dataclass(frozen=True)
class SetManualInterval:
    interval: ManualInterval | None


@dataclass(frozen=True)
class TogglePrivateMode:
    pass


@dataclass(frozen=True)
class SetMeals:
    lines: tuple[AddOnLine, ...]


@dataclass(frozen=True)
class SelectAddOn:
    line: AddOnLine


@dataclass(frozen=True)
class RemoveAddOn:
    item_id: int


@dataclass(frozen=True)
class SetValidatedPass:
    pass_: Pass | None


@dataclass(frozen=True)
class SetErrors:
    errors: dict[str, str]


@dataclass(frozen=True)
class BeginSubmit:
    pass


@dataclass(frozen=True)
class SubmissionResolved:
    outcome: SubmissionOutcome


@dataclass(frozen=True)
class SlotGridRefreshed:
    pass


@dataclass(frozen=True)
class ResetForm:
    pass


FormAction = (
    SetField
    | SetSlots
    | ToggleSlot
    | SetManualInterval
    | TogglePrivateMode
    | SetMeals
    | SelectAddOn
    | RemoveAddOn
    | SetValidatedPass
    | SetErrors
    | BeginSubmit
    | SubmissionResolved
    | SlotGridRefreshed
    | ResetForm
)

DRAFT_ACTIONS = (
    SetField,
    SetSlots,
    ToggleSlot,
    SetManualInterval,
    TogglePrivateMode,
    SetMeals,
    SelectAddOn,
    RemoveAddOn,
    SetValidatedPass,
)


def build_manual_interval(
    date: str,
    start_time: str,
    end_time: str,
    hourly_rate: float,
    console_id: int | None = None,
    console_name: str | None = None,
    duration_hours: float | None = None,
) -> ManualInterval:
    """Private booking interval; duration defaults to start..end rounded to the nearest half hour."""
    if duration_hours is None:
        try:
            minutes = minutes_of_day(end_time) - minutes_of_day(start_time)
        except InvalidTimeInput:
            minutes = 0
        duration_hours = round(max(0, minutes) / 60 * 2) / 2
    return ManualInterval(
        date=date,
        start_time=start_time,
        end_time=end_time,
        duration_hours=duration_hours,
        hourly_rate=coerce_amount(hourly_rate),
        console_id=console_id,
        console_name=console_name,
    )


def merge_add_on(lines: Iterable[AddOnLine], line: AddOnLine) -> tuple[AddOnLine, ...]:
    """Replace the line for line.item_id; a non-positive quantity removes it."""
    kept = [existing for existing in lines if existing.item_id != line.item_id]
    if line.quantity > 0:
        kept.append(line)
    return tuple(kept)


class BookingFormMachine:
    """
    Reducer for the booking form.

    `reduce` is pure: it never reads the clock and never performs I/O. The
    submission orchestrator drives it with `BeginSubmit` and
    `SubmissionResolved` around the network calls.
    """

    def __init__(self, proration: ProrationEngine, pricing: PricingAggregator, phone_digits: int = 10) -> None:
        self._proration = proration
        self._pricing = pricing
        self._phone_digits = phone_digits
        self._logger = logging.getLogger(__name__)

    def initial_state(self) -> BookingFormState:
        return BookingFormState()

    def reduce(self, state: BookingFormState, action: FormAction) -> BookingFormState:
        if isinstance(action, ResetForm):
            return BookingFormState()

        if isinstance(action, SubmissionResolved):
            return self._resolve(state, action.outcome)

        if isinstance(action, SlotGridRefreshed):
            return replace(state, needs_slot_refresh=False)

        if isinstance(action, SetErrors):
            return replace(state, errors=dict(action.errors))

        if isinstance(action, BeginSubmit):
            return self._begin_submit(state)

        if isinstance(action, DRAFT_ACTIONS):
            if state.status in (FormStatus.SUBMITTING, FormStatus.SUCCESS):
                self._logger.debug("Ignoring form edit", extra={"reason": state.status.value})
                return state
            draft, cleared = self._apply_to_draft(state.draft, action)
            if draft is state.draft:
                return state
            errors = {key: value for key, value in state.errors.items() if key not in cleared}
            return replace(state, draft=draft, errors=errors, status=FormStatus.EDITING, message=None)

        self._logger.warning("Unknown form action", extra={"reason": type(action).__name__})
        return state

    def _apply_to_draft(self, draft: BookingDraft, action: FormAction) -> tuple[BookingDraft, tuple[str, ...]]:
        if isinstance(action, SetField):
            return self._set_field(draft, action.field, action.value)

        if isinstance(action, SetSlots):
            return replace(draft, selected_slots=SelectedSlotSet.of(action.slots)), ("slots", "pass")

        if isinstance(action, ToggleSlot):
            return replace(draft, selected_slots=draft.selected_slots.toggle(action.slot)), ("slots", "pass")

        if isinstance(action, SetManualInterval):
            return replace(draft, manual_interval=action.interval), ("date", "time", "duration", "game", "pass")

        if isinstance(action, TogglePrivateMode):
            return replace(draft, is_private_mode=not draft.is_private_mode), ()

        if isinstance(action, SetMeals):
            lines: tuple[AddOnLine, ...] = ()
            for line in action.lines:
                lines = merge_add_on(lines, line)
            return replace(draft, add_ons=lines), ()

        if isinstance(action, SelectAddOn):
            return replace(draft, add_ons=merge_add_on(draft.add_ons, action.line)), ()

        if isinstance(action, RemoveAddOn):
            return replace(draft, add_ons=tuple(line for line in draft.add_ons if line.item_id != action.item_id)), ()

        if isinstance(action, SetValidatedPass):
            return replace(draft, validated_pass=action.pass_), ("pass",)

        return draft, ()

    def _set_field(self, draft: BookingDraft, field: str, value: Any) -> tuple[BookingDraft, tuple[str, ...]]:
        if field in TEXT_FIELDS:
            text = "" if value is None else str(value)
            if field == "pass_uid":
                # A different uid invalidates the pass checked earlier.
                return replace(draft, pass_uid=text, validated_pass=None), ("pass_uid", "pass")
            return replace(draft, **{field: text}), (field,)

        if field in AMOUNT_FIELDS:
            return replace(draft, **{field: coerce_amount(value)}), (field,)

        if field == "payment_method":
            return replace(draft, payment_method=_payment_method(value)), ("payment_method", "pass")

        self._logger.warning("Ignoring unknown form field", extra={"reason": field})
        return draft, ()

    def _begin_submit(self, state: BookingFormState) -> BookingFormState:
        if state.status in (FormStatus.SUBMITTING, FormStatus.SUCCESS):
            return state
        if state.needs_slot_refresh:
            return replace(state, message=SLOT_REFRESH_MESSAGE)

        errors = self.validate(state.draft)
        if errors:
            self._logger.info("Booking form validation failed", extra={"reason": ",".join(sorted(errors))})
            return replace(state, status=FormStatus.EDITING, errors=errors, message=None)
        return replace(state, status=FormStatus.SUBMITTING, errors={}, message=None, failed_slot_ids=())

    def _resolve(self, state: BookingFormState, outcome: SubmissionOutcome) -> BookingFormState:
        if state.status is not FormStatus.SUBMITTING:
            return state

        if isinstance(outcome, Accepted):
            return replace(state, status=FormStatus.SUCCESS, booking_id=outcome.booking_id, message=None)

        if isinstance(outcome, SlotConflict):
            return replace(
                state,
                draft=replace(state.draft, selected_slots=SelectedSlotSet()),
                status=FormStatus.FAILED_CONFLICT,
                message=outcome.message,
                failed_slot_ids=tuple(outcome.failed_slot_ids),
                needs_slot_refresh=True,
                errors={"slots": SLOT_REFRESH_MESSAGE},
            )

        if isinstance(outcome, RecoverableError):
            return replace(state, status=FormStatus.FAILED_RECOVERABLE, message=outcome.message)

        return state

    def validate(self, draft: BookingDraft) -> dict[str, str]:
        errors: dict[str, str] = {}

        if not draft.name.strip():
            errors["name"] = "Name is required"

        if not draft.email.strip():
            errors["email"] = "Email is required"
        elif not is_valid_email(draft.email.strip()):
            errors["email"] = "Invalid email format"

        phone_digits = None if draft.is_private_mode else self._phone_digits
        if not draft.phone.strip():
            errors["phone"] = "Phone is required"
        elif not is_valid_phone(draft.phone, phone_digits):
            errors["phone"] = f"Phone must be {self._phone_digits} digits"

        if draft.is_private_mode:
            errors.update(_interval_errors(draft.manual_interval))
        elif len(draft.selected_slots) == 0:
            errors["slots"] = "Please select at least one slot"
        elif not draft.selected_slots.is_single_console_date:
            errors["slots"] = "Slots must be on one console and date"

        if draft.payment_method is None:
            errors["payment_method"] = "Please select payment mode"
        elif draft.payment_method is PaymentMethod.PASS:
            pass_error = self._pass_error(draft)
            if pass_error:
                errors["pass"] = pass_error

        return errors

    def _pass_error(self, draft: BookingDraft) -> str | None:
        if draft.validated_pass is None:
            return "Please validate the pass first"
        required = self.hours_required(draft)
        remaining = coerce_amount(draft.validated_pass.remaining_hours)
        if remaining < required:
            return f"Insufficient hours. Need {format_hours(required)} hrs, available {format_hours(remaining)} hrs"
        return None

    def hours_required(self, draft: BookingDraft) -> float:
        if draft.is_private_mode:
            return coerce_amount(draft.manual_interval.duration_hours) if draft.manual_interval else 0.0
        return self._pricing.hours_required(len(draft.selected_slots))

    def pricing(self, draft: BookingDraft, now: datetime | None = None) -> PricingBreakdown:
        if draft.is_private_mode:
            console_total = self._pricing.interval_total(draft.manual_interval)
            auto_waive_off = 0
        else:
            console_total = self._pricing.console_total(draft.selected_slots)
            auto_waive_off = self._proration.auto_waive_off(draft.selected_slots, now)

        return self._pricing.breakdown(
            console_total=console_total,
            manual_waive_off=draft.manual_waive_off,
            auto_waive_off=auto_waive_off,
            extra_fee=draft.extra_fee,
            addons_total=self._pricing.addons_total(draft.add_ons),
        )

    def build_submission(self, state: BookingFormState, now: datetime | None = None) -> BookingSubmission:
        draft = state.draft
        errors = self.validate(draft)
        if errors:
            raise ValidationError(errors)

        breakdown = self.pricing(draft, now)
        add_ons = tuple((line.item_id, line.quantity) for line in draft.add_ons)
        common = {
            "booking_mode": draft.booking_mode,
            "name": draft.name.strip(),
            "email": draft.email.strip(),
            "phone": draft.phone.strip(),
            "payment_type": draft.payment_method,
            "waive_off_total": round(breakdown.manual_waive_off + breakdown.auto_waive_off, 2),
            "extra_fee": round(breakdown.extra_fee, 2),
            "add_ons": add_ons,
            "total": breakdown.total,
            "hours_required": self.hours_required(draft),
            "notes": draft.notes,
        }

        if draft.booking_mode is BookingMode.PRIVATE:
            interval = draft.manual_interval
            return BookingSubmission(
                console_type=interval.console_name or "",
                booked_date=interval.date,
                slot_ids=(),
                console_id=interval.console_id,
                start_time=interval.start_time,
                end_time=interval.end_time,
                duration_hours=interval.duration_hours,
                hourly_rate=interval.hourly_rate,
                **common,
            )

        slots = draft.selected_slots
        start_time, end_time = _slot_window(slots)
        return BookingSubmission(
            console_type=slots.first.console_name,
            booked_date=slots.first.date,
            slot_ids=slots.slot_ids,
            console_id=slots.first.console_id,
            start_time=start_time,
            end_time=end_time,
            **common,
        )


def _payment_method(value: Any) -> PaymentMethod | None:
    if isinstance(value, PaymentMethod):
        return value
    try:
        return PaymentMethod(str(value))
    except ValueError:
        return None


def _slot_window(slots: SelectedSlotSet) -> tuple[str, str]:
    """Earliest start and latest end, whatever order the slots were picked in."""
    try:
        first = min(slots, key=lambda slot: minutes_of_day(slot.start_time))
        last = max(slots, key=lambda slot: minutes_of_day(slot.end_time))
    except InvalidTimeInput:
        return slots.first.start_time, slots.last.end_time
    return first.start_time, last.end_time


def _interval_errors(interval: ManualInterval | None) -> dict[str, str]:
    if interval is None:
        return {"time": "Start and end time are required"}
    errors: dict[str, str] = {}
    if interval.console_id is None:
        errors["game"] = "Please select a game type"
    if not interval.date:
        errors["date"] = "Booking date is required"
    if not interval.start_time or not interval.end_time:
        errors["time"] = "Start and end time are required"
    if coerce_amount(interval.duration_hours) <= 0:
        errors["duration"] = "Duration must be greater than 0"
    return errors
