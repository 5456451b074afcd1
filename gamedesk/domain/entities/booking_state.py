from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gamedesk.domain.entities.add_on import AddOnLine
from gamedesk.domain.entities.customer import Pass
from gamedesk.domain.entities.time_slot import ManualInterval, SelectedSlotSet


class PaymentMethod(str, Enum):
    CASH = "Cash"
    UPI = "UPI"
    PASS = "Pass"


class BookingMode(str, Enum):
    REGULAR = "regular"
    PRIVATE = "private"


class FormStatus(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED_RECOVERABLE = "failed_recoverable"
    FAILED_CONFLICT = "failed_conflict"


@dataclass(frozen=True)
class BookingDraft:
    name: str = ""
    email: str = ""
    phone: str = ""
    payment_method: PaymentMethod | None = PaymentMethod.CASH
    pass_uid: str = ""
    validated_pass: Pass | None = None
    is_private_mode: bool = False
    selected_slots: SelectedSlotSet = SelectedSlotSet()
    manual_interval: ManualInterval | None = None
    add_ons: tuple[AddOnLine, ...] = ()
    manual_waive_off: float = 0.0
    extra_fee: float = 0.0  # e.g. extra controller
    notes: str = ""

    @property
    def booking_mode(self) -> BookingMode:
        return BookingMode.PRIVATE if self.is_private_mode else BookingMode.REGULAR


@dataclass(frozen=True)
class BookingFormState:
    draft: BookingDraft = BookingDraft()
    status: FormStatus = FormStatus.EDITING
    errors: dict[str, str] = field(default_factory=dict)
    message: str | None = None
    failed_slot_ids: tuple[int | str, ...] = ()
    needs_slot_refresh: bool = False
    booking_id: str | None = None

    @property
    def is_editable(self) -> bool:
        return self.status in (FormStatus.EDITING, FormStatus.FAILED_RECOVERABLE, FormStatus.FAILED_CONFLICT)


@dataclass(frozen=True)
class BookingSubmission:
    """Immutable create-booking payload built once from a validated draft."""

    booking_mode: BookingMode
    console_type: str
    name: str
    email: str
    phone: str
    booked_date: str
    slot_ids: tuple[int, ...]
    payment_type: PaymentMethod
    waive_off_total: float
    extra_fee: float
    add_ons: tuple[tuple[int, int], ...]  # (item_id, quantity)
    total: float
    hours_required: float
    console_id: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration_hours: float | None = None
    hourly_rate: float | None = None
    notes: str = ""

    def to_payload(self) -> dict[str, Any]:
        if self.booking_mode is BookingMode.PRIVATE:
            return {
                "user_info": {"name": self.name, "email": self.email, "phone": self.phone},
                "game_id": self.console_id,
                "booking_date": self.booked_date,
                "start_time": self.start_time,
                "end_time": self.end_time,
                "duration_hours": self.duration_hours,
                "hourly_rate": self.hourly_rate,
                "extra_services": [{"item_id": item_id, "quantity": qty} for item_id, qty in self.add_ons],
                "payment_mode": self.payment_type.value,
                "waive_off_amount": self.waive_off_total,
                "extra_controller_fare": self.extra_fee,
                "notes": self.notes,
            }
        return {
            "consoleType": self.console_type,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "bookedDate": self.booked_date,
            "slotId": list(self.slot_ids),
            "paymentType": self.payment_type.value,
            "waiveOffAmount": self.waive_off_total,
            "extraControllerFare": self.extra_fee,
            "selectedMeals": [{"menu_item_id": item_id, "quantity": qty} for item_id, qty in self.add_ons],
            "bookingMode": self.booking_mode.value,
        }
