from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from gamedesk.api.schemas import (
    BookingRequestSchema,
    BookingResultSchema,
    CustomerSchema,
    PassValidateRequestSchema,
    PassValidateResponseSchema,
    SlotSchema,
)
from gamedesk.application.use_cases.booking_form import (
    BookingFormMachine,
    FormAction,
    SetField,
    SetManualInterval,
    SetMeals,
    SetSlots,
    SetValidatedPass,
    TogglePrivateMode,
    build_manual_interval,
)
from gamedesk.application.use_cases.customer_directory import CustomerDirectoryCache
from gamedesk.application.use_cases.pass_validation import PassValidationUseCase
from gamedesk.application.use_cases.slot_availability import SlotAvailabilityLoader
from gamedesk.application.use_cases.submit_booking import SubmitBookingUseCase
from gamedesk.domain.entities.add_on import AddOnLine
from gamedesk.domain.entities.booking_state import FormStatus, PaymentMethod
from gamedesk.wiring.dependencies import (
    get_customer_directory,
    get_form_machine,
    get_pass_validation_use_case,
    get_slot_loader,
    get_submit_booking_use_case,
    get_vendor_id,
)


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/slots", response_model=list[SlotSchema])
async def load_slots(
    console_id: int,
    date: str,
    console_name: str = "",
    loader: SlotAvailabilityLoader = Depends(get_slot_loader),
) -> list[SlotSchema]:
    slots = await loader.select(console_id, date, console_name)
    if slots is None:
        raise HTTPException(status_code=409, detail="Slot selection changed")
    if loader.error:
        raise HTTPException(status_code=502, detail=loader.error)
    return [SlotSchema(**asdict(slot)) for slot in slots]


@router.get("/customers/suggestions", response_model=list[CustomerSchema])
async def customer_suggestions(
    field: str = "name",
    q: str = "",
    directory: CustomerDirectoryCache = Depends(get_customer_directory),
) -> list[CustomerSchema]:
    await directory.get()
    try:
        matches = directory.suggestions(field, q)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [CustomerSchema(name=c.name, email=c.email, phone=c.phone) for c in matches]


@router.post("/passes/validate", response_model=PassValidateResponseSchema)
async def validate_pass(
    req: PassValidateRequestSchema,
    uc: PassValidationUseCase = Depends(get_pass_validation_use_case),
    vendor_id: int = Depends(get_vendor_id),
) -> PassValidateResponseSchema:
    result = await uc.validate(vendor_id, req.pass_uid, req.hours_required)
    if not result.service_available:
        raise HTTPException(status_code=502, detail=result.error)
    return PassValidateResponseSchema(
        valid=result.pass_ is not None,
        error=result.error,
        remaining_hours=result.pass_.remaining_hours if result.pass_ else None,
    )


@router.post("/bookings", response_model=BookingResultSchema)
async def create_booking(
    req: BookingRequestSchema,
    machine: BookingFormMachine = Depends(get_form_machine),
    loader: SlotAvailabilityLoader = Depends(get_slot_loader),
    passes: PassValidationUseCase = Depends(get_pass_validation_use_case),
    uc: SubmitBookingUseCase = Depends(get_submit_booking_use_case),
    vendor_id: int = Depends(get_vendor_id),
) -> BookingResultSchema:
    state = machine.initial_state()
    for action in _form_actions(req, loader):
        state = machine.reduce(state, action)

    if state.draft.payment_method is PaymentMethod.PASS and req.pass_uid.strip():
        check = await passes.validate(vendor_id, req.pass_uid, machine.hours_required(state.draft))
        if not check.service_available:
            raise HTTPException(status_code=502, detail=check.error)
        if check.error:
            raise HTTPException(status_code=400, detail={"pass": check.error})
        state = machine.reduce(state, SetValidatedPass(check.pass_))

    state = await uc.submit(vendor_id, state)

    if state.status is FormStatus.SUCCESS:
        return BookingResultSchema(status=state.status.value, booking_id=state.booking_id)
    if state.status is FormStatus.FAILED_CONFLICT:
        raise HTTPException(
            status_code=409,
            detail={"message": state.message, "failed_slot_ids": list(state.failed_slot_ids)},
        )
    if state.status is FormStatus.FAILED_RECOVERABLE:
        raise HTTPException(status_code=502, detail=state.message)
    raise HTTPException(status_code=400, detail=state.errors or state.message)


def _form_actions(req: BookingRequestSchema, loader: SlotAvailabilityLoader) -> list[FormAction]:
    actions: list[FormAction] = [
        SetField("name", req.name),
        SetField("email", req.email),
        SetField("phone", req.phone),
        SetField("payment_method", req.payment_method),
        SetField("pass_uid", req.pass_uid),
        SetField("manual_waive_off", req.waive_off),
        SetField("extra_fee", req.extra_fee),
        SetField("notes", req.notes),
        SetMeals(tuple(AddOnLine(a.item_id, a.name, a.unit_price, a.quantity) for a in req.add_ons)),
    ]

    if req.private is not None:
        interval = req.private
        actions.append(TogglePrivateMode())
        actions.append(
            SetManualInterval(
                build_manual_interval(
                    interval.date,
                    interval.start_time,
                    interval.end_time,
                    interval.hourly_rate,
                    console_id=interval.console_id,
                    console_name=interval.console_name,
                )
            )
        )
        return actions

    # Slot ids refer to the grid last loaded through GET /slots.
    grid = {slot.slot_id: slot for slot in loader.slots}
    missing = [slot_id for slot_id in req.slot_ids if slot_id not in grid]
    if missing:
        logger.info("Booking for slots outside the loaded grid", extra={"reason": missing})
        raise HTTPException(status_code=400, detail={"slots": "Selected slots are not in the current grid"})
    actions.append(SetSlots(tuple(grid[slot_id] for slot_id in req.slot_ids)))
    return actions
