from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError as PydanticValidationError

from gamedesk.api.schemas import (
    LiveRowSchema,
    NotificationAckSchema,
    PendingRequestSchema,
    SettleRequestSchema,
    SettleResponseSchema,
    SnapshotRequestSchema,
    TimerSchema,
)
from gamedesk.application.dto.notification_event import NotificationEventDTO
from gamedesk.application.exceptions import (
    ExternalServiceUnavailable,
    RecoverableSubmissionError,
    ValidationError,
)
from gamedesk.application.use_cases.live_sessions import LiveRow, LiveSessionFeed
from gamedesk.application.use_cases.session_merger import format_duration
from gamedesk.application.use_cases.settle_overtime import SettleOvertimeUseCase
from gamedesk.domain.entities.session import ActiveSession
from gamedesk.wiring.dependencies import get_live_feed, get_settle_overtime_use_case, get_vendor_id


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/notifications", response_model=NotificationAckSchema)
def receive_notification(
    payload: dict,
    feed: LiveSessionFeed = Depends(get_live_feed),
    vendor_id: int = Depends(get_vendor_id),
) -> NotificationAckSchema:
    try:
        dto = NotificationEventDTO.model_validate(payload)
    except PydanticValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    event = dto.to_event(vendor_id or None)
    if event is None:
        logger.debug("Notification ignored", extra={"event": dto.event})
        return NotificationAckSchema(accepted=False)

    changed = feed.apply(event)
    logger.info("Notification applied", extra={"event": event.kind.value, "booking_id": event.booking_id})
    return NotificationAckSchema(accepted=True, changed=changed, kind=event.kind.value)


@router.put("/sessions/live")
def replace_live_sessions(
    req: SnapshotRequestSchema,
    feed: LiveSessionFeed = Depends(get_live_feed),
) -> dict[str, int]:
    feed.replace_sessions(ActiveSession(**item.model_dump()) for item in req.sessions)
    return {"sessions": len(feed.sessions)}


@router.get("/sessions/live", response_model=list[LiveRowSchema])
def live_sessions(
    rate_per_hour: float | None = None,
    feed: LiveSessionFeed = Depends(get_live_feed),
) -> list[LiveRowSchema]:
    return [_row_schema(row) for row in feed.rows(rate_per_hour=rate_per_hour)]


@router.get("/notifications/pending", response_model=list[PendingRequestSchema])
def pending_requests(feed: LiveSessionFeed = Depends(get_live_feed)) -> list[PendingRequestSchema]:
    return [
        PendingRequestSchema(
            booking_id=request.booking_id,
            username=request.username,
            console_type=request.console_type,
            amount=request.amount,
        )
        for request in sorted(feed.pending_requests, key=lambda r: r.received_at or 0)
    ]


@router.post("/sessions/{booking_id}/settle", response_model=SettleResponseSchema)
async def settle_session(
    booking_id: str,
    req: SettleRequestSchema,
    feed: LiveSessionFeed = Depends(get_live_feed),
    uc: SettleOvertimeUseCase = Depends(get_settle_overtime_use_case),
    vendor_id: int = Depends(get_vendor_id),
) -> SettleResponseSchema:
    row = feed.find_row(booking_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Session not found")

    try:
        quote = await uc.settle(
            vendor_id,
            row.session,
            payment_mode=req.payment_mode,
            waive_off=req.waive_off,
            rate_per_hour=req.rate_per_hour,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors)
    except (RecoverableSubmissionError, ExternalServiceUnavailable) as e:
        raise HTTPException(status_code=502, detail=str(e))

    return SettleResponseSchema(
        booking_id=str(row.session.booking_id),
        extra_seconds=quote.extra_seconds,
        rate_per_hour=quote.rate_per_hour,
        amount=quote.amount,
        waive_off=quote.waive_off,
        net_amount=quote.net_amount,
    )


def _row_schema(row: LiveRow) -> LiveRowSchema:
    session = row.session
    return LiveRowSchema(
        slot_id=session.slot_id,
        booking_id=session.booking_id,
        console_number=session.console_number,
        console_type=session.console_type,
        username=session.username,
        date=session.date,
        start_time=session.start_time,
        end_time=session.end_time,
        status=session.status,
        total_price=session.total_price,
        slot_ids=list(session.slot_ids),
        booking_ids=list(session.booking_ids),
        timer=TimerSchema(
            elapsed=format_duration(row.timer.elapsed_seconds),
            extra=format_duration(row.timer.extra_seconds),
            progress_percent=row.timer.progress_percent,
            overtime_amount=row.timer.overtime_amount,
        ),
    )
