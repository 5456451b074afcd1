from __future__ import annotations

import logging
from typing import Any

import httpx

from gamedesk.application.exceptions import (
    ExternalServiceUnavailable,
    RecoverableSubmissionError,
    SlotConflictError,
)
from gamedesk.application.ports.booking_service import BookingServicePort
from gamedesk.application.use_cases.slot_conflict import response_from_mapping
from gamedesk.core.config import settings
from gamedesk.domain.entities.booking_response import BookingResponse, PassValidation
from gamedesk.domain.entities.booking_state import BookingMode, BookingSubmission
from gamedesk.domain.entities.customer import CustomerRecord, Pass
from gamedesk.domain.entities.time_slot import TimeSlot

AVAILABLE_STATUSES = {"available", "free", "open"}


class HttpBookingService(BookingServicePort):
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.BOOKING_SERVICE_BASE_URL or "").rstrip("/")
        if not self._base_url:
            raise ValueError("BOOKING_SERVICE_BASE_URL is required for the HTTP booking service")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._logger = logging.getLogger(__name__)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_slots(self, vendor_id: int, console_id: int, date: str, console_name: str = "") -> list[TimeSlot]:
        compact_date = date.replace("-", "")
        data = await self._read(
            "POST",
            f"/api/getSlotsBatch/vendor/{vendor_id}",
            json={"game_ids": [console_id], "dates": [compact_date]},
        )
        if not isinstance(data, dict):
            raise ExternalServiceUnavailable("Unexpected slot payload")

        by_console = data.get(compact_date) or data.get(date) or {}
        raw_slots = by_console.get(str(console_id)) or by_console.get(console_id) or []

        slots: list[TimeSlot] = []
        for raw in raw_slots:
            try:
                slots.append(
                    TimeSlot(
                        slot_id=int(raw["slot_id"]),
                        date=date,
                        start_time=str(raw["start_time"]),
                        end_time=str(raw["end_time"]),
                        console_id=console_id,
                        console_name=console_name,
                        unit_price=float(raw.get("price") or raw.get("console_price") or 0),
                        available=_is_available(raw),
                    )
                )
            except (KeyError, TypeError, ValueError):
                self._logger.warning("Skipping malformed slot", extra={"vendor_id": vendor_id, "slot_id": raw})
                continue
        return slots

    async def fetch_customers(self, vendor_id: int) -> list[CustomerRecord]:
        data = await self._read("GET", f"/api/vendor/{vendor_id}/users")
        if not isinstance(data, list):
            return []
        return [
            CustomerRecord(
                name=str(item.get("name") or ""),
                email=str(item.get("email") or ""),
                phone=str(item.get("phone") or ""),
            )
            for item in data
            if isinstance(item, dict)
        ]

    async def validate_pass(self, vendor_id: int, pass_uid: str) -> PassValidation:
        response = await self._send("POST", "/api/pass/validate", json={"pass_uid": pass_uid.strip(), "vendor_id": vendor_id})
        data = _json_or_empty(response)

        if response.is_success and data.get("valid") and isinstance(data.get("pass"), dict):
            return PassValidation(valid=True, pass_=_parse_pass(data["pass"]))
        return PassValidation(valid=False, error=data.get("error") or "Invalid pass")

    async def redeem_pass(
        self,
        vendor_id: int,
        pass_uid: str,
        hours_to_deduct: float,
        session_start: str,
        session_end: str,
        notes: str,
    ) -> None:
        response = await self._send(
            "POST",
            "/api/pass/redeem/dashboard",
            json={
                "pass_uid": pass_uid.strip(),
                "vendor_id": vendor_id,
                "hours_to_deduct": hours_to_deduct,
                "session_start": session_start,
                "session_end": session_end,
                "notes": notes,
            },
        )
        data = _json_or_empty(response)
        if not response.is_success or not data.get("success"):
            self._logger.error("Pass redemption refused", extra={"vendor_id": vendor_id, "status": response.status_code})
            raise RecoverableSubmissionError(data.get("error") or "Failed to redeem pass")

    async def create_booking(self, vendor_id: int, submission: BookingSubmission) -> BookingResponse:
        payload = submission.to_payload()
        if submission.booking_mode is BookingMode.PRIVATE:
            path = "/api/booking/private"
            payload["vendor_id"] = vendor_id
        else:
            path = f"/api/newBooking/vendor/{vendor_id}"

        response = await self._send("POST", path, json=payload)
        data = _json_or_empty(response)

        if not response.is_success:
            message = data.get("message") or data.get("error") or "Failed to create booking"
            if data.get("failed_slots"):
                raise SlotConflictError(message, data["failed_slots"])
            self._logger.error("Booking creation failed", extra={"vendor_id": vendor_id, "status": response.status_code})
            raise RecoverableSubmissionError(message)

        result = response_from_mapping(data)
        if result.success:
            self._logger.info("Booking created", extra={"vendor_id": vendor_id, "booking_id": result.booking_id})
        return result

    async def create_extra_booking(self, payload: dict[str, Any]) -> None:
        response = await self._send("POST", "/api/extraBooking", json=payload)
        if not response.is_success:
            self._logger.error("Extra booking failed", extra={"status": response.status_code})
            raise RecoverableSubmissionError("Failed to create extra booking")

    async def release_console(self, game_id: str, console_number: str, vendor_id: int) -> None:
        response = await self._send(
            "POST",
            f"/api/releaseDevice/consoleTypeId/{game_id}/console/{console_number}/vendor/{vendor_id}",
        )
        if not response.is_success:
            self._logger.error("Console release failed", extra={"vendor_id": vendor_id, "status": response.status_code})
            raise RecoverableSubmissionError("Failed to release the console")
        self._logger.info("Console released", extra={"vendor_id": vendor_id, "console": console_number})

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            self._logger.error("Booking service unreachable", extra={"path": path, "error": str(e)})
            raise ExternalServiceUnavailable(f"Booking service unreachable: {e}") from e

    async def _read(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._send(method, path, **kwargs)
        if not response.is_success:
            self._logger.error("Booking service read failed", extra={"path": path, "status": response.status_code})
            raise ExternalServiceUnavailable(f"{path} returned {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceUnavailable(f"{path} returned invalid JSON") from e


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _is_available(raw: dict[str, Any]) -> bool:
    if "is_available" in raw:
        return bool(raw["is_available"])
    status = str(raw.get("status") or "available").strip().lower()
    return status in AVAILABLE_STATUSES


def _parse_pass(raw: dict[str, Any]) -> Pass:
    owner = None
    if raw.get("user_name") or raw.get("user_email") or raw.get("user_phone"):
        owner = CustomerRecord(
            name=str(raw.get("user_name") or ""),
            email=str(raw.get("user_email") or ""),
            phone=str(raw.get("user_phone") or ""),
        )
    total = raw.get("total_hours")
    return Pass(
        pass_uid=str(raw.get("pass_uid") or ""),
        remaining_hours=float(raw.get("remaining_hours") or 0),
        total_hours=float(total) if total is not None else None,
        owner=owner,
    )
