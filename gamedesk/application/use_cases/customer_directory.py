from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from gamedesk.application.exceptions import ExternalServiceUnavailable
from gamedesk.application.ports.booking_service import BookingServicePort
from gamedesk.domain.entities.customer import CustomerRecord

SUGGESTION_FIELDS = ("name", "email", "phone")


class CustomerDirectoryCache:
    """
    Per-vendor customer snapshot backing the name/email/phone suggestion inputs.

    Readers always get the current tuple; `refresh` is the only writer and swaps
    the tuple in one assignment, so reads during a refresh see the stale copy.
    Concurrent refreshes share one in-flight fetch.
    """

    def __init__(
        self,
        service: BookingServicePort,
        vendor_id: int,
        ttl_seconds: float = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._service = service
        self._vendor_id = vendor_id
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: tuple[CustomerRecord, ...] = ()
        self._fetched_at: float | None = None
        self._inflight: asyncio.Task | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def entries(self) -> tuple[CustomerRecord, ...]:
        return self._entries

    def is_fresh(self) -> bool:
        return self._fetched_at is not None and self._clock() - self._fetched_at < self._ttl_seconds

    async def get(self) -> tuple[CustomerRecord, ...]:
        if not self.is_fresh():
            await self.refresh()
        return self._entries

    async def refresh(self) -> tuple[CustomerRecord, ...]:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._fetch())
        return await asyncio.shield(self._inflight)

    async def _fetch(self) -> tuple[CustomerRecord, ...]:
        try:
            customers = await self._service.fetch_customers(self._vendor_id)
        except ExternalServiceUnavailable as e:
            self._logger.warning("Customer directory unavailable", extra={"vendor_id": self._vendor_id, "error": str(e)})
            return self._entries

        self._entries = tuple(customers)
        self._fetched_at = self._clock()
        self._logger.info("Customer directory refreshed", extra={"vendor_id": self._vendor_id, "count": len(self._entries)})
        return self._entries

    def contains(self, email: str, phone: str) -> bool:
        email = (email or "").strip().lower()
        phone = (phone or "").strip()
        return any(
            (email and entry.email.strip().lower() == email) or (phone and entry.phone.strip() == phone)
            for entry in self._entries
        )

    async def refresh_if_new_customer(self, email: str, phone: str) -> bool:
        """Refetch only when the customer just booked is not known yet. Returns True if refetched."""
        if self.contains(email, phone):
            return False
        await self.refresh()
        return True

    def suggestions(self, field: str, query: str) -> list[CustomerRecord]:
        if field not in SUGGESTION_FIELDS:
            raise ValueError(f"unknown suggestion field: {field}")
        needle = (query or "").strip().lower()
        if not needle:
            return list(self._entries)
        return [entry for entry in self._entries if needle in (getattr(entry, field) or "").lower()]
