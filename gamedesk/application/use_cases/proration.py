from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import datetime

from gamedesk.application.exceptions import InvalidTimeInput
from gamedesk.application.utils.time_basis import TimeBasis
from gamedesk.domain.entities.time_slot import TimeSlot


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ProrationEngine:
    """
    Automatic waive-off for slots whose time has already (partly) passed.

    A slot in progress is discounted by the elapsed fraction of its window, a
    slot that has fully elapsed is waived entirely, and a future slot costs
    full price. Contributions are summed and rounded once at the end.
    """

    def __init__(self, time_basis: TimeBasis) -> None:
        self._time_basis = time_basis
        self._logger = logging.getLogger(__name__)

    def slot_contribution(self, slot: TimeSlot, now: datetime) -> float:
        price = _safe_price(slot.unit_price)
        if price <= 0:
            return 0.0

        try:
            slot_start = self._time_basis.to_instant(slot.date, slot.start_time)
            slot_end = self._time_basis.to_instant(slot.date, slot.end_time)
        except InvalidTimeInput as e:
            self._logger.warning("Skipping slot with invalid time data", extra={"slot_id": slot.slot_id, "error": str(e)})
            return 0.0

        duration_minutes = (slot_end - slot_start).total_seconds() / 60
        if duration_minutes <= 0:
            self._logger.warning("Skipping slot with non-positive duration", extra={"slot_id": slot.slot_id})
            return 0.0

        if now < slot_start:
            return 0.0
        if now >= slot_end:
            return price

        elapsed_minutes = (now - slot_start).total_seconds() / 60
        return min(price, max(0.0, price * (elapsed_minutes / duration_minutes)))

    def auto_waive_off(self, slots: Iterable[TimeSlot], now: datetime | None = None) -> int:
        current = now if now is not None else self._time_basis.now()
        total = 0.0
        for slot in slots:
            try:
                total += self.slot_contribution(slot, current)
            except (TypeError, ValueError) as e:
                self._logger.warning("Skipping malformed slot", extra={"error": str(e)})
        return max(0, round_half_up(total))


def _safe_price(value: object) -> float:
    try:
        price = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(price) or math.isinf(price):
        return 0.0
    return price
