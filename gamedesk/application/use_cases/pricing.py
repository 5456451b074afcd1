from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from gamedesk.domain.entities.add_on import AddOnLine
from gamedesk.domain.entities.time_slot import ManualInterval, TimeSlot


@dataclass(frozen=True)
class PricingBreakdown:
    console_total: float
    addons_total: float
    manual_waive_off: float
    auto_waive_off: float
    extra_fee: float
    total: float


def coerce_amount(value: Any) -> float:
    """Numeric value or 0 for None, NaN, infinity and anything unparseable."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    if amount < 0:
        return 0.0
    return amount


class PricingAggregator:
    """Combines slot charges, waive-offs, fees and add-ons into one non-negative total."""

    def __init__(self, slot_unit_hours: float = 0.5) -> None:
        self._slot_unit_hours = slot_unit_hours
        self._logger = logging.getLogger(__name__)

    @property
    def slot_unit_hours(self) -> float:
        return self._slot_unit_hours

    def console_total(self, slots: Iterable[TimeSlot]) -> float:
        return sum(coerce_amount(slot.unit_price) for slot in slots)

    def interval_total(self, interval: ManualInterval | None) -> float:
        if interval is None:
            return 0.0
        return coerce_amount(interval.hourly_rate) * coerce_amount(interval.duration_hours)

    def addons_total(self, add_ons: Iterable[AddOnLine]) -> float:
        return sum(coerce_amount(line.total) for line in add_ons)

    def total(
        self,
        console_total: Any,
        manual_waive_off: Any = 0,
        auto_waive_off: Any = 0,
        extra_fee: Any = 0,
        addons_total: Any = 0,
    ) -> float:
        return self.breakdown(console_total, manual_waive_off, auto_waive_off, extra_fee, addons_total).total

    def breakdown(
        self,
        console_total: Any,
        manual_waive_off: Any = 0,
        auto_waive_off: Any = 0,
        extra_fee: Any = 0,
        addons_total: Any = 0,
    ) -> PricingBreakdown:
        safe_console = coerce_amount(console_total)
        safe_manual = coerce_amount(manual_waive_off)
        safe_auto = coerce_amount(auto_waive_off)
        safe_fee = coerce_amount(extra_fee)
        safe_addons = coerce_amount(addons_total)

        # Add-ons are never discounted by the slot waive-offs beyond the floor.
        total = max(0.0, safe_console - safe_manual - safe_auto + safe_fee + safe_addons)
        self._logger.debug(
            "Total calculated",
            extra={
                "console_total": safe_console,
                "addons_total": safe_addons,
                "manual_waive_off": safe_manual,
                "auto_waive_off": safe_auto,
                "extra_fee": safe_fee,
                "total": total,
            },
        )
        return PricingBreakdown(
            console_total=safe_console,
            addons_total=safe_addons,
            manual_waive_off=safe_manual,
            auto_waive_off=safe_auto,
            extra_fee=safe_fee,
            total=total,
        )

    def hours_required(self, slot_count: int) -> float:
        return max(0, slot_count) * self._slot_unit_hours
