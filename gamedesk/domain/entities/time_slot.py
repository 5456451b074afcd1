from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class TimeSlot:
    slot_id: int
    date: str  # YYYY-MM-DD
    start_time: str  # HH:MM[:SS]
    end_time: str
    console_id: int
    console_name: str
    unit_price: float
    available: bool = True


@dataclass(frozen=True)
class SelectedSlotSet:
    """Ordered, duplicate-free slots chosen for one booking."""

    slots: tuple[TimeSlot, ...] = ()

    @classmethod
    def of(cls, slots: Iterable[TimeSlot]) -> "SelectedSlotSet":
        seen: set[int] = set()
        unique: list[TimeSlot] = []
        for slot in slots:
            if slot.slot_id in seen:
                continue
            seen.add(slot.slot_id)
            unique.append(slot)
        return cls(slots=tuple(unique))

    def add(self, slot: TimeSlot) -> "SelectedSlotSet":
        if slot.slot_id in self.slot_ids:
            return self
        return SelectedSlotSet(slots=self.slots + (slot,))

    def toggle(self, slot: TimeSlot) -> "SelectedSlotSet":
        if slot.slot_id in self.slot_ids:
            return SelectedSlotSet(slots=tuple(s for s in self.slots if s.slot_id != slot.slot_id))
        if not self.accepts(slot):
            # Another console or date starts a new selection.
            return SelectedSlotSet(slots=(slot,))
        return self.add(slot)

    def accepts(self, slot: TimeSlot) -> bool:
        if not self.slots:
            return True
        first = self.slots[0]
        return (slot.console_id, slot.date) == (first.console_id, first.date)

    @property
    def is_single_console_date(self) -> bool:
        return len({(slot.console_id, slot.date) for slot in self.slots}) <= 1

    @property
    def slot_ids(self) -> tuple[int, ...]:
        return tuple(slot.slot_id for slot in self.slots)

    @property
    def first(self) -> TimeSlot | None:
        return self.slots[0] if self.slots else None

    @property
    def last(self) -> TimeSlot | None:
        return self.slots[-1] if self.slots else None

    def __iter__(self) -> Iterator[TimeSlot]:
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)


@dataclass(frozen=True)
class ManualInterval:
    """Explicit date + time range used by private bookings instead of discrete slots."""

    date: str
    start_time: str
    end_time: str
    duration_hours: float
    hourly_rate: float
    console_id: int | None = None
    console_name: str | None = None
