from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CustomerRecord:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class Pass:
    pass_uid: str
    remaining_hours: float
    total_hours: float | None = None
    owner: CustomerRecord | None = None
