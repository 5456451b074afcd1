from __future__ import annotations

import re

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.search(email or ""))


def is_valid_phone(phone: str, digits: int | None = 10) -> bool:
    """Exactly `digits` digits; with digits=None any non-empty value passes."""
    value = (phone or "").strip()
    if not value:
        return False
    if digits is None:
        return True
    return bool(re.fullmatch(rf"\d{{{digits}}}", value))


def format_hours(hours: float) -> str:
    return f"{float(hours)}"
