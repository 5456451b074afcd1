from __future__ import annotations

from collections.abc import Iterable, Mapping


class InvalidTimeInput(ValueError):
    """Raised when a date or time string cannot be turned into an instant."""
    pass


class ValidationError(ValueError):
    """Raised when user-correctable input is rejected. Carries field -> message."""

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {message}" for field, message in self.errors.items()))


class RecoverableSubmissionError(RuntimeError):
    """Raised when a submission fails in a way the operator can retry (data is kept)."""
    pass


class SlotConflictError(RuntimeError):
    """Raised when the booking service reports that selected slots are already taken."""

    def __init__(self, message: str, failed_slot_ids: Iterable[int | str] = ()) -> None:
        self.failed_slot_ids = tuple(failed_slot_ids)
        super().__init__(message)


class ExternalServiceUnavailable(RuntimeError):
    """Raised when the booking service cannot be reached or returns garbage."""
    pass
