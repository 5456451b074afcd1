from __future__ import annotations

import logging
from collections.abc import Callable

from gamedesk.application.ports.event_publisher import EventPublisherPort

Handler = Callable[[object], None]


class InProcessEventBus(EventPublisherPort):
    """Routes published domain events to handlers registered by event type."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = {}
        self._logger = logging.getLogger(__name__)

    def subscribe(self, event_type: type, handler: Handler) -> "InProcessEventBus":
        self._handlers.setdefault(event_type, []).append(handler)
        return self

    def publish(self, event: object) -> None:
        for handler in self._handlers.get(type(event), []):
            try:
                handler(event)
            except Exception as e:
                # A broken subscriber must not undo a booking that already succeeded.
                self._logger.exception(
                    "Event handler failed",
                    extra={"event": type(event).__name__, "error": str(e)},
                )
