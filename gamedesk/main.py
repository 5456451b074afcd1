import logging

from fastapi import FastAPI

from gamedesk.api.bookings import router as bookings_router
from gamedesk.api.notifications import router as notifications_router
from gamedesk.core.config import settings

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_id", "slot_id", "vendor_id", "event", "reason", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title="Gaming Cafe Booking Desk", version="1.0.0")

app.include_router(bookings_router, tags=["bookings"])
app.include_router(notifications_router, tags=["live"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
