from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from gamedesk.core.config import settings
from gamedesk.application.ports.booking_service import BookingServicePort
from gamedesk.application.use_cases.booking_form import BookingFormMachine
from gamedesk.application.use_cases.customer_directory import CustomerDirectoryCache
from gamedesk.application.use_cases.live_sessions import LiveSessionFeed
from gamedesk.application.use_cases.pass_validation import PassValidationUseCase
from gamedesk.application.use_cases.pricing import PricingAggregator
from gamedesk.application.use_cases.proration import ProrationEngine
from gamedesk.application.use_cases.session_merger import SessionMerger
from gamedesk.application.use_cases.settle_overtime import SettleOvertimeUseCase
from gamedesk.application.use_cases.slot_availability import SlotAvailabilityLoader
from gamedesk.application.use_cases.slot_conflict import SlotConflictHandler
from gamedesk.application.use_cases.submit_booking import SubmitBookingUseCase
from gamedesk.application.utils.time_basis import TimeBasis
from gamedesk.infrastructure.booking_api.http_booking_service import HttpBookingService
from gamedesk.infrastructure.booking_api.mock_booking_service import MockBookingService
from gamedesk.infrastructure.events.in_process_bus import InProcessEventBus


def get_vendor_id() -> int:
    return settings.VENDOR_ID or 0


@lru_cache
def get_time_basis() -> TimeBasis:
    return TimeBasis(ZoneInfo(settings.BUSINESS_TIMEZONE))


@lru_cache
def get_booking_service() -> BookingServicePort:
    logger = logging.getLogger(__name__)
    logger.info("ENV=%s", settings.ENV)

    if not settings.BOOKING_SERVICE_BASE_URL:
        if settings.ENV.lower() in {"dev", "local", "test"}:
            logger.info("Using MockBookingService (base URL missing, ENV=dev/local)")
            return MockBookingService()
        raise ValueError("BOOKING_SERVICE_BASE_URL is required outside dev/local.")

    logger.info("Using HttpBookingService")
    return HttpBookingService(
        base_url=settings.BOOKING_SERVICE_BASE_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


@lru_cache
def get_event_bus() -> InProcessEventBus:
    return InProcessEventBus()


@lru_cache
def get_pricing() -> PricingAggregator:
    return PricingAggregator(slot_unit_hours=settings.SLOT_UNIT_HOURS)


@lru_cache
def get_session_merger() -> SessionMerger:
    return SessionMerger(get_time_basis(), default_rate_per_hour=settings.DEFAULT_OVERTIME_RATE)


@lru_cache
def get_live_feed() -> LiveSessionFeed:
    return LiveSessionFeed(get_session_merger())


@lru_cache
def get_form_machine() -> BookingFormMachine:
    return BookingFormMachine(
        proration=ProrationEngine(get_time_basis()),
        pricing=get_pricing(),
        phone_digits=settings.PHONE_DIGITS,
    )


@lru_cache
def get_customer_directory() -> CustomerDirectoryCache:
    return CustomerDirectoryCache(
        get_booking_service(),
        get_vendor_id(),
        ttl_seconds=settings.CUSTOMER_CACHE_TTL_SECONDS,
    )


@lru_cache
def get_slot_loader() -> SlotAvailabilityLoader:
    return SlotAvailabilityLoader(get_booking_service(), get_vendor_id())


def get_pass_validation_use_case() -> PassValidationUseCase:
    return PassValidationUseCase(get_booking_service())


def get_submit_booking_use_case() -> SubmitBookingUseCase:
    return SubmitBookingUseCase(
        service=get_booking_service(),
        machine=get_form_machine(),
        conflict_handler=SlotConflictHandler(),
        publisher=get_event_bus(),
        directory=get_customer_directory(),
        slot_loader=get_slot_loader(),
    )


def get_settle_overtime_use_case() -> SettleOvertimeUseCase:
    return SettleOvertimeUseCase(
        service=get_booking_service(),
        merger=get_session_merger(),
        pricing=get_pricing(),
        feed=get_live_feed(),
        publisher=get_event_bus(),
        time_basis=get_time_basis(),
    )
