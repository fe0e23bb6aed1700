# ============================================================================
# FILE: app/api/dependencies.py
# Service wiring and shared-secret checks for the routers
# ============================================================================
import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.config.settings import Settings, get_settings
from app.core.exceptions import AuthorizationError, FeedNotConfiguredError
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.schedule_service import ScheduleService
from app.services.booking.appointment_query_service import AppointmentQueryService
from app.services.booking.booking_service import BookingService, Notifier
from app.services.cache.schedule_cache import ScheduleCache
from app.services.calendar.ics_feed_service import CalendarFeedService
from app.services.reminder.reminder_service import ReminderSender, ReminderService
from app.services import factory
from app.utils.clock import BusinessClock

logger = logging.getLogger(__name__)

# ============================================================================
# Security Schemes
# ============================================================================

cron_security = HTTPBearer(
    scheme_name="Cron Secret",
    description="Shared secret configured as CRON_SECRET",
    auto_error=False,
)


def _matches(provided: Optional[str], expected: str) -> bool:
    # Empty secret means the endpoint is not configured
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


def require_admin_key(
        x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
        settings: Settings = Depends(get_settings)
) -> None:
    if not _matches(x_admin_key, settings.ADMIN_API_KEY):
        raise AuthorizationError("Invalid or missing admin key")


def require_cron_secret(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(cron_security),
        settings: Settings = Depends(get_settings)
) -> None:
    token = credentials.credentials if credentials else None
    if not _matches(token, settings.CRON_SECRET):
        raise AuthorizationError("Invalid cron secret")


def require_calendar_token(
        token: Optional[str] = Query(None, description="Calendar subscription token"),
        settings: Settings = Depends(get_settings)
) -> None:
    if not settings.CALENDAR_TOKEN:
        raise FeedNotConfiguredError("CALENDAR_TOKEN is not set")
    if not _matches(token, settings.CALENDAR_TOKEN):
        raise AuthorizationError("Invalid calendar token")


# ============================================================================
# Process-wide collaborators
# ============================================================================

def get_clock() -> BusinessClock:
    return factory.business_clock()


def get_lock_manager():
    return factory.lock_manager()


def get_schedule_cache() -> Optional[ScheduleCache]:
    return factory.schedule_cache()


def get_notifier() -> Notifier:
    from app.tasks.email_tasks import dispatch_appointment_email
    return dispatch_appointment_email


def get_reminder_sender() -> ReminderSender:
    from app.tasks.reminder_tasks import send_reminder_email
    return send_reminder_email


# ============================================================================
# Services
# ============================================================================

def get_availability_service(
        db: Session = Depends(get_db),
        clock: BusinessClock = Depends(get_clock),
        cache: Optional[ScheduleCache] = Depends(get_schedule_cache),
        settings: Settings = Depends(get_settings)
) -> AvailabilityService:
    return factory.build_availability_service(db, clock, cache, settings)


def get_booking_service(
        db: Session = Depends(get_db),
        clock: BusinessClock = Depends(get_clock),
        cache: Optional[ScheduleCache] = Depends(get_schedule_cache),
        locks=Depends(get_lock_manager),
        notifier: Notifier = Depends(get_notifier),
        settings: Settings = Depends(get_settings)
) -> BookingService:
    return factory.build_booking_service(db, clock, cache, locks, settings, notifier)


def get_query_service(
        db: Session = Depends(get_db),
        clock: BusinessClock = Depends(get_clock)
) -> AppointmentQueryService:
    return factory.build_query_service(db, clock)


def get_schedule_service(
        db: Session = Depends(get_db),
        clock: BusinessClock = Depends(get_clock),
        cache: Optional[ScheduleCache] = Depends(get_schedule_cache)
) -> ScheduleService:
    return factory.build_schedule_service(db, clock, cache)


def get_reminder_service(
        db: Session = Depends(get_db),
        clock: BusinessClock = Depends(get_clock),
        locks=Depends(get_lock_manager),
        sender: ReminderSender = Depends(get_reminder_sender),
        settings: Settings = Depends(get_settings)
) -> ReminderService:
    return factory.build_reminder_service(db, clock, locks, sender, settings)


def get_calendar_feed_service(
        db: Session = Depends(get_db),
        clock: BusinessClock = Depends(get_clock),
        settings: Settings = Depends(get_settings)
) -> CalendarFeedService:
    return factory.build_calendar_feed_service(db, settings, clock)
