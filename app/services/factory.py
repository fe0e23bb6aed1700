"""
Service construction shared by the API dependencies and the Celery tasks.

Process-wide collaborators (clock, lock manager, schedule cache) are built
once; services are built per database session.
"""
import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy.orm import Session

from app.config.redis import get_sync_redis
from app.config.settings import Settings, get_settings
from app.repositories.appointment_repository import AppointmentRepository
from app.repositories.override_repository import DateOverrideRepository
from app.repositories.weekly_hours_repository import WeeklyHoursRepository
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.schedule_service import ScheduleService
from app.services.booking.appointment_query_service import AppointmentQueryService
from app.services.booking.booking_lock import LocalLockManager, RedisLockManager
from app.services.booking.booking_service import BookingService, Notifier
from app.services.cache.schedule_cache import NullCacheBackend, RedisCacheBackend, ScheduleCache
from app.services.calendar.ics_feed_service import CalendarFeedService
from app.services.reminder.reminder_service import ReminderSender, ReminderService
from app.utils.clock import BusinessClock

logger = logging.getLogger(__name__)


@lru_cache()
def business_clock() -> BusinessClock:
    return BusinessClock(get_settings().BUSINESS_TIMEZONE)


@lru_cache()
def lock_manager():
    settings = get_settings()
    if settings.BOOKING_LOCK_BACKEND == "local":
        logger.info("Using in-process booking locks")
        return LocalLockManager(timeout_seconds=settings.BOOKING_LOCK_TIMEOUT_SECONDS)
    return RedisLockManager(get_sync_redis(), timeout_seconds=settings.BOOKING_LOCK_TIMEOUT_SECONDS)


@lru_cache()
def schedule_cache() -> ScheduleCache:
    settings = get_settings()
    backend = RedisCacheBackend(get_sync_redis()) if settings.SCHEDULE_CACHE_ENABLED else NullCacheBackend()
    return ScheduleCache(backend, ttl_seconds=settings.SCHEDULE_CACHE_TTL_SECONDS)


def build_availability_service(
        db: Session,
        clock: BusinessClock,
        cache: Optional[ScheduleCache],
        settings: Settings
) -> AvailabilityService:
    return AvailabilityService(
        weekly_hours_repo=WeeklyHoursRepository(db),
        override_repo=DateOverrideRepository(db),
        appointment_repo=AppointmentRepository(db),
        clock=clock,
        cache=cache,
        max_range_days=settings.MAX_AVAILABILITY_RANGE_DAYS,
        default_slot_duration=settings.DEFAULT_SLOT_DURATION_MINUTES,
    )


def build_booking_service(
        db: Session,
        clock: BusinessClock,
        cache: Optional[ScheduleCache],
        locks,
        settings: Settings,
        notifier: Optional[Notifier] = None
) -> BookingService:
    return BookingService(
        availability_service=build_availability_service(db, clock, cache, settings),
        appointment_repo=AppointmentRepository(db),
        lock_manager=locks,
        clock=clock,
        max_days_ahead=settings.MAX_DAYS_AHEAD,
        min_hours_before_booking=settings.MIN_HOURS_BEFORE_BOOKING,
        notifier=notifier,
    )


def build_query_service(db: Session, clock: BusinessClock) -> AppointmentQueryService:
    return AppointmentQueryService(AppointmentRepository(db), clock)


def build_schedule_service(db: Session, clock: BusinessClock, cache: Optional[ScheduleCache]) -> ScheduleService:
    return ScheduleService(WeeklyHoursRepository(db), DateOverrideRepository(db), clock, cache)


def build_reminder_service(
        db: Session,
        clock: BusinessClock,
        locks,
        send_reminder: ReminderSender,
        settings: Settings
) -> ReminderService:
    return ReminderService(
        appointment_repo=AppointmentRepository(db),
        send_reminder=send_reminder,
        clock=clock,
        lock_manager=locks,
        pass_interval_hours=settings.REMINDER_PASS_INTERVAL_HOURS,
    )


def build_calendar_feed_service(db: Session, settings: Settings, clock: Optional[BusinessClock] = None) -> CalendarFeedService:
    return CalendarFeedService(
        appointment_repo=AppointmentRepository(db),
        tz_name=settings.BUSINESS_TIMEZONE,
        store_name=settings.STORE_NAME,
        store_address=settings.STORE_ADDRESS,
        uid_domain=settings.UID_DOMAIN,
        organizer_email=settings.EMAIL_FROM_ADDRESS,
        now_fn=clock.now if clock else None,
    )
