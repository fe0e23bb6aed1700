from typing import Dict, Iterable, List, Optional, Tuple
from datetime import date, time, timedelta
from app.core.exceptions import InvalidRangeError, ValidationError
from app.config.redis import RedisKeys
from app.models.appointment import Appointment
from app.repositories.appointment_repository import AppointmentRepository
from app.repositories.override_repository import DateOverrideRepository
from app.repositories.weekly_hours_repository import WeeklyHoursRepository
from app.schemas.scheduling import (
    DateOverrideEntry,
    DayAvailability,
    DaySchedule,
    TimeSlot,
    WeeklyHoursEntry,
)
from app.services.cache.schedule_cache import ScheduleCache
from app.utils.clock import BusinessClock, date_range, minutes_of, time_from_minutes
import logging

logger = logging.getLogger(__name__)

MIN_SLOT_MINUTES = 5
MAX_SLOT_MINUTES = 480


# ============================================================================
# Override resolution
# ============================================================================

def override_applies(override: DateOverrideEntry, day: date) -> bool:
    """Check if an override covers a date (single dates, ranges and yearly recurrence)"""
    if override.is_recurring:
        start_md = (override.date.month, override.date.day)
        day_md = (day.month, day.day)

        if override.end_date is None:
            return day_md == start_md

        end_md = (override.end_date.month, override.end_date.day)
        if start_md <= end_md:
            return start_md <= day_md <= end_md
        # Range wraps the year boundary, e.g. Dec 24 - Jan 2
        return day_md >= start_md or day_md <= end_md

    if override.end_date is not None:
        return override.date <= day <= override.end_date

    return override.date == day


def find_applicable_override(
        overrides: Iterable[DateOverrideEntry],
        day: date
) -> Optional[DateOverrideEntry]:
    """
    Most specific override for a date: exact single date, then a dated
    range, then a recurring entry. Later rows win within a tier.
    """
    exact_match = None
    range_match = None
    recurring_match = None

    for override in overrides:
        if not override_applies(override, day):
            continue

        if override.is_recurring:
            recurring_match = override
        elif override.end_date is not None:
            range_match = override
        else:
            exact_match = override

    return exact_match or range_match or recurring_match


def resolve_day_schedule(
        day: date,
        weekly_hours: Dict[int, WeeklyHoursEntry],
        overrides: Iterable[DateOverrideEntry],
        default_slot_duration: int = 60
) -> DaySchedule:
    """Effective hours for a date; an applicable override fully replaces the weekly policy"""
    day_setting = weekly_hours.get(day.weekday())
    slot_duration = day_setting.slot_duration_minutes if day_setting else default_slot_duration

    override = find_applicable_override(overrides, day)
    if override:
        if override.is_closed:
            return DaySchedule(
                date=day,
                is_open=False,
                slot_duration_minutes=slot_duration,
                override_reason=override.reason,
            )
        return DaySchedule(
            date=day,
            is_open=True,
            open_time=override.open_time,
            close_time=override.close_time,
            slot_duration_minutes=slot_duration,
            override_reason=override.reason,
        )

    if not day_setting or not day_setting.is_open:
        return DaySchedule(date=day, is_open=False, slot_duration_minutes=slot_duration)

    return DaySchedule(
        date=day,
        is_open=True,
        open_time=day_setting.open_time,
        close_time=day_setting.close_time,
        slot_duration_minutes=slot_duration,
    )


# ============================================================================
# Slot generation
# ============================================================================

def generate_slot_times(open_time: time, close_time: time, duration_minutes: int) -> List[time]:
    """Slot starts from open_time in fixed steps; the last slot ends at or before close_time"""
    slots = []
    start = minutes_of(open_time)
    end = minutes_of(close_time)

    current = start
    while current + duration_minutes <= end:
        slots.append(time_from_minutes(current))
        current += duration_minutes

    return slots


def appointment_interval(appointment: Appointment) -> Tuple[int, int]:
    """Half-open [start, end) of an appointment in minutes since midnight"""
    start = minutes_of(appointment.appointment_time)
    return start, start + appointment.duration_minutes


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and b_start < a_end


def fits_within_hours(schedule: DaySchedule, at: time, duration_minutes: int) -> bool:
    if not schedule.is_open or schedule.open_time is None or schedule.close_time is None:
        return False
    start = minutes_of(at)
    return minutes_of(schedule.open_time) <= start and start + duration_minutes <= minutes_of(schedule.close_time)


def on_slot_grid(schedule: DaySchedule, at: time) -> bool:
    """Whether at is one of the day's generated slot starts"""
    if schedule.open_time is None:
        return False
    return (minutes_of(at) - minutes_of(schedule.open_time)) % schedule.slot_duration_minutes == 0


def find_conflict(
        appointments: Iterable[Appointment],
        at: time,
        duration_minutes: int
) -> Optional[Appointment]:
    """First non-cancelled appointment whose interval intersects [at, at + duration)"""
    start = minutes_of(at)
    end = start + duration_minutes
    for appointment in appointments:
        if appointment.status == "cancelled":
            continue
        appt_start, appt_end = appointment_interval(appointment)
        if intervals_overlap(start, end, appt_start, appt_end):
            return appointment
    return None


class AvailabilityService:
    """Merges weekly hours, date overrides and bookings into per-day slot lists"""

    def __init__(
            self,
            weekly_hours_repo: WeeklyHoursRepository,
            override_repo: DateOverrideRepository,
            appointment_repo: AppointmentRepository,
            clock: BusinessClock,
            cache: Optional[ScheduleCache] = None,
            max_range_days: int = 90,
            default_slot_duration: int = 60
    ):
        self.weekly_hours_repo = weekly_hours_repo
        self.override_repo = override_repo
        self.appointment_repo = appointment_repo
        self.clock = clock
        self.cache = cache
        self.max_range_days = max_range_days
        self.default_slot_duration = default_slot_duration

    def compute_availability(
            self,
            start_date: date,
            end_date: date,
            slot_duration_minutes: Optional[int] = None
    ) -> List[DayAvailability]:
        """
        Availability for every date in [start_date, end_date].

        Raises InvalidRangeError for inverted ranges or ranges longer than
        max_range_days dates.
        """
        if end_date < start_date:
            raise InvalidRangeError("end_date must be on or after start_date")

        day_count = (end_date - start_date).days + 1
        if day_count > self.max_range_days:
            raise InvalidRangeError(
                f"Date range too large: {day_count} days (max {self.max_range_days})"
            )

        self._check_slot_duration(slot_duration_minutes)

        weekly_hours = self._weekly_hours()
        overrides = self._overrides(start_date, end_date)

        booked_by_date: Dict[date, List[Appointment]] = {}
        for appointment in self.appointment_repo.list_active_for_range(start_date, end_date):
            booked_by_date.setdefault(appointment.appointment_date, []).append(appointment)

        availability = []
        for day in date_range(start_date, end_date):
            schedule = resolve_day_schedule(day, weekly_hours, overrides, self.default_slot_duration)
            availability.append(self.build_day_availability(
                schedule,
                booked_by_date.get(day, []),
                slot_duration_minutes or schedule.slot_duration_minutes,
            ))

        logger.debug(f"Computed availability for {start_date} - {end_date} ({day_count} days)")
        return availability

    def get_day_schedule(self, day: date, fresh: bool = False) -> DaySchedule:
        """
        Effective hours for one date. fresh=True bypasses the cache; the
        booking path uses it so a just-edited override is honoured.
        """
        weekly_hours = self._weekly_hours(fresh=fresh)
        overrides = self._overrides(day, day, fresh=fresh)
        return resolve_day_schedule(day, weekly_hours, overrides, self.default_slot_duration)

    def get_day_availability(
            self,
            day: date,
            slot_duration_minutes: Optional[int] = None,
            fresh: bool = False
    ) -> DayAvailability:
        self._check_slot_duration(slot_duration_minutes)
        schedule = self.get_day_schedule(day, fresh=fresh)
        return self.build_day_availability(
            schedule,
            self.appointment_repo.list_active_for_date(day),
            slot_duration_minutes or schedule.slot_duration_minutes,
        )

    def is_slot_available(self, day: date, at: time, duration_minutes: Optional[int] = None) -> bool:
        """Whether at is an offered slot start whose [at, at + duration) is free and in the future"""
        schedule = self.get_day_schedule(day, fresh=True)
        duration = duration_minutes or schedule.slot_duration_minutes
        if not fits_within_hours(schedule, at, duration) or not on_slot_grid(schedule, at):
            return False
        if self.clock.localize(day, at) <= self.clock.now():
            return False
        return find_conflict(self.appointment_repo.list_active_for_date(day), at, duration) is None

    def next_available_date(self, max_days_ahead: int = 60) -> Optional[date]:
        """First date from today with at least one available slot"""
        start = self.clock.today()
        window = min(max_days_ahead, self.max_range_days - 1)
        for day in self.compute_availability(start, start + timedelta(days=window)):
            if any(slot.available for slot in day.slots):
                return day.date
        return None

    def build_day_availability(
            self,
            schedule: DaySchedule,
            booked: List[Appointment],
            slot_duration_minutes: int
    ) -> DayAvailability:
        """Generate one day's slots and mark overlapping or elapsed ones unavailable"""
        if not schedule.is_open or schedule.open_time is None or schedule.close_time is None:
            return DayAvailability(date=schedule.date, is_open=False, slots=[])

        now = self.clock.now()
        slots = []
        for slot_time in generate_slot_times(schedule.open_time, schedule.close_time, slot_duration_minutes):
            available = find_conflict(booked, slot_time, slot_duration_minutes) is None

            if available and self.clock.localize(schedule.date, slot_time) <= now:
                available = False

            slots.append(TimeSlot(time=slot_time, available=available))

        return DayAvailability(date=schedule.date, is_open=True, slots=slots)

    # ------------------------------------------------------------------
    # Policy loading
    # ------------------------------------------------------------------

    def _weekly_hours(self, fresh: bool = False) -> Dict[int, WeeklyHoursEntry]:
        if self.cache is None or fresh:
            entries = self.weekly_hours_repo.list_all()
        else:
            cached = self.cache.get_or_load(
                RedisKeys.WEEKLY_HOURS,
                lambda: [e.model_dump(mode="json") for e in self.weekly_hours_repo.list_all()],
            )
            entries = [WeeklyHoursEntry.model_validate(item) for item in cached]

        if len(entries) < 7:
            logger.warning(f"Weekly hours incomplete: {len(entries)} of 7 days configured")

        return {entry.day_of_week: entry for entry in entries}

    def _overrides(self, start_date: date, end_date: date, fresh: bool = False) -> List[DateOverrideEntry]:
        if self.cache is None or fresh:
            return self.override_repo.list_for_range(start_date, end_date)

        cached = self.cache.get_or_load(
            RedisKeys.DATE_OVERRIDES,
            lambda: [o.model_dump(mode="json") for o in self.override_repo.list_all()],
        )
        return [DateOverrideEntry.model_validate(item) for item in cached]

    @staticmethod
    def _check_slot_duration(slot_duration_minutes: Optional[int]) -> None:
        if slot_duration_minutes is None:
            return
        if not MIN_SLOT_MINUTES <= slot_duration_minutes <= MAX_SLOT_MINUTES:
            raise ValidationError(
                f"slot_duration_minutes must be between {MIN_SLOT_MINUTES} and {MAX_SLOT_MINUTES}"
            )
