"""Tests for override matching, day schedule resolution and slot arithmetic."""

import unittest
from datetime import date, time
from types import SimpleNamespace

from app.schemas.scheduling import DateOverrideEntry, DaySchedule, WeeklyHoursEntry
from app.services.availability.availability_service import (
    find_applicable_override,
    find_conflict,
    fits_within_hours,
    generate_slot_times,
    intervals_overlap,
    on_slot_grid,
    override_applies,
    resolve_day_schedule,
)


def override(override_id=1, **fields) -> DateOverrideEntry:
    fields.setdefault("is_closed", True)
    return DateOverrideEntry(id=override_id, **fields)


def weekly(day, open_at="09:00", close_at="17:00", is_open=True, slot=60) -> WeeklyHoursEntry:
    return WeeklyHoursEntry(
        day_of_week=day,
        is_open=is_open,
        open_time=open_at if is_open else None,
        close_time=close_at if is_open else None,
        slot_duration_minutes=slot,
    )


class OverrideMatchingTests(unittest.TestCase):
    """Validate which dates an override covers."""

    def test_single_date_matches_only_that_date(self) -> None:
        entry = override(date=date(2025, 12, 24))

        self.assertTrue(override_applies(entry, date(2025, 12, 24)))
        self.assertFalse(override_applies(entry, date(2025, 12, 25)))
        self.assertFalse(override_applies(entry, date(2026, 12, 24)))

    def test_range_is_inclusive(self) -> None:
        entry = override(date=date(2025, 7, 20), end_date=date(2025, 8, 5))

        self.assertTrue(override_applies(entry, date(2025, 7, 20)))
        self.assertTrue(override_applies(entry, date(2025, 8, 1)))
        self.assertTrue(override_applies(entry, date(2025, 8, 5)))
        self.assertFalse(override_applies(entry, date(2025, 8, 6)))

    def test_recurring_date_matches_every_year(self) -> None:
        entry = override(date=date(2020, 12, 25), is_recurring=True)

        self.assertTrue(override_applies(entry, date(2025, 12, 25)))
        self.assertTrue(override_applies(entry, date(2031, 12, 25)))
        self.assertFalse(override_applies(entry, date(2025, 12, 26)))

    def test_recurring_range_wraps_year_boundary(self) -> None:
        entry = override(date=date(2024, 12, 24), end_date=date(2025, 1, 2), is_recurring=True)

        self.assertTrue(override_applies(entry, date(2027, 12, 31)))
        self.assertTrue(override_applies(entry, date(2028, 1, 1)))
        self.assertTrue(override_applies(entry, date(2028, 1, 2)))
        self.assertFalse(override_applies(entry, date(2028, 1, 3)))
        self.assertFalse(override_applies(entry, date(2027, 12, 23)))

    def test_exact_date_beats_range_beats_recurring(self) -> None:
        recurring = override(1, date=date(2020, 12, 24), is_recurring=True)
        holiday = override(2, date=date(2025, 12, 20), end_date=date(2025, 12, 31))
        late_opening = override(
            3, date=date(2025, 12, 24), is_closed=False, open_time="13:00", close_time="16:00"
        )

        self.assertEqual(find_applicable_override([recurring, holiday, late_opening], date(2025, 12, 24)).id, 3)
        self.assertEqual(find_applicable_override([recurring, holiday], date(2025, 12, 24)).id, 2)
        self.assertEqual(find_applicable_override([recurring], date(2025, 12, 24)).id, 1)
        self.assertIsNone(find_applicable_override([recurring, holiday], date(2026, 1, 5)))


class DayScheduleTests(unittest.TestCase):
    """Validate merging weekly hours with overrides."""

    def setUp(self) -> None:
        self.week = {day: weekly(day) for day in range(5)}
        self.week[5] = weekly(5, is_open=False)
        self.week[6] = weekly(6, is_open=False)

    def test_closed_override_closes_open_weekday(self) -> None:
        # 2025-12-24 is a Wednesday
        schedule = resolve_day_schedule(
            date(2025, 12, 24), self.week, [override(date=date(2025, 12, 24), reason="Christmas Eve")]
        )

        self.assertFalse(schedule.is_open)
        self.assertEqual(schedule.override_reason, "Christmas Eve")

    def test_custom_hours_replace_weekly_times(self) -> None:
        custom = override(date=date(2025, 12, 27), is_closed=False, open_time="10:00", close_time="13:00")

        # Saturday is normally closed
        schedule = resolve_day_schedule(date(2025, 12, 27), self.week, [custom])

        self.assertTrue(schedule.is_open)
        self.assertEqual(schedule.open_time, time(10, 0))
        self.assertEqual(schedule.close_time, time(13, 0))

    def test_missing_weekday_row_is_closed(self) -> None:
        del self.week[2]

        schedule = resolve_day_schedule(date(2025, 12, 3), self.week, [], default_slot_duration=45)

        self.assertFalse(schedule.is_open)
        self.assertEqual(schedule.slot_duration_minutes, 45)


class SlotArithmeticTests(unittest.TestCase):
    """Validate slot generation and half-open overlap."""

    def test_last_slot_ends_at_or_before_close(self) -> None:
        slots = generate_slot_times(time(9, 0), time(17, 0), 60)

        self.assertEqual(len(slots), 8)
        self.assertEqual(slots[0], time(9, 0))
        self.assertEqual(slots[-1], time(16, 0))

    def test_partial_trailing_slot_is_dropped(self) -> None:
        slots = generate_slot_times(time(10, 0), time(11, 45), 30)

        self.assertEqual(slots, [time(10, 0), time(10, 30), time(11, 0)])

    def test_touching_intervals_do_not_overlap(self) -> None:
        self.assertFalse(intervals_overlap(600, 660, 660, 720))
        self.assertTrue(intervals_overlap(600, 660, 630, 690))
        self.assertTrue(intervals_overlap(600, 720, 630, 660))

    def test_find_conflict_ignores_cancelled(self) -> None:
        booked = [
            SimpleNamespace(id=1, appointment_time=time(10, 0), duration_minutes=60, status="cancelled"),
            SimpleNamespace(id=2, appointment_time=time(11, 0), duration_minutes=60, status="confirmed"),
        ]

        self.assertIsNone(find_conflict(booked, time(10, 0), 60))
        self.assertEqual(find_conflict(booked, time(10, 30), 60).id, 2)

    def test_fits_within_hours(self) -> None:
        schedule = resolve_day_schedule(date(2025, 12, 1), {0: weekly(0)}, [])

        self.assertTrue(fits_within_hours(schedule, time(16, 0), 60))
        self.assertFalse(fits_within_hours(schedule, time(16, 30), 60))
        self.assertFalse(fits_within_hours(schedule, time(8, 30), 30))

    def test_slot_grid_follows_opening_time(self) -> None:
        schedule = DaySchedule(
            date=date(2025, 12, 1), is_open=True, open_time=time(9, 30), close_time=time(17, 0),
            slot_duration_minutes=45,
        )

        self.assertTrue(on_slot_grid(schedule, time(9, 30)))
        self.assertTrue(on_slot_grid(schedule, time(11, 0)))
        self.assertFalse(on_slot_grid(schedule, time(10, 0)))
        self.assertFalse(on_slot_grid(DaySchedule(date=date(2025, 12, 7), is_open=False), time(10, 0)))


if __name__ == "__main__":
    unittest.main()
