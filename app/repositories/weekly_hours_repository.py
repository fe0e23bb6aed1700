# app/repositories/weekly_hours_repository.py
"""Weekly opening-hours policy store"""
from typing import List, Optional

from app.models.availability import WeeklyHours
from app.repositories.base import Repository, translate_storage_errors
from app.schemas.scheduling import WeeklyHoursEntry

# Tuesday-Saturday 10:00-17:00, closed Sunday and Monday
DEFAULT_WEEKLY_HOURS = [
    {"day_of_week": 0, "is_open": False},
    {"day_of_week": 1, "is_open": True, "open_time": "10:00", "close_time": "17:00"},
    {"day_of_week": 2, "is_open": True, "open_time": "10:00", "close_time": "17:00"},
    {"day_of_week": 3, "is_open": True, "open_time": "10:00", "close_time": "17:00"},
    {"day_of_week": 4, "is_open": True, "open_time": "10:00", "close_time": "17:00"},
    {"day_of_week": 5, "is_open": True, "open_time": "10:00", "close_time": "17:00"},
    {"day_of_week": 6, "is_open": False},
]


class WeeklyHoursRepository(Repository):

    @translate_storage_errors
    def list_all(self) -> List[WeeklyHoursEntry]:
        rows = self.db.query(WeeklyHours).order_by(WeeklyHours.day_of_week.asc()).all()
        return [WeeklyHoursEntry.model_validate(row) for row in rows]

    @translate_storage_errors
    def get(self, day_of_week: int) -> Optional[WeeklyHoursEntry]:
        row = self.db.query(WeeklyHours).filter_by(day_of_week=day_of_week).first()
        return WeeklyHoursEntry.model_validate(row) if row else None

    @translate_storage_errors
    def stage(self, entry: WeeklyHoursEntry) -> None:
        """Write one day into the session; the caller commits"""
        row = self.db.query(WeeklyHours).filter_by(day_of_week=entry.day_of_week).first()
        if row is None:
            row = WeeklyHours(day_of_week=entry.day_of_week)
            self.db.add(row)

        row.is_open = entry.is_open
        row.open_time = entry.open_time
        row.close_time = entry.close_time
        row.slot_duration_minutes = entry.slot_duration_minutes
        self.db.flush()

    @translate_storage_errors
    def seed_defaults(self, slot_duration_minutes: int = 60) -> int:
        """Insert missing day rows; existing rows are left alone. Returns rows added."""
        existing = {row.day_of_week for row in self.db.query(WeeklyHours.day_of_week).all()}
        added = 0
        for default in DEFAULT_WEEKLY_HOURS:
            if default["day_of_week"] in existing:
                continue
            entry = WeeklyHoursEntry(slot_duration_minutes=slot_duration_minutes, **default)
            self.db.add(WeeklyHours(
                day_of_week=entry.day_of_week,
                is_open=entry.is_open,
                open_time=entry.open_time,
                close_time=entry.close_time,
                slot_duration_minutes=entry.slot_duration_minutes,
            ))
            added += 1
        self.db.commit()
        return added
