"""Shared fixtures for the scheduling test suites."""

import json
from datetime import date, datetime, time, timezone
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Appointment, Base, WeeklyHours
from app.services.booking.booking_service import generate_edit_token
from app.utils.clock import FixedClock

TZ_NAME = "Europe/Brussels"
TZ = ZoneInfo(TZ_NAME)

# Monday 2025-12-01 08:00 local; every test week starts here
MONDAY = date(2025, 12, 1)
TUESDAY = date(2025, 12, 2)
WEDNESDAY = date(2025, 12, 3)


def fixed_clock(at: Optional[datetime] = None) -> FixedClock:
    return FixedClock(TZ_NAME, at or datetime(2025, 12, 1, 8, 0, tzinfo=TZ))


def memory_engine():
    """One shared in-memory SQLite database for the whole test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def file_engine(path: str):
    """File-backed SQLite so concurrent threads get real separate connections"""
    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False, "timeout": 30})
    Base.metadata.create_all(engine)
    return engine


def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def seed_week(db, hours: Optional[Dict[int, Tuple[str, str]]] = None, slot_minutes: int = 60) -> None:
    """
    Insert all seven weekly rows. hours maps weekday -> ("HH:MM", "HH:MM");
    days not listed are closed. Defaults to Monday-Saturday 09:00-17:00.
    """
    if hours is None:
        hours = {day: ("09:00", "17:00") for day in range(6)}

    for day in range(7):
        window = hours.get(day)
        db.add(WeeklyHours(
            day_of_week=day,
            is_open=window is not None,
            open_time=time.fromisoformat(window[0]) if window else None,
            close_time=time.fromisoformat(window[1]) if window else None,
            slot_duration_minutes=slot_minutes,
        ))
    db.commit()


def add_appointment(
        db,
        day: date,
        at: str,
        duration: int = 60,
        status: str = "confirmed",
        created_at: Optional[datetime] = None,
        name: str = "Jan Peeters",
        email: str = "jan@example.com",
        **fields
) -> Appointment:
    """Insert an appointment row directly, bypassing the booking rules"""
    stamp = created_at or datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc)
    appointment = Appointment(
        appointment_date=day,
        appointment_time=time.fromisoformat(at),
        duration_minutes=duration,
        customer_name=name,
        customer_email=email,
        status=status,
        edit_token=generate_edit_token(),
        created_at=stamp,
        updated_at=stamp,
        **fields
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def slot_map(day_availability) -> Dict[str, bool]:
    return {slot.time.strftime("%H:%M"): slot.available for slot in day_availability.slots}


class DictCacheBackend:
    """In-memory stand-in for Redis that keeps the JSON round trip"""

    def __init__(self):
        self.store: Dict[str, str] = {}
        self.reads: List[str] = []

    def get(self, key):
        self.reads.append(key)
        value = self.store.get(key)
        return json.loads(value) if value else None

    def set(self, key, value, ttl):
        self.store[key] = json.dumps(value)

    def delete(self, key):
        self.store.pop(key, None)


class BrokenCacheBackend:
    def get(self, key):
        raise ConnectionError("redis down")

    def set(self, key, value, ttl):
        raise ConnectionError("redis down")

    def delete(self, key):
        raise ConnectionError("redis down")


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.calls: List[Tuple[int, str]] = []
        self.fail = fail

    def __call__(self, appointment_id: int, template: str) -> None:
        self.calls.append((appointment_id, template))
        if self.fail:
            raise RuntimeError("broker unreachable")


class RecordingSender:
    """Reminder sender that can be told to fail for chosen appointment ids"""

    def __init__(self, failing_ids=()):
        self.sent: List[int] = []
        self.failing_ids = set(failing_ids)

    def __call__(self, appointment) -> None:
        if appointment.id in self.failing_ids:
            raise RuntimeError("SMTP 451 temporary failure")
        self.sent.append(appointment.id)
