# app/models/__init__.py
from .base import Base
from .availability import WeeklyHours, DateOverride
from .appointment import Appointment

__all__ = [
    "Base",
    "WeeklyHours",
    "DateOverride",
    "Appointment",
]
