# app/schemas/scheduling.py

import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator, model_validator


class AppointmentStatus(str, Enum):
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"  # derived, never stored


def _hhmm(value: Optional[dt.time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


def _trimmed_lower(value):
    return value.strip().lower() if isinstance(value, str) else value


# ============================================================================
# Policy and overrides
# ============================================================================

class WeeklyHoursEntry(BaseModel):
    """Opening hours for one day of the week"""
    model_config = ConfigDict(from_attributes=True)

    day_of_week: int = Field(..., ge=0, le=6, description="Day of week (0=Monday, 6=Sunday)")
    is_open: bool = Field(False, description="Whether the showroom opens this day")
    open_time: Optional[dt.time] = Field(None, description="Opening time (HH:MM)")
    close_time: Optional[dt.time] = Field(None, description="Closing time (HH:MM)")
    slot_duration_minutes: int = Field(60, ge=5, le=480, description="Default slot length")

    @model_validator(mode="after")
    def check_hours(self) -> "WeeklyHoursEntry":
        if not self.is_open:
            self.open_time = None
            self.close_time = None
            return self
        if self.open_time is None or self.close_time is None:
            raise ValueError("Open days need both open_time and close_time")
        if self.open_time >= self.close_time:
            raise ValueError("open_time must be before close_time")
        return self

    @field_serializer("open_time", "close_time", when_used="json")
    def serialize_time(self, value: Optional[dt.time]) -> Optional[str]:
        return _hhmm(value)


class DateOverrideInput(BaseModel):
    """Closure or custom-hours window for a date or date range"""
    model_config = ConfigDict(from_attributes=True)

    date: dt.date = Field(..., description="Start date (YYYY-MM-DD)")
    end_date: Optional[dt.date] = Field(None, description="End date for ranges, empty for a single day")
    is_closed: bool = Field(True, description="Fully closed instead of custom hours")
    open_time: Optional[dt.time] = None
    close_time: Optional[dt.time] = None
    reason: Optional[str] = Field(None, max_length=255)
    show_on_website: bool = False
    is_recurring: bool = Field(False, description="Repeat every year on the same month/day")

    @model_validator(mode="after")
    def check_window(self) -> "DateOverrideInput":
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError("end_date must be on or after date")
        if self.is_closed:
            self.open_time = None
            self.close_time = None
            return self
        if self.open_time is None or self.close_time is None:
            raise ValueError("Custom hours need both open_time and close_time")
        if self.open_time >= self.close_time:
            raise ValueError("open_time must be before close_time")
        return self

    @field_serializer("open_time", "close_time", when_used="json")
    def serialize_time(self, value: Optional[dt.time]) -> Optional[str]:
        return _hhmm(value)


class DateOverrideEntry(DateOverrideInput):
    id: int


class PublicClosure(BaseModel):
    """Closure info for website display"""
    id: int
    start_date: dt.date
    end_date: Optional[dt.date] = None
    is_closed: bool
    reason: Optional[str] = None
    is_recurring: bool

    @classmethod
    def from_override(cls, override: DateOverrideEntry) -> "PublicClosure":
        return cls(
            id=override.id,
            start_date=override.date,
            end_date=override.end_date,
            is_closed=override.is_closed,
            reason=override.reason,
            is_recurring=override.is_recurring,
        )


# ============================================================================
# Availability (derived)
# ============================================================================

class DaySchedule(BaseModel):
    """Effective hours for one date after override resolution"""
    date: dt.date
    is_open: bool
    open_time: Optional[dt.time] = None
    close_time: Optional[dt.time] = None
    slot_duration_minutes: int = 60
    override_reason: Optional[str] = None

    @field_serializer("open_time", "close_time", when_used="json")
    def serialize_time(self, value: Optional[dt.time]) -> Optional[str]:
        return _hhmm(value)


class TimeSlot(BaseModel):
    time: dt.time
    available: bool

    @field_serializer("time", when_used="json")
    def serialize_time(self, value: dt.time) -> str:
        return _hhmm(value)


class DayAvailability(BaseModel):
    date: dt.date
    is_open: bool
    slots: List[TimeSlot] = Field(default_factory=list)


class AvailabilityResponse(BaseModel):
    dates: List[DayAvailability]


# ============================================================================
# Booking
# ============================================================================

class CustomerInfo(BaseModel):
    name: str = Field(..., description="Customer full name")
    email: EmailStr = Field(..., description="Customer email")
    phone: Optional[str] = Field(None, description="Customer phone number")
    street: Optional[str] = Field(None, max_length=255, description="Street and number")
    postal_code: Optional[str] = Field(None, description="Belgian (1234) or Dutch (1234 AB) postal code")
    city: Optional[str] = Field(None, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _trimmed_lower(value)


class AppointmentCreateRequest(BaseModel):
    appointment_date: dt.date = Field(..., description="Date (YYYY-MM-DD)")
    appointment_time: dt.time = Field(..., description="Start time (HH:MM)")
    duration_minutes: Optional[int] = Field(None, description="Defaults to the day's slot length")
    customer: CustomerInfo
    remarks: Optional[str] = Field(None, max_length=2000)


class RescheduleRequest(BaseModel):
    appointment_date: dt.date
    appointment_time: dt.time


class AppointmentResponse(BaseModel):
    """Appointment as shown to customers"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_date: dt.date
    appointment_time: dt.time
    duration_minutes: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    customer_street: Optional[str] = None
    customer_postal_code: Optional[str] = None
    customer_city: Optional[str] = None
    remarks: Optional[str] = None
    status: AppointmentStatus
    created_at: dt.datetime
    cancelled_at: Optional[dt.datetime] = None

    @field_serializer("appointment_time", when_used="json")
    def serialize_time(self, value: dt.time) -> str:
        return _hhmm(value)


class AdminAppointmentResponse(AppointmentResponse):
    admin_notes: Optional[str] = None
    reminder_sent_at: Optional[dt.datetime] = None
    rescheduled_from_id: Optional[int] = None


class AdminAppointmentCreateRequest(AppointmentCreateRequest):
    admin_notes: Optional[str] = None


class AdminAppointmentUpdateRequest(BaseModel):
    """Contact details and notes; only the fields sent are changed"""
    model_config = ConfigDict(extra="forbid")

    customer_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    customer_street: Optional[str] = Field(None, max_length=255)
    customer_postal_code: Optional[str] = None
    customer_city: Optional[str] = Field(None, max_length=100)
    remarks: Optional[str] = Field(None, max_length=2000)
    admin_notes: Optional[str] = None

    @field_validator("customer_email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _trimmed_lower(value)


class AppointmentCreatedResponse(BaseModel):
    success: bool = True
    appointment: AppointmentResponse
    manage_url: str


# ============================================================================
# Reminder pass
# ============================================================================

class FailedReminder(BaseModel):
    appointment_id: int
    error: str


class ReminderReport(BaseModel):
    sent: int = 0
    failed: List[FailedReminder] = Field(default_factory=list)
    skipped: bool = Field(False, description="Another pass was already running")
    error: Optional[str] = Field(None, description="Pass-level failure, if any")


# ============================================================================
# Admin listing
# ============================================================================

class PageInfo(BaseModel):
    skip: int
    limit: int
    total_pages: int


class AppointmentListResponse(BaseModel):
    total_appointments: int
    page: PageInfo
    filters: dict
    appointments: List[AdminAppointmentResponse]
