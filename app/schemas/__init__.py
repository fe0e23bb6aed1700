# app/schemas/__init__.py
from .scheduling import (
    AppointmentStatus,
    WeeklyHoursEntry,
    DateOverrideInput,
    DateOverrideEntry,
    PublicClosure,
    DaySchedule,
    TimeSlot,
    DayAvailability,
    AvailabilityResponse,
    CustomerInfo,
    AppointmentCreateRequest,
    AdminAppointmentCreateRequest,
    RescheduleRequest,
    AppointmentResponse,
    AdminAppointmentResponse,
    AppointmentCreatedResponse,
    FailedReminder,
    ReminderReport,
    PageInfo,
    AppointmentListResponse,
)
