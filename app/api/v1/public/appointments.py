# ============================================================================
# FILE: app/api/v1/public/appointments.py
# Public booking endpoints - thin HTTP layer
# ============================================================================
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, Response

from app.api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_query_service,
    get_schedule_service,
)
from app.config.settings import Settings, get_settings
from app.schemas.scheduling import (
    AppointmentCreatedResponse,
    AppointmentCreateRequest,
    AppointmentResponse,
    AvailabilityResponse,
    PublicClosure,
    RescheduleRequest,
)
from app.services.availability.availability_service import AvailabilityService
from app.services.availability.schedule_service import ScheduleService
from app.services.booking.appointment_query_service import AppointmentQueryService
from app.services.booking.booking_service import BookingService
from app.services.email.email_service import manage_url

router = APIRouter(prefix="/appointments", tags=["public-appointments"])


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
        start_date: date = Query(..., description="First date (YYYY-MM-DD)"),
        end_date: date = Query(..., description="Last date, inclusive (YYYY-MM-DD)"),
        slot_duration_minutes: Optional[int] = Query(None, description="Override the configured slot length"),
        availability: AvailabilityService = Depends(get_availability_service)
):
    """Bookable slots per date for the booking widget"""
    return AvailabilityResponse(
        dates=availability.compute_availability(start_date, end_date, slot_duration_minutes)
    )


@router.get("/availability/next")
def get_next_available_date(
        availability: AvailabilityService = Depends(get_availability_service),
        settings: Settings = Depends(get_settings)
):
    """First date with at least one free slot, or null"""
    next_date = availability.next_available_date(settings.MAX_DAYS_AHEAD)
    return {"date": next_date.isoformat() if next_date else None}


@router.get("/closures", response_model=List[PublicClosure])
def get_public_closures(
        response: Response,
        schedule: ScheduleService = Depends(get_schedule_service)
):
    """Upcoming closures and special hours flagged for the website"""
    response.headers["Cache-Control"] = "public, max-age=300"
    return schedule.get_public_closures()


@router.post("", response_model=AppointmentCreatedResponse, status_code=201)
def create_appointment(
        request: AppointmentCreateRequest,
        booking: BookingService = Depends(get_booking_service),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    """Book a showroom visit; a confirmation email follows"""
    appointment = booking.create_appointment(
        appointment_date=request.appointment_date,
        appointment_time=request.appointment_time,
        customer=request.customer,
        duration_minutes=request.duration_minutes,
        remarks=request.remarks,
    )
    return AppointmentCreatedResponse(
        appointment=queries.to_response(appointment),
        manage_url=manage_url(appointment.edit_token),
    )


# ============================================================================
# Manage link (edit token)
# ============================================================================

@router.get("/manage/{token}", response_model=AppointmentResponse)
def get_managed_appointment(
        token: str = Path(..., description="Edit token from the confirmation email"),
        booking: BookingService = Depends(get_booking_service),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    return queries.to_response(booking.get_by_token(token))


@router.post("/manage/{token}/cancel", response_model=AppointmentResponse)
def cancel_managed_appointment(
        token: str = Path(...),
        booking: BookingService = Depends(get_booking_service),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    return queries.to_response(booking.cancel_by_token(token))


@router.post("/manage/{token}/reschedule", response_model=AppointmentCreatedResponse)
def reschedule_managed_appointment(
        request: RescheduleRequest,
        token: str = Path(...),
        booking: BookingService = Depends(get_booking_service),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    """Move the booking; the manage link stays valid for the new slot"""
    appointment = booking.reschedule_by_token(token, request.appointment_date, request.appointment_time)
    return AppointmentCreatedResponse(
        appointment=queries.to_response(appointment),
        manage_url=manage_url(appointment.edit_token),
    )
