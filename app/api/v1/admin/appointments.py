# ============================================================================
# FILE: app/api/v1/admin/appointments.py
# Admin-key authenticated appointment endpoints - thin HTTP layer
# ============================================================================
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from app.api.dependencies import get_booking_service, get_query_service, require_admin_key
from app.schemas.scheduling import (
    AdminAppointmentCreateRequest,
    AdminAppointmentResponse,
    AdminAppointmentUpdateRequest,
    AppointmentListResponse,
    AppointmentStatus,
    RescheduleRequest,
)
from app.services.booking.appointment_query_service import AppointmentQueryService
from app.services.booking.booking_service import BookingService

router = APIRouter(
    prefix="/admin/appointments",
    tags=["admin-appointments"],
    dependencies=[Depends(require_admin_key)],
)


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
        start_date: Optional[date] = Query(None, description="Filter appointments on or after this date"),
        end_date: Optional[date] = Query(None, description="Filter appointments on or before this date"),
        status: Optional[AppointmentStatus] = Query(None, description="Filter by status"),
        search: Optional[str] = Query(None, description="Match name, email or phone"),
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int = Query(50, ge=1, le=200, description="Number of records to return"),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    return queries.list_appointments(
        start_date=start_date,
        end_date=end_date,
        status=status,
        search=search,
        skip=skip,
        limit=limit,
    )


@router.get("/{appointment_id}", response_model=AdminAppointmentResponse)
def get_appointment(
        appointment_id: int = Path(..., description="The appointment ID"),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    return queries.get_appointment(appointment_id)


@router.post("", response_model=AdminAppointmentResponse, status_code=201)
def create_appointment(
        request: AdminAppointmentCreateRequest,
        booking: BookingService = Depends(get_booking_service),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    """Book on behalf of a customer (phone or walk-in)"""
    appointment = booking.create_appointment(
        appointment_date=request.appointment_date,
        appointment_time=request.appointment_time,
        customer=request.customer,
        duration_minutes=request.duration_minutes,
        remarks=request.remarks,
        admin_notes=request.admin_notes,
    )
    return queries.to_response(appointment, AdminAppointmentResponse)


@router.post("/{appointment_id}/cancel", response_model=AdminAppointmentResponse)
def cancel_appointment(
        appointment_id: int = Path(...),
        booking: BookingService = Depends(get_booking_service),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    """Cancel an appointment; repeating the call is harmless"""
    return queries.to_response(booking.cancel_appointment(appointment_id), AdminAppointmentResponse)


@router.post("/{appointment_id}/reschedule", response_model=AdminAppointmentResponse)
def reschedule_appointment(
        request: RescheduleRequest,
        appointment_id: int = Path(...),
        booking: BookingService = Depends(get_booking_service),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    appointment = booking.reschedule_appointment(appointment_id, request.appointment_date, request.appointment_time)
    return queries.to_response(appointment, AdminAppointmentResponse)


@router.patch("/{appointment_id}", response_model=AdminAppointmentResponse)
def update_appointment(
        request: AdminAppointmentUpdateRequest,
        appointment_id: int = Path(...),
        booking: BookingService = Depends(get_booking_service),
        queries: AppointmentQueryService = Depends(get_query_service)
):
    """Edit contact details, remarks or notes; the slot itself moves through reschedule"""
    appointment = booking.update_details(appointment_id, request.model_dump(exclude_unset=True))
    return queries.to_response(appointment, AdminAppointmentResponse)
