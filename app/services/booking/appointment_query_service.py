# ============================================================================
# app/services/booking/appointment_query_service.py
# Read side for the admin screens and the manage link - no FastAPI dependencies
# ============================================================================
from datetime import date
from typing import Any, Dict, Optional, Type

from app.core.exceptions import AppointmentNotFoundError, ValidationError
from app.models.appointment import Appointment
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.scheduling import AdminAppointmentResponse, AppointmentResponse, AppointmentStatus
from app.services.booking.booking_service import effective_status
from app.utils.clock import BusinessClock

MAX_PAGE_SIZE = 200


class AppointmentQueryService:
    """Service layer for appointment listings"""

    def __init__(self, appointment_repo: AppointmentRepository, clock: BusinessClock):
        self.appointment_repo = appointment_repo
        self.clock = clock

    def to_response(
            self,
            appointment: Appointment,
            model: Type[AppointmentResponse] = AppointmentResponse
    ) -> AppointmentResponse:
        """Serialize with the derived status (confirmed and ended reads as completed)"""
        response = model.model_validate(appointment)
        return response.model_copy(update={"status": effective_status(appointment, self.clock)})

    def get_appointment(self, appointment_id: int) -> AdminAppointmentResponse:
        appointment = self.appointment_repo.get(appointment_id)
        if not appointment:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return self.to_response(appointment, AdminAppointmentResponse)

    def list_appointments(
            self,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[AppointmentStatus] = None,
            search: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """
        Get paginated list of appointments with filters.

        "completed" is derived, so it filters confirmed rows dated up to today
        and drops those still running; totals count the stored rows.
        """
        if skip < 0 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"skip must be >= 0 and limit between 1 and {MAX_PAGE_SIZE}")
        if start_date and end_date and end_date < start_date:
            raise ValidationError("end_date must be on or after start_date")

        stored_status = status.value if status else None
        if status == AppointmentStatus.COMPLETED:
            stored_status = AppointmentStatus.CONFIRMED.value
            today = self.clock.today()
            end_date = min(end_date, today) if end_date else today

        total, rows = self.appointment_repo.search(
            start_date=start_date,
            end_date=end_date,
            status=stored_status,
            search=(search or "").strip() or None,
            skip=skip,
            limit=limit,
        )

        appointments = [self.to_response(row, AdminAppointmentResponse) for row in rows]
        if status == AppointmentStatus.COMPLETED:
            appointments = [a for a in appointments if a.status == AppointmentStatus.COMPLETED]

        return {
            "total_appointments": total,
            "page": {
                "skip": skip,
                "limit": limit,
                "total_pages": (total + limit - 1) // limit if total > 0 else 0
            },
            "filters": {
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
                "status": status.value if status else None,
                "search": search,
            },
            "appointments": appointments,
        }
