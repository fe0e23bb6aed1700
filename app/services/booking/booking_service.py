# ============================================================================
# app/services/booking/booking_service.py
# Booking rules and the appointment state machine - no FastAPI dependencies
# ============================================================================
"""Service for creating, cancelling and rescheduling appointments"""
import logging
import re
import secrets
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    AppointmentNotFoundError,
    OutsideOpeningHoursError,
    PastDateError,
    SchedulingError,
    SlotUnavailableError,
    ValidationError,
)
from app.models.appointment import Appointment
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.scheduling import AppointmentStatus, CustomerInfo
from app.services.availability.availability_service import (
    AvailabilityService,
    find_conflict,
    fits_within_hours,
    on_slot_grid,
)
from app.utils.clock import BusinessClock

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\+?\d{8,15}$")
PHONE_SEPARATORS = re.compile(r"[\s\-().]")
POSTAL_CODE_PATTERN = re.compile(r"^\d{4}(\s?[A-Za-z]{2})?$")
MAX_DURATION_MINUTES = 480
MAX_NAME_LENGTH = 255

# Stored transitions; "completed" is derived from the clock and never written
ALLOWED_TRANSITIONS = {
    AppointmentStatus.REQUESTED: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.CANCELLED},
    AppointmentStatus.CANCELLED: set(),
}

Notifier = Callable[[int, str], None]


def generate_edit_token() -> str:
    """128-bit hex token for customer manage links"""
    return secrets.token_hex(16)


def effective_status(appointment: Appointment, clock: BusinessClock) -> AppointmentStatus:
    """Stored status, with confirmed appointments that have ended reported as completed"""
    status = AppointmentStatus(appointment.status)
    if status == AppointmentStatus.CONFIRMED:
        ends_at = clock.localize(appointment.appointment_date, appointment.appointment_time) \
            + timedelta(minutes=appointment.duration_minutes)
        if ends_at <= clock.now():
            return AppointmentStatus.COMPLETED
    return status


def _clean_name(value: Optional[str]) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError("Customer name is required", field="customer.name")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError("Customer name is too long", field="customer.name")
    return name


def _clean_phone(value: Optional[str]) -> Optional[str]:
    phone = (value or "").strip() or None
    if phone is not None and not PHONE_PATTERN.match(PHONE_SEPARATORS.sub("", phone)):
        raise ValidationError("Invalid phone number", field="customer.phone")
    return phone


def _clean_postal_code(value: Optional[str]) -> Optional[str]:
    """Belgian 1234 or Dutch 1234 AB; Dutch codes come back as "1234 AB" """
    postal_code = (value or "").strip() or None
    if postal_code is None:
        return None
    if not POSTAL_CODE_PATTERN.match(postal_code):
        raise ValidationError("Invalid postal code", field="customer.postal_code")
    compact = postal_code.replace(" ", "").upper()
    if len(compact) == 6:
        return f"{compact[:4]} {compact[4:]}"
    return compact


def _clean_email(value) -> str:
    email = str(value or "").strip().lower()
    if not email:
        raise ValidationError("Customer email is required", field="customer.email")
    return email


def _clean_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def normalize_customer(customer: CustomerInfo) -> CustomerInfo:
    """Trim and validate contact fields; raises ValidationError"""
    return CustomerInfo(
        name=_clean_name(customer.name),
        email=customer.email,
        phone=_clean_phone(customer.phone),
        street=_clean_text(customer.street),
        postal_code=_clean_postal_code(customer.postal_code),
        city=_clean_text(customer.city),
    )


# Editable columns and the cleaner each value goes through
DETAIL_FIELDS = {
    "customer_name": _clean_name,
    "customer_email": _clean_email,
    "customer_phone": _clean_phone,
    "customer_street": _clean_text,
    "customer_postal_code": _clean_postal_code,
    "customer_city": _clean_text,
    "remarks": _clean_text,
    "admin_notes": _clean_text,
}


class BookingService:
    """Validates and commits bookings against current availability"""

    def __init__(
            self,
            availability_service: AvailabilityService,
            appointment_repo: AppointmentRepository,
            lock_manager,
            clock: BusinessClock,
            max_days_ahead: int = 60,
            min_hours_before_booking: int = 0,
            notifier: Optional[Notifier] = None
    ):
        self.availability_service = availability_service
        self.appointment_repo = appointment_repo
        self.lock_manager = lock_manager
        self.clock = clock
        self.max_days_ahead = max_days_ahead
        self.min_hours_before_booking = min_hours_before_booking
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.appointment_repo.get(appointment_id)
        if not appointment:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    def get_by_token(self, edit_token: str) -> Appointment:
        appointment = self.appointment_repo.get_by_token(edit_token) if edit_token else None
        if not appointment:
            raise AppointmentNotFoundError("Appointment not found")
        return appointment

    def effective_status(self, appointment: Appointment) -> AppointmentStatus:
        return effective_status(appointment, self.clock)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_appointment(
            self,
            appointment_date: date,
            appointment_time: time,
            customer: CustomerInfo,
            duration_minutes: Optional[int] = None,
            remarks: Optional[str] = None,
            admin_notes: Optional[str] = None
    ) -> Appointment:
        """
        Book a slot. The day's effective hours and existing bookings are
        re-read under the per-date lock, so a slot shown as free earlier can
        still fail here with SlotUnavailableError.
        """
        customer = normalize_customer(customer)
        self._check_duration(duration_minutes)
        self._check_timing(appointment_date, appointment_time)

        with self.lock_manager.hold_dates(appointment_date):
            duration = self._check_bookable(appointment_date, appointment_time, duration_minutes)

            appointment = Appointment(
                appointment_date=appointment_date,
                appointment_time=appointment_time,
                duration_minutes=duration,
                customer_name=customer.name,
                customer_email=customer.email,
                customer_phone=customer.phone,
                customer_street=customer.street,
                customer_postal_code=customer.postal_code,
                customer_city=customer.city,
                remarks=(remarks or "").strip() or None,
                admin_notes=admin_notes,
                status=AppointmentStatus.REQUESTED.value,
                edit_token=generate_edit_token(),
            )
            # Bookings are auto-confirmed
            self._transition(appointment, AppointmentStatus.CONFIRMED)

            try:
                self.appointment_repo.add(appointment)
                self.appointment_repo.commit()
            except IntegrityError as e:
                self.appointment_repo.rollback()
                logger.info(f"Booking collided on unique slot {appointment_date} {appointment_time}: {e.orig}")
                raise SlotUnavailableError(
                    "Slot was taken by a concurrent booking",
                    appointment_date=appointment_date.isoformat(),
                ) from e

            self.appointment_repo.refresh(appointment)

        logger.info(
            f"Appointment {appointment.id} booked for {appointment_date} "
            f"{appointment_time.strftime('%H:%M')} ({duration} min)"
        )
        self._notify(appointment.id, "confirmation")
        return appointment

    def cancel_appointment(self, appointment_id: int) -> Appointment:
        """Cancel an appointment; cancelling twice is a no-op success"""
        return self._cancel(self.get_appointment(appointment_id))

    def cancel_by_token(self, edit_token: str) -> Appointment:
        return self._cancel(self.get_by_token(edit_token))

    def reschedule_appointment(
            self,
            appointment_id: int,
            new_date: date,
            new_time: time
    ) -> Appointment:
        """
        Atomic cancel-then-create. The original is cancelled and a new
        confirmed appointment takes over its customer data and edit token in
        one transaction; any failure rolls back and leaves the original as it was.
        """
        return self._reschedule(self.get_appointment(appointment_id), new_date, new_time)

    def reschedule_by_token(self, edit_token: str, new_date: date, new_time: time) -> Appointment:
        return self._reschedule(self.get_by_token(edit_token), new_date, new_time)

    def update_details(self, appointment_id: int, changes: Dict[str, Any]) -> Appointment:
        """
        Admin edit of contact fields, remarks and notes. Date, time and
        status only change through reschedule and cancel.
        """
        unknown = set(changes) - set(DETAIL_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        if not changes:
            raise ValidationError("No changes given")

        appointment = self.get_appointment(appointment_id)
        cleaned = {field: DETAIL_FIELDS[field](value) for field, value in changes.items()}

        for field, value in cleaned.items():
            setattr(appointment, field, value)
        self.appointment_repo.commit()
        self.appointment_repo.refresh(appointment)

        logger.info(f"Appointment {appointment.id} details updated: {', '.join(sorted(cleaned))}")
        return appointment

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancel(self, appointment: Appointment) -> Appointment:
        if appointment.status == AppointmentStatus.CANCELLED.value:
            logger.info(f"Appointment {appointment.id} already cancelled, nothing to do")
            return appointment

        self._transition(appointment, AppointmentStatus.CANCELLED)
        appointment.cancelled_at = datetime.now(timezone.utc)
        self.appointment_repo.commit()
        self.appointment_repo.refresh(appointment)

        logger.info(f"Appointment {appointment.id} cancelled")
        self._notify(appointment.id, "cancellation")
        return appointment

    def _reschedule(self, original: Appointment, new_date: date, new_time: time) -> Appointment:
        if original.status == AppointmentStatus.CANCELLED.value:
            raise ValidationError("Cancelled appointments cannot be rescheduled")

        if original.appointment_date == new_date and original.appointment_time == new_time:
            return original

        self._check_timing(new_date, new_time)

        with self.lock_manager.hold_dates(original.appointment_date, new_date):
            try:
                self.appointment_repo.refresh(original)
                if original.status == AppointmentStatus.CANCELLED.value:
                    raise ValidationError("Cancelled appointments cannot be rescheduled")

                edit_token = original.edit_token
                self._transition(original, AppointmentStatus.CANCELLED)
                original.cancelled_at = datetime.now(timezone.utc)
                # The manage link follows the booking to its new slot
                original.edit_token = generate_edit_token()
                self.appointment_repo.flush()

                duration = self._check_bookable(new_date, new_time, original.duration_minutes)

                replacement = Appointment(
                    appointment_date=new_date,
                    appointment_time=new_time,
                    duration_minutes=duration,
                    customer_name=original.customer_name,
                    customer_email=original.customer_email,
                    customer_phone=original.customer_phone,
                    customer_street=original.customer_street,
                    customer_postal_code=original.customer_postal_code,
                    customer_city=original.customer_city,
                    remarks=original.remarks,
                    admin_notes=original.admin_notes,
                    status=AppointmentStatus.CONFIRMED.value,
                    edit_token=edit_token,
                    rescheduled_from_id=original.id,
                )
                self.appointment_repo.add(replacement)
                self.appointment_repo.commit()

            except SchedulingError:
                self.appointment_repo.rollback()
                raise
            except IntegrityError as e:
                self.appointment_repo.rollback()
                raise SlotUnavailableError(
                    "Slot was taken by a concurrent booking",
                    appointment_date=new_date.isoformat(),
                ) from e

            self.appointment_repo.refresh(replacement)

        logger.info(
            f"Appointment {original.id} rescheduled to {new_date} "
            f"{new_time.strftime('%H:%M')} as {replacement.id}"
        )
        self._notify(replacement.id, "rescheduled")
        return replacement

    def _check_bookable(self, day: date, at: time, duration_minutes: Optional[int]) -> int:
        """Authoritative hours and conflict check; call with the date lock held"""
        schedule = self.availability_service.get_day_schedule(day, fresh=True)
        duration = duration_minutes or schedule.slot_duration_minutes

        if not fits_within_hours(schedule, at, duration):
            raise OutsideOpeningHoursError(
                f"{day} {at.strftime('%H:%M')} ({duration} min) is outside opening hours"
            )
        if not on_slot_grid(schedule, at):
            raise OutsideOpeningHoursError(
                f"{day} {at.strftime('%H:%M')} is not a slot start "
                f"({schedule.slot_duration_minutes}-minute slots from {schedule.open_time.strftime('%H:%M')})"
            )

        conflict = find_conflict(self.appointment_repo.list_active_for_date(day), at, duration)
        if conflict is not None:
            raise SlotUnavailableError(
                f"{day} {at.strftime('%H:%M')} overlaps appointment {conflict.id}",
                appointment_date=day.isoformat(),
            )

        return duration

    def _check_timing(self, day: date, at: time) -> None:
        if at.second or at.microsecond:
            raise ValidationError("Appointment time must be whole minutes (HH:MM)")

        now = self.clock.now()
        earliest = now + timedelta(hours=self.min_hours_before_booking)
        if self.clock.localize(day, at) <= earliest:
            raise PastDateError(f"{day} {at.strftime('%H:%M')} has already passed or is too soon")

        if day > now.date() + timedelta(days=self.max_days_ahead):
            raise ValidationError(f"Appointments can be booked at most {self.max_days_ahead} days ahead")

    @staticmethod
    def _check_duration(duration_minutes: Optional[int]) -> None:
        if duration_minutes is None:
            return
        if duration_minutes <= 0 or duration_minutes > MAX_DURATION_MINUTES:
            raise ValidationError(f"duration_minutes must be between 1 and {MAX_DURATION_MINUTES}")

    @staticmethod
    def _transition(appointment: Appointment, target: AppointmentStatus) -> None:
        current = AppointmentStatus(appointment.status)
        if target not in ALLOWED_TRANSITIONS.get(current, set()):
            raise ValidationError(f"Cannot move appointment from {current.value} to {target.value}")
        appointment.status = target.value

    def _notify(self, appointment_id: int, template: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(appointment_id, template)
        except Exception as e:
            # Notification trouble never undoes a committed booking
            logger.error(f"Failed to queue {template} email for appointment {appointment_id}: {e}")
