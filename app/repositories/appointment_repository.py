# app/repositories/appointment_repository.py
"""Appointment store. Rows are never deleted; status carries the history."""
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import or_

from app.models.appointment import Appointment
from app.repositories.base import Repository, translate_storage_errors

CANCELLED = "cancelled"
CONFIRMED = "confirmed"


class AppointmentRepository(Repository):

    @translate_storage_errors
    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @translate_storage_errors
    def get_by_token(self, edit_token: str) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.edit_token == edit_token).first()

    @translate_storage_errors
    def list_active_for_date(self, day: date) -> List[Appointment]:
        """Non-cancelled appointments on one date, in start order"""
        return self.db.query(Appointment).filter(
            Appointment.appointment_date == day,
            Appointment.status != CANCELLED,
        ).order_by(Appointment.appointment_time.asc()).all()

    @translate_storage_errors
    def list_active_for_range(self, start_date: date, end_date: date) -> List[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.appointment_date >= start_date,
            Appointment.appointment_date <= end_date,
            Appointment.status != CANCELLED,
        ).order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()

    @translate_storage_errors
    def list_by_range(
            self,
            start_date: date,
            end_date: date,
            status: Optional[str] = None
    ) -> List[Appointment]:
        query = self.db.query(Appointment).filter(
            Appointment.appointment_date >= start_date,
            Appointment.appointment_date <= end_date,
        )
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(
            Appointment.appointment_date.asc(),
            Appointment.appointment_time.asc(),
            Appointment.id.asc(),
        ).all()

    @translate_storage_errors
    def list_reminder_candidates(self, start_date: date, end_date: date) -> List[Appointment]:
        """Confirmed, not yet reminded, dated within [start_date, end_date]"""
        return self.db.query(Appointment).filter(
            Appointment.status == CONFIRMED,
            Appointment.reminder_sent_at.is_(None),
            Appointment.appointment_date >= start_date,
            Appointment.appointment_date <= end_date,
        ).order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()

    @translate_storage_errors
    def search(
            self,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            search: Optional[str] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Tuple[int, List[Appointment]]:
        """Paginated admin listing with filters"""
        query = self.db.query(Appointment)

        if start_date:
            query = query.filter(Appointment.appointment_date >= start_date)
        if end_date:
            query = query.filter(Appointment.appointment_date <= end_date)
        if status:
            query = query.filter(Appointment.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Appointment.customer_name.ilike(pattern),
                Appointment.customer_email.ilike(pattern),
                Appointment.customer_phone.ilike(pattern),
            ))

        total = query.count()
        rows = query.order_by(
            Appointment.appointment_date.desc(),
            Appointment.appointment_time.desc(),
        ).offset(skip).limit(limit).all()
        return total, rows

    @translate_storage_errors
    def add(self, appointment: Appointment) -> Appointment:
        """Stage a new row and flush so constraint violations surface now"""
        self.db.add(appointment)
        self.db.flush()
        return appointment

    @translate_storage_errors
    def flush(self) -> None:
        self.db.flush()

    @translate_storage_errors
    def refresh(self, appointment: Appointment) -> Appointment:
        self.db.refresh(appointment)
        return appointment
