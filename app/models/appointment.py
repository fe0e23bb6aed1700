from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Text, Date, Time, DateTime, ForeignKey, Index, text
from .base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)

    # Appointment details
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)

    # Customer info
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    customer_street = Column(String(255), nullable=True)
    customer_postal_code = Column(String(10), nullable=True)
    customer_city = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)

    # Status tracking
    status = Column(String(20), nullable=False, default="confirmed")  # requested, confirmed, cancelled
    edit_token = Column(String(64), nullable=False, unique=True)
    admin_notes = Column(Text, nullable=True)
    rescheduled_from_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)

    # Reminders & notifications
    reminder_sent_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # One live booking per slot start; cancelled rows are history
        Index(
            "uq_appointments_active_slot",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text("status != 'cancelled'"),
            sqlite_where=text("status != 'cancelled'"),
        ),
        Index("idx_appointments_status", "status"),
        Index("idx_appointments_email", "customer_email"),
    )

    @property
    def customer_address(self):
        """One-line address from whichever parts are filled in, else None"""
        locality = " ".join(part for part in (self.customer_postal_code, self.customer_city) if part)
        return ", ".join(part for part in (self.customer_street, locality) if part) or None

    def __repr__(self):
        return f"<Appointment(id={self.id}, {self.appointment_date} {self.appointment_time}, {self.status})>"
