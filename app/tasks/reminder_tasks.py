"""
Celery tasks for the appointment reminder pass
"""
import logging

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.config.settings import get_settings
from app.services.email.email_service import EmailService
from app.services.factory import build_reminder_service, business_clock, lock_manager

logger = logging.getLogger(__name__)


def send_reminder_email(appointment) -> None:
    """Synchronous send so the pass only records reminders that went out"""
    EmailService.send_appointment_email(appointment, "reminder")


@celery_app.task(name="app.tasks.reminder_tasks.run_reminder_pass")
def run_reminder_pass():
    """Send due appointment reminders (scheduled by Celery beat)"""
    settings = get_settings()
    db = SessionLocal()
    try:
        service = build_reminder_service(db, business_clock(), lock_manager(), send_reminder_email, settings)
        report = service.run_reminder_pass(
            hours_before_appointment=settings.REMINDER_HOURS_BEFORE_APPOINTMENT,
            min_hours_after_booking=settings.REMINDER_MIN_HOURS_AFTER_BOOKING,
        )
        return report.model_dump()
    finally:
        db.close()
