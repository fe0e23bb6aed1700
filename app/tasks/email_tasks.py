import logging

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.config.settings import get_settings
from app.repositories.appointment_repository import AppointmentRepository
from app.services.email.email_service import EmailService
from app.services.factory import build_calendar_feed_service

logger = logging.getLogger(__name__)

# Templates that carry a calendar attachment, and its METHOD
ICS_METHODS = {
    "confirmation": "REQUEST",
    "rescheduled": "REQUEST",
    "cancellation": "CANCEL",
    "admin_notification": "REQUEST",
}

# Emails queued for each notifier event
NOTIFICATIONS = {
    "confirmation": ["confirmation", "admin_notification"],
}


@celery_app.task(bind=True, max_retries=3)
def send_appointment_email(self, appointment_id: int, template: str):
    """
    Send an appointment email to the customer, or to the staff inbox for admin_notification

    Args:
        appointment_id: Appointment to notify about
        template: a key of APPOINTMENT_TEMPLATES
    """
    db = SessionLocal()
    try:
        appointment = AppointmentRepository(db).get(appointment_id)
        if appointment is None:
            logger.warning(f"Appointment {appointment_id} vanished before its {template} email")
            return {"status": "skipped", "appointment_id": appointment_id}

        to_email = None
        if template == "admin_notification":
            to_email = get_settings().APPOINTMENT_ADMIN_EMAIL
            if not to_email:
                logger.info(f"No APPOINTMENT_ADMIN_EMAIL configured, skipping notice for appointment {appointment_id}")
                return {"status": "skipped", "appointment_id": appointment_id}

        logger.info(f"Sending {template} email for appointment {appointment_id}")

        attachments = None
        method = ICS_METHODS.get(template)
        if method:
            feed = build_calendar_feed_service(db, get_settings())
            attachments = [(feed.event_filename(appointment), feed.generate_event_ics(appointment, method), method)]

        EmailService.send_appointment_email(appointment, template, attachments=attachments, to_email=to_email)

        logger.info(f"{template.capitalize()} email sent for appointment {appointment_id}")
        return {"status": "success", "appointment_id": appointment_id, "template": template}

    except Exception as exc:
        logger.error(f"Failed to send {template} email for appointment {appointment_id}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
    finally:
        db.close()


def dispatch_appointment_email(appointment_id: int, event: str) -> None:
    """Queue the emails for a booking event; used as the booking service notifier"""
    for template in NOTIFICATIONS.get(event, [event]):
        send_appointment_email.delay(appointment_id, template)
