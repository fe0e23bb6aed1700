# app/api/v1/cron.py
"""On-demand trigger for the reminder pass (external schedulers)"""
from fastapi import APIRouter, Depends

from app.api.dependencies import get_reminder_service, require_cron_secret
from app.config.settings import Settings, get_settings
from app.schemas.scheduling import ReminderReport
from app.services.reminder.reminder_service import ReminderService

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.api_route("/send-appointment-reminders", methods=["GET", "POST"], response_model=ReminderReport)
def send_appointment_reminders(
        reminders: ReminderService = Depends(get_reminder_service),
        settings: Settings = Depends(get_settings)
):
    return reminders.run_reminder_pass(
        hours_before_appointment=settings.REMINDER_HOURS_BEFORE_APPOINTMENT,
        min_hours_after_booking=settings.REMINDER_MIN_HOURS_AFTER_BOOKING,
    )
