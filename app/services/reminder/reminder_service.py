# ============================================================================
# app/services/reminder/reminder_service.py
# Periodic reminder pass - triggered by Celery beat or the cron endpoint
# ============================================================================
import logging
from datetime import timedelta, timezone
from typing import Callable

from app.config.redis import RedisKeys
from app.models.appointment import Appointment
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.scheduling import FailedReminder, ReminderReport
from app.utils.clock import BusinessClock, as_utc

logger = logging.getLogger(__name__)

ReminderSender = Callable[[Appointment], None]


class ReminderService:
    """Sends one reminder per confirmed appointment shortly before it starts"""

    def __init__(
            self,
            appointment_repo: AppointmentRepository,
            send_reminder: ReminderSender,
            clock: BusinessClock,
            lock_manager,
            pass_interval_hours: int = 24
    ):
        self.appointment_repo = appointment_repo
        self.send_reminder = send_reminder
        self.clock = clock
        self.lock_manager = lock_manager
        self.pass_interval_hours = pass_interval_hours

    def run_reminder_pass(
            self,
            hours_before_appointment: int,
            min_hours_after_booking: int
    ) -> ReminderReport:
        """
        Send reminders for appointments starting in
        [now + hours_before, now + hours_before + pass interval).

        Appointments booked less than min_hours_after_booking before their
        start are skipped. reminder_sent_at is committed per item right after
        its send succeeds, so a rerun never double-sends. Never raises; a
        pass-level failure is reported in ReminderReport.error.
        """
        report = ReminderReport()
        try:
            lease = self.pass_interval_hours * 3600
            with self.lock_manager.try_hold(RedisKeys.REMINDER_PASS_LOCK, lease_seconds=lease) as acquired:
                if not acquired:
                    logger.info("⏭️ Reminder pass already running elsewhere, skipping")
                    report.skipped = True
                    return report
                self._send_due(report, hours_before_appointment, min_hours_after_booking)
        except Exception as e:
            logger.error(f"❌ Reminder pass aborted: {e}", exc_info=True)
            report.error = str(e)

        logger.info(f"✅ Reminder pass complete: {report.sent} sent, {len(report.failed)} failed")
        return report

    def _send_due(self, report: ReminderReport, hours_before: int, min_hours_after_booking: int) -> None:
        now = self.clock.now()
        window_start = now + timedelta(hours=hours_before)
        window_end = window_start + timedelta(hours=self.pass_interval_hours)

        candidates = self.appointment_repo.list_reminder_candidates(window_start.date(), window_end.date())

        for appointment in candidates:
            starts_at = self.clock.localize(appointment.appointment_date, appointment.appointment_time)
            if not window_start <= starts_at < window_end:
                continue

            # Last-minute bookings just got their confirmation
            booked_at = as_utc(appointment.created_at)
            if starts_at - booked_at < timedelta(hours=min_hours_after_booking):
                logger.debug(f"Appointment {appointment.id} booked too close to start, no reminder")
                continue

            try:
                self.send_reminder(appointment)
            except Exception as e:
                logger.warning(f"⚠️ Reminder for appointment {appointment.id} failed: {e}")
                report.failed.append(FailedReminder(appointment_id=appointment.id, error=str(e)))
                continue

            try:
                appointment.reminder_sent_at = now.astimezone(timezone.utc)
                self.appointment_repo.commit()
            except Exception as e:
                self.appointment_repo.rollback()
                logger.error(f"❌ Reminder sent but not recorded for appointment {appointment.id}: {e}")
                report.failed.append(FailedReminder(appointment_id=appointment.id, error=str(e)))
                continue

            report.sent += 1
            logger.info(f"📧 Reminder sent for appointment {appointment.id} ({appointment.customer_email})")
