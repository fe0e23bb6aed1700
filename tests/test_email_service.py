"""Tests for appointment emails and their calendar attachments."""

import email
import unittest
from unittest import mock

from app.config.settings import Settings
from app.services.email.email_service import (
    APPOINTMENT_TEMPLATES,
    EmailDeliveryError,
    EmailService,
    manage_url,
)
from app.tasks import email_tasks

from scheduling_helpers import (
    TUESDAY,
    add_appointment,
    memory_engine,
    session_factory,
)


class EmailServiceTests(unittest.TestCase):
    """Validate message building and SMTP hand-off."""

    def setUp(self) -> None:
        self.engine = memory_engine()
        self.db = session_factory(self.engine)()
        self.appointment = add_appointment(self.db, TUESDAY, "10:00", name="Jan <Peeters>")
        self.smtp = mock.Mock()
        patcher = mock.patch.object(EmailService, "_get_smtp_connection", return_value=self.smtp)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def sent_message(self):
        _, recipients, raw = self.smtp.sendmail.call_args[0]
        return recipients, email.message_from_string(raw)

    def test_every_template_renders(self) -> None:
        for template, render in APPOINTMENT_TEMPLATES.items():
            with self.subTest(template=template):
                subject, html_content, plain_text = render(self.appointment)
                self.assertTrue(subject)
                self.assertIn("Jan &lt;Peeters&gt;", html_content)
                self.assertNotIn("<strong>", plain_text)

    def test_confirmation_links_to_manage_page(self) -> None:
        EmailService.send_appointment_email(self.appointment, "confirmation")

        recipients, message = self.sent_message()
        self.assertEqual(recipients, ["jan@example.com"])
        self.assertEqual(message.get_content_type(), "multipart/alternative")
        html_part = message.get_payload()[-1].get_payload(decode=True).decode("utf-8")
        self.assertIn(manage_url(self.appointment.edit_token), html_part)
        self.smtp.quit.assert_called_once()

    def test_calendar_attachment(self) -> None:
        ics = "BEGIN:VCALENDAR\r\nMETHOD:CANCEL\r\nEND:VCALENDAR\r\n"

        EmailService.send_appointment_email(
            self.appointment, "cancellation", attachments=[("appointment-20251202.ics", ics, "CANCEL")]
        )

        _, message = self.sent_message()
        self.assertEqual(message.get_content_type(), "multipart/mixed")
        calendar_part = message.get_payload()[1]
        self.assertEqual(calendar_part.get_content_type(), "text/calendar")
        self.assertEqual(calendar_part.get_param("method"), "CANCEL")
        self.assertEqual(calendar_part.get_filename(), "appointment-20251202.ics")

    def test_admin_notice_lists_customer_details(self) -> None:
        self.appointment.customer_street = "Eikenlei 159"
        self.appointment.customer_postal_code = "2960"
        self.appointment.customer_city = "Brecht"
        self.appointment.remarks = "Oak & walnut"

        subject, html_content, plain_text = APPOINTMENT_TEMPLATES["admin_notification"](self.appointment)

        self.assertIn("Jan <Peeters>", subject)
        self.assertIn("Oak &amp; walnut", html_content)
        self.assertIn("- Address: Eikenlei 159, 2960 Brecht", plain_text)
        self.assertNotIn("Phone", plain_text)

    def test_recipient_can_be_overridden(self) -> None:
        EmailService.send_appointment_email(self.appointment, "admin_notification", to_email="winkel@example.com")

        recipients, message = self.sent_message()
        self.assertEqual(recipients, ["winkel@example.com"])
        self.assertEqual(message["To"], "winkel@example.com")

    def test_smtp_failure_raises_delivery_error(self) -> None:
        self.smtp.sendmail.side_effect = ConnectionResetError("connection reset")

        with self.assertRaises(EmailDeliveryError):
            EmailService.send_appointment_email(self.appointment, "reminder")
        self.smtp.quit.assert_called_once()

    def test_unknown_template(self) -> None:
        with self.assertRaises(ValueError):
            EmailService.send_appointment_email(self.appointment, "newsletter")


class EmailTaskTests(unittest.TestCase):
    """Validate attachments and recipients of the email task."""

    def setUp(self) -> None:
        self.engine = memory_engine()
        Session = session_factory(self.engine)
        with Session() as db:
            self.appointment_id = add_appointment(db, TUESDAY, "10:00").id

        for target, value in (("SessionLocal", Session), ("EmailService", mock.Mock())):
            patcher = mock.patch.object(email_tasks, target, value)
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self.engine.dispose()

    def attachments_for(self, template):
        result = email_tasks.send_appointment_email(self.appointment_id, template)
        self.assertEqual(result["status"], "success")
        return email_tasks.EmailService.send_appointment_email.call_args.kwargs["attachments"]

    def test_confirmation_carries_request(self) -> None:
        [(filename, content, method)] = self.attachments_for("confirmation")

        self.assertEqual(filename, "appointment-20251202.ics")
        self.assertEqual(method, "REQUEST")
        self.assertIn("METHOD:REQUEST\r\n", content)

    def test_cancellation_carries_cancel(self) -> None:
        [(_, content, method)] = self.attachments_for("cancellation")

        self.assertEqual(method, "CANCEL")
        self.assertIn("STATUS:CANCELLED\r\n", content)

    def test_reminder_has_no_attachment(self) -> None:
        self.assertIsNone(self.attachments_for("reminder"))

    def test_admin_notice_goes_to_the_staff_inbox(self) -> None:
        settings = Settings(APPOINTMENT_ADMIN_EMAIL="winkel@example.com")

        with mock.patch.object(email_tasks, "get_settings", return_value=settings):
            [(_, content, method)] = self.attachments_for("admin_notification")

        self.assertEqual(method, "REQUEST")
        self.assertIn("METHOD:REQUEST\r\n", content)
        call = email_tasks.EmailService.send_appointment_email.call_args
        self.assertEqual(call.kwargs["to_email"], "winkel@example.com")

    def test_admin_notice_is_skipped_without_an_inbox(self) -> None:
        with mock.patch.object(email_tasks, "get_settings", return_value=Settings(APPOINTMENT_ADMIN_EMAIL="")):
            result = email_tasks.send_appointment_email(self.appointment_id, "admin_notification")

        self.assertEqual(result["status"], "skipped")
        email_tasks.EmailService.send_appointment_email.assert_not_called()

    def test_customer_emails_go_to_the_customer(self) -> None:
        self.attachments_for("confirmation")

        self.assertIsNone(email_tasks.EmailService.send_appointment_email.call_args.kwargs["to_email"])

    def test_missing_appointment_is_skipped(self) -> None:
        result = email_tasks.send_appointment_email(9999, "confirmation")

        self.assertEqual(result["status"], "skipped")


class NotificationDispatchTests(unittest.TestCase):
    """Validate which emails each booking event queues."""

    def test_new_booking_notifies_customer_and_staff(self) -> None:
        with mock.patch.object(email_tasks, "send_appointment_email") as task:
            email_tasks.dispatch_appointment_email(7, "confirmation")
            email_tasks.dispatch_appointment_email(7, "cancellation")

        self.assertEqual(
            task.delay.call_args_list,
            [mock.call(7, "confirmation"), mock.call(7, "admin_notification"), mock.call(7, "cancellation")],
        )


if __name__ == "__main__":
    unittest.main()
