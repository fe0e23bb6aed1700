import re
import smtplib
from html import escape
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Tuple
import logging

from app.config.settings import settings
from app.models.appointment import Appointment

logger = logging.getLogger(__name__)

# (filename, content, ics method)
CalendarAttachment = Tuple[str, str, str]


class EmailDeliveryError(Exception):
    """SMTP delivery failed"""


def manage_url(edit_token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/appointments/{edit_token}"


def booking_url() -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/appointments"


def format_appointment_datetime(appointment: Appointment) -> str:
    return (
        f"{appointment.appointment_date.strftime('%A %d %B %Y')} at "
        f"{appointment.appointment_time.strftime('%H:%M')}"
    )


class EmailService:
    """Service for sending emails via SMTP"""

    @staticmethod
    def _get_smtp_connection():
        """Create and return SMTP connection"""
        try:
            if settings.EMAIL_USE_TLS:
                server = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT)
                server.starttls()
            else:
                server = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT)

            if settings.EMAIL_USERNAME and settings.EMAIL_PASSWORD:
                server.login(settings.EMAIL_USERNAME, settings.EMAIL_PASSWORD)

            return server
        except Exception as e:
            logger.error(f"Failed to connect to SMTP server: {e}")
            raise

    @staticmethod
    def send_email(
            to_email: str,
            subject: str,
            html_content: str,
            plain_text: Optional[str] = None,
            attachments: Optional[List[CalendarAttachment]] = None
    ) -> bool:
        """
        Send an email using SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML content of the email
            plain_text: Plain text version (fallback for non-HTML clients)
            attachments: Calendar attachments as (filename, ics content, method)

        Returns:
            bool: True when the message was handed to the SMTP server

        Raises:
            EmailDeliveryError: when sending fails
        """
        try:
            body = MIMEMultipart('alternative')
            if plain_text:
                body.attach(MIMEText(plain_text, 'plain', 'utf-8'))
            body.attach(MIMEText(html_content, 'html', 'utf-8'))

            if attachments:
                msg = MIMEMultipart('mixed')
                msg.attach(body)
                for filename, content, method in attachments:
                    part = MIMEText(content, 'calendar', 'utf-8')
                    part.set_param('method', method)
                    part.add_header('Content-Disposition', 'attachment', filename=filename)
                    msg.attach(part)
            else:
                msg = body

            msg['Subject'] = subject
            msg['From'] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>"
            msg['To'] = to_email

            server = EmailService._get_smtp_connection()
            try:
                server.sendmail(settings.EMAIL_FROM_ADDRESS, [to_email], msg.as_string())
            finally:
                server.quit()

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise EmailDeliveryError(str(e)) from e

    @staticmethod
    def send_appointment_email(
            appointment: Appointment,
            template: str,
            attachments: Optional[List[CalendarAttachment]] = None,
            to_email: Optional[str] = None
    ) -> bool:
        """Render one of APPOINTMENT_TEMPLATES and send it, to the customer unless to_email is given"""
        if template not in APPOINTMENT_TEMPLATES:
            raise ValueError(f"Unknown appointment email template: {template}")

        subject, html_content, plain_text = APPOINTMENT_TEMPLATES[template](appointment)
        return EmailService.send_email(
            to_email=to_email or appointment.customer_email,
            subject=subject,
            html_content=html_content,
            plain_text=plain_text,
            attachments=attachments,
        )


# ============================================================================
# Templates
# ============================================================================

def _render(title: str, accent: str, customer_name: str, intro: str,
            appointment: Appointment, action_label: str, action_url: str, outro: str) -> Tuple[str, str]:
    store = settings.STORE_NAME
    when = format_appointment_datetime(appointment)

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="background-color: {accent}; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
            <h1 style="color: white; margin: 0; font-size: 26px;">{title}</h1>
        </div>

        <div style="background-color: #ffffff; padding: 30px; border: 1px solid #e0e0e0; border-top: none; border-radius: 0 0 10px 10px;">
            <h2 style="color: #333; margin-top: 0;">Hi {escape(customer_name)},</h2>

            <p style="font-size: 16px; color: #555;">{intro}</p>

            <div style="background-color: #f8f9fa; padding: 20px; border-radius: 8px; margin: 25px 0;">
                <table style="width: 100%; border-collapse: collapse;">
                    <tr>
                        <td style="padding: 8px 0; color: #666; font-weight: bold;">Date &amp; Time:</td>
                        <td style="padding: 8px 0; color: #333;">{when}</td>
                    </tr>
                    <tr>
                        <td style="padding: 8px 0; color: #666; font-weight: bold;">Duration:</td>
                        <td style="padding: 8px 0; color: #333;">{appointment.duration_minutes} minutes</td>
                    </tr>
                    <tr>
                        <td style="padding: 8px 0; color: #666; font-weight: bold;">Location:</td>
                        <td style="padding: 8px 0; color: #333;">{store}, {settings.STORE_ADDRESS}</td>
                    </tr>
                </table>
            </div>

            <div style="text-align: center; margin: 30px 0;">
                <a href="{action_url}"
                   style="background-color: {accent}; color: white; padding: 14px 40px; text-decoration: none;
                          border-radius: 5px; font-weight: bold; display: inline-block; font-size: 16px;">
                    {action_label}
                </a>
            </div>

            <p style="font-size: 14px; color: #555;">{outro}</p>

            <hr style="border: none; border-top: 1px solid #e0e0e0; margin: 30px 0;">

            <p style="font-size: 12px; color: #999; margin: 0;">
                This is an automated message. Please don't reply to this email.
            </p>
        </div>
    </body>
    </html>
    """

    plain_text = f"""
    {title}

    Hi {customer_name},

    {re.sub(r"<[^>]+>", "", intro)}

    - Date & Time: {when}
    - Duration: {appointment.duration_minutes} minutes
    - Location: {store}, {settings.STORE_ADDRESS}

    {action_label}: {action_url}

    {outro}
    """
    return html_content, plain_text


def confirmation_email(appointment: Appointment) -> Tuple[str, str, str]:
    html_content, plain_text = _render(
        title="Appointment Confirmed",
        accent="#2e7d32",
        customer_name=appointment.customer_name,
        intro=f"Your visit to <strong>{settings.STORE_NAME}</strong> is booked. We look forward to seeing you!",
        appointment=appointment,
        action_label="View or change appointment",
        action_url=manage_url(appointment.edit_token),
        outro="Can't make it? Use the link above to reschedule or cancel.",
    )
    return f"Appointment confirmed - {settings.STORE_NAME}", html_content, plain_text


def reminder_email(appointment: Appointment) -> Tuple[str, str, str]:
    html_content, plain_text = _render(
        title="Appointment Reminder",
        accent="#f9a825",
        customer_name=appointment.customer_name,
        intro=f"This is a friendly reminder about your upcoming visit to <strong>{settings.STORE_NAME}</strong>.",
        appointment=appointment,
        action_label="View or change appointment",
        action_url=manage_url(appointment.edit_token),
        outro="If your plans changed, please let us know via the link above.",
    )
    return f"Reminder: your appointment at {settings.STORE_NAME}", html_content, plain_text


def cancellation_email(appointment: Appointment) -> Tuple[str, str, str]:
    html_content, plain_text = _render(
        title="Appointment Cancelled",
        accent="#c62828",
        customer_name=appointment.customer_name,
        intro="Your appointment below has been cancelled.",
        appointment=appointment,
        action_label="Book a new appointment",
        action_url=booking_url(),
        outro="We hope to welcome you another time.",
    )
    return f"Appointment cancelled - {settings.STORE_NAME}", html_content, plain_text


def rescheduled_email(appointment: Appointment) -> Tuple[str, str, str]:
    html_content, plain_text = _render(
        title="Appointment Rescheduled",
        accent="#1565c0",
        customer_name=appointment.customer_name,
        intro="Your appointment has been moved. These are the new details:",
        appointment=appointment,
        action_label="View or change appointment",
        action_url=manage_url(appointment.edit_token),
        outro="Your previous time slot has been released.",
    )
    return f"Appointment rescheduled - {settings.STORE_NAME}", html_content, plain_text


def admin_notification_email(appointment: Appointment) -> Tuple[str, str, str]:
    """Notice to the showroom inbox about a new booking"""
    when = format_appointment_datetime(appointment)
    rows = [
        ("Name", appointment.customer_name),
        ("Email", appointment.customer_email),
        ("Phone", appointment.customer_phone),
        ("Address", appointment.customer_address),
        ("Date & Time", when),
        ("Duration", f"{appointment.duration_minutes} minutes"),
        ("Remarks", appointment.remarks),
    ]
    rows = [(label, value) for label, value in rows if value]

    table = "".join(
        f"""
                    <tr>
                        <td style="padding: 8px 0; color: #666; font-weight: bold;">{escape(label)}:</td>
                        <td style="padding: 8px 0; color: #333;">{escape(str(value))}</td>
                    </tr>"""
        for label, value in rows
    )
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
    </head>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
        <h2 style="color: #333; margin-top: 0;">New appointment</h2>
        <table style="width: 100%; border-collapse: collapse;">{table}
        </table>
        <p style="font-size: 12px; color: #999;">The attached invitation adds this appointment to your calendar.</p>
    </body>
    </html>
    """

    plain_text = "New appointment\n\n" + "\n".join(f"- {label}: {value}" for label, value in rows) + "\n"
    return f"New appointment: {appointment.customer_name}, {when}", html_content, plain_text


APPOINTMENT_TEMPLATES = {
    "confirmation": confirmation_email,
    "reminder": reminder_email,
    "cancellation": cancellation_email,
    "rescheduled": rescheduled_email,
    "admin_notification": admin_notification_email,
}
