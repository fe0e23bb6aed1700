"""
iCalendar (RFC 5545) rendering for the staff calendar subscription and for
the single-event attachments sent with booking emails.

Output depends only on the stored appointments: DTSTAMP comes from each
row's updated_at, so repeated calls return byte-identical documents.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import ExportError, StorageUnavailableError
from app.models.appointment import Appointment
from app.repositories.appointment_repository import AppointmentRepository
from app.schemas.scheduling import AppointmentStatus
from app.utils.clock import as_utc

logger = logging.getLogger(__name__)

PRODID = "-//Showroom//Appointment Scheduling//EN"
LINE_LIMIT = 75
ICS_TIMESTAMP = "%Y%m%dT%H%M%SZ"


def escape_text(value: Optional[str]) -> str:
    """Escape a TEXT property value"""
    if not value:
        return ""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\n")
        .replace("\r", "\n")
        .replace("\n", "\\n")
    )


def quote_param(value: Optional[str]) -> str:
    """Quote a parameter value such as CN; DQUOTE and control characters cannot appear inside"""
    cleaned = "".join(char for char in (value or "") if char != '"' and char >= " " and char != "\x7f")
    return f'"{cleaned}"'


def fold_line(line: str) -> str:
    """Fold a content line at 75 octets without splitting a UTF-8 character"""
    if len(line.encode("utf-8")) <= LINE_LIMIT:
        return line

    parts = []
    current = []
    current_len = 0
    limit = LINE_LIMIT
    for char in line:
        char_len = len(char.encode("utf-8"))
        if current_len + char_len > limit:
            parts.append("".join(current))
            current = []
            current_len = 0
            # Continuation lines start with a space, which counts
            limit = LINE_LIMIT - 1
        current.append(char)
        current_len += char_len
    parts.append("".join(current))
    return "\r\n ".join(parts)


def serialize_lines(lines: Iterable[str]) -> str:
    return "".join(fold_line(line) + "\r\n" for line in lines)


def format_utc(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(ICS_TIMESTAMP)


class CalendarFeedService:
    """Builds VCALENDAR documents from stored appointments"""

    def __init__(
            self,
            appointment_repo: AppointmentRepository,
            tz_name: str,
            store_name: str,
            store_address: str,
            uid_domain: str,
            organizer_email: Optional[str] = None,
            now_fn=None
    ):
        self.appointment_repo = appointment_repo
        self.tz_name = tz_name
        self.store_name = store_name
        self.store_address = store_address
        self.uid_domain = uid_domain
        self.organizer_email = organizer_email
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    @property
    def calendar_name(self) -> str:
        return f"{self.store_name} Appointments"

    @property
    def location(self) -> str:
        return f"{self.store_name}, {self.store_address}"

    def generate_feed(
            self,
            from_date: date,
            to_date: date,
            status: str = AppointmentStatus.CONFIRMED.value
    ) -> str:
        """
        Subscribable feed of every appointment dated in [from_date, to_date]
        with the given status. "completed" selects confirmed appointments
        that have already ended.
        """
        if not isinstance(from_date, date) or isinstance(from_date, datetime) \
                or not isinstance(to_date, date) or isinstance(to_date, datetime):
            raise ExportError("Feed range must be given as dates")
        if to_date < from_date:
            raise ExportError(f"Feed range is inverted: {from_date} > {to_date}")
        try:
            wanted = AppointmentStatus(status)
        except ValueError as e:
            raise ExportError(f"Unknown appointment status: {status}") from e

        tz = self._zone()
        stored_status = AppointmentStatus.CONFIRMED if wanted == AppointmentStatus.COMPLETED else wanted

        try:
            appointments = self.appointment_repo.list_by_range(from_date, to_date, stored_status.value)
        except StorageUnavailableError:
            raise
        except Exception as e:
            raise ExportError(f"Could not load appointments for feed: {e}") from e

        if wanted == AppointmentStatus.COMPLETED:
            now = self._now_fn()
            appointments = [a for a in appointments if self._ends_at(a, tz) <= now]

        lines = [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            f"PRODID:{PRODID}",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            f"X-WR-CALNAME:{escape_text(self.calendar_name)}",
            f"X-WR-TIMEZONE:{self.tz_name}",
        ]
        for appointment in appointments:
            lines.extend(self._event_lines(appointment, tz))
        lines.append("END:VCALENDAR")

        logger.debug(f"Generated calendar feed with {len(appointments)} events ({from_date} - {to_date})")
        return serialize_lines(lines)

    def generate_event_ics(self, appointment: Appointment, method: str = "REQUEST") -> str:
        """Single-event calendar for email attachments (REQUEST or CANCEL)"""
        tz = self._zone()
        cancelled = method == "CANCEL"

        event = self._event_lines(appointment, tz, cancelled=cancelled)
        # Organizer, attendee and sequence go before END:VEVENT
        extra = [f"SEQUENCE:{1 if cancelled else 0}"]
        if self.organizer_email:
            extra.append(f"ORGANIZER;CN={quote_param(self.store_name)}:mailto:{self.organizer_email}")
        extra.append(
            f"ATTENDEE;CN={quote_param(appointment.customer_name)};RSVP=TRUE:mailto:{appointment.customer_email}"
        )

        lines = [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            f"PRODID:{PRODID}",
            "CALSCALE:GREGORIAN",
            f"METHOD:{method}",
            *event[:-1],
            *extra,
            event[-1],
            "END:VCALENDAR",
        ]
        return serialize_lines(lines)

    @staticmethod
    def event_filename(appointment: Appointment) -> str:
        return f"appointment-{appointment.appointment_date.strftime('%Y%m%d')}.ics"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.tz_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ExportError(f"Unknown business timezone: {self.tz_name}") from e

    @staticmethod
    def _starts_at(appointment: Appointment, tz: ZoneInfo) -> datetime:
        return datetime.combine(appointment.appointment_date, appointment.appointment_time, tzinfo=tz)

    def _ends_at(self, appointment: Appointment, tz: ZoneInfo) -> datetime:
        return self._starts_at(appointment, tz) + timedelta(minutes=appointment.duration_minutes)

    def _event_lines(self, appointment: Appointment, tz: ZoneInfo, cancelled: bool = False) -> List[str]:
        starts_at = self._starts_at(appointment, tz)
        stamp = as_utc(appointment.updated_at or appointment.created_at)
        is_cancelled = cancelled or appointment.status == AppointmentStatus.CANCELLED.value

        summary = f"Appointment: {appointment.customer_name}"
        if is_cancelled:
            summary = f"CANCELLED: {summary}"

        details = [
            f"Customer: {appointment.customer_name}",
            f"Email: {appointment.customer_email}",
        ]
        if appointment.customer_phone:
            details.append(f"Phone: {appointment.customer_phone}")
        if appointment.customer_address:
            details.append(f"Address: {appointment.customer_address}")
        if appointment.remarks:
            details.append(f"Remarks: {appointment.remarks}")
        description = "\n".join(details)

        return [
            "BEGIN:VEVENT",
            f"UID:appointment-{appointment.id}@{self.uid_domain}",
            f"DTSTAMP:{format_utc(stamp)}",
            f"DTSTART:{format_utc(starts_at)}",
            f"DTEND:{format_utc(self._ends_at(appointment, tz))}",
            f"SUMMARY:{escape_text(summary)}",
            f"DESCRIPTION:{escape_text(description)}",
            f"LOCATION:{escape_text(self.location)}",
            f"STATUS:{'CANCELLED' if is_cancelled else 'CONFIRMED'}",
            "END:VEVENT",
        ]
