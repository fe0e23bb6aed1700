"""Tests for iCalendar rendering of the staff feed and email attachments."""

import unittest
from datetime import date, datetime

from app.core.exceptions import ExportError
from app.repositories.appointment_repository import AppointmentRepository
from app.services.calendar.ics_feed_service import (
    CalendarFeedService,
    escape_text,
    fold_line,
    quote_param,
)

from scheduling_helpers import (
    MONDAY,
    TUESDAY,
    TZ,
    add_appointment,
    fixed_clock,
    memory_engine,
    session_factory,
)

DECEMBER = (date(2025, 12, 1), date(2025, 12, 31))


def unfold(document: str) -> str:
    return document.replace("\r\n ", "")


def content_lines(document: str):
    return unfold(document).split("\r\n")


class TextEncodingTests(unittest.TestCase):
    """Validate escaping and line folding."""

    def test_escapes_special_characters(self) -> None:
        self.assertEqual(escape_text("a\\b;c,d\ne"), "a\\\\b\\;c\\,d\\ne")
        self.assertEqual(escape_text("line\r\nbreak"), "line\\nbreak")
        self.assertEqual(escape_text(None), "")

    def test_parameter_values_are_quoted(self) -> None:
        self.assertEqual(quote_param("Doe, John"), '"Doe, John"')
        self.assertEqual(quote_param('Say "hi"\nnow'), '"Say hinow"')
        self.assertEqual(quote_param(None), '""')

    def test_short_lines_are_untouched(self) -> None:
        self.assertEqual(fold_line("SUMMARY:Short"), "SUMMARY:Short")

    def test_ascii_line_folds_at_75_octets(self) -> None:
        folded = fold_line("DESCRIPTION:" + "x" * 200)
        parts = folded.split("\r\n")

        self.assertEqual(len(parts[0]), 75)
        for part in parts[1:]:
            self.assertTrue(part.startswith(" "))
            self.assertLessEqual(len(part.encode("utf-8")), 75)
        self.assertEqual(unfold(folded), "DESCRIPTION:" + "x" * 200)

    def test_multibyte_characters_are_never_split(self) -> None:
        line = "SUMMARY:" + "é€" * 60
        folded = fold_line(line)

        for part in folded.split("\r\n"):
            encoded = part.encode("utf-8")
            self.assertLessEqual(len(encoded), 75)
            encoded.decode("utf-8")
        self.assertEqual(unfold(folded), line)


class FeedTestCase(unittest.TestCase):

    def setUp(self) -> None:
        self.engine = memory_engine()
        self.db = session_factory(self.engine)()
        self.clock = fixed_clock()
        self.service = self.build_service()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def build_service(self, tz_name="Europe/Brussels") -> CalendarFeedService:
        return CalendarFeedService(
            appointment_repo=AppointmentRepository(self.db),
            tz_name=tz_name,
            store_name="Showroom",
            store_address="Eikenlei 159, 2960 Brecht",
            uid_domain="showroom.example.com",
            organizer_email="afspraken@example.com",
            now_fn=self.clock.now,
        )


class CalendarFeedTests(FeedTestCase):
    """Validate the subscribable feed."""

    def test_empty_feed_is_a_valid_calendar(self) -> None:
        lines = content_lines(self.service.generate_feed(*DECEMBER))

        self.assertEqual(lines[0], "BEGIN:VCALENDAR")
        self.assertIn("VERSION:2.0", lines)
        self.assertIn("METHOD:PUBLISH", lines)
        self.assertIn("X-WR-CALNAME:Showroom Appointments", lines)
        self.assertIn("X-WR-TIMEZONE:Europe/Brussels", lines)
        self.assertEqual(lines[-2:], ["END:VCALENDAR", ""])
        self.assertNotIn("BEGIN:VEVENT", lines)

    def test_event_fields(self) -> None:
        appointment = add_appointment(self.db, MONDAY, "10:00", duration=90, customer_phone="+32470123456")

        lines = content_lines(self.service.generate_feed(*DECEMBER))

        self.assertIn(f"UID:appointment-{appointment.id}@showroom.example.com", lines)
        # 10:00 in Brussels is 09:00 UTC in winter
        self.assertIn("DTSTART:20251201T090000Z", lines)
        self.assertIn("DTEND:20251201T103000Z", lines)
        self.assertIn("DTSTAMP:20251101T120000Z", lines)
        self.assertIn("SUMMARY:Appointment: Jan Peeters", lines)
        self.assertIn("LOCATION:Showroom\\, Eikenlei 159\\, 2960 Brecht", lines)
        self.assertIn("STATUS:CONFIRMED", lines)
        self.assertIn(
            "DESCRIPTION:Customer: Jan Peeters\\nEmail: jan@example.com\\nPhone: +32470123456",
            lines,
        )

    def test_description_includes_address(self) -> None:
        add_appointment(
            self.db, MONDAY, "10:00", customer_street="Eikenlei 159", customer_postal_code="2960", customer_city="Brecht"
        )

        lines = content_lines(self.service.generate_feed(*DECEMBER))

        self.assertIn(
            "DESCRIPTION:Customer: Jan Peeters\\nEmail: jan@example.com\\nAddress: Eikenlei 159\\, 2960 Brecht",
            lines,
        )

    def test_summer_time_offset(self) -> None:
        add_appointment(self.db, date(2026, 7, 1), "10:00")

        lines = content_lines(self.service.generate_feed(date(2026, 7, 1), date(2026, 7, 1)))

        self.assertIn("DTSTART:20260701T080000Z", lines)

    def test_output_is_deterministic(self) -> None:
        add_appointment(self.db, MONDAY, "10:00")
        add_appointment(self.db, TUESDAY, "14:00", name="An Claes", remarks="Wants to see the oak table")

        first = self.service.generate_feed(*DECEMBER)
        self.clock.advance(hours=5)
        second = self.service.generate_feed(*DECEMBER)

        self.assertEqual(first, second)

    def test_every_line_ends_with_crlf(self) -> None:
        add_appointment(self.db, MONDAY, "10:00", remarks="Line one\nLine two")

        feed = self.service.generate_feed(*DECEMBER)

        self.assertTrue(feed.endswith("\r\n"))
        self.assertNotIn("\n", feed.replace("\r\n", ""))

    def test_text_values_are_escaped(self) -> None:
        add_appointment(self.db, MONDAY, "10:00", name="Peeters, Jan; Jr", remarks="Sofa\\bank, 3 seats\nGrey")

        lines = content_lines(self.service.generate_feed(*DECEMBER))

        self.assertIn("SUMMARY:Appointment: Peeters\\, Jan\\; Jr", lines)
        description = next(line for line in lines if line.startswith("DESCRIPTION:"))
        self.assertTrue(description.endswith("Remarks: Sofa\\\\bank\\, 3 seats\\nGrey"))

    def test_long_remarks_are_folded(self) -> None:
        remarks = "Interested in the Scandinavian collection, especially chairs. " * 4
        add_appointment(self.db, MONDAY, "10:00", remarks=remarks)

        feed = self.service.generate_feed(*DECEMBER)

        for physical in feed.split("\r\n"):
            self.assertLessEqual(len(physical.encode("utf-8")), 75)

    def test_range_and_status_filters(self) -> None:
        inside = add_appointment(self.db, MONDAY, "10:00")
        add_appointment(self.db, date(2026, 1, 5), "10:00")
        cancelled = add_appointment(self.db, TUESDAY, "10:00", status="cancelled")

        confirmed_feed = unfold(self.service.generate_feed(*DECEMBER))
        cancelled_feed = content_lines(self.service.generate_feed(*DECEMBER, status="cancelled"))

        self.assertEqual(confirmed_feed.count("BEGIN:VEVENT"), 1)
        self.assertIn(f"UID:appointment-{inside.id}@", confirmed_feed)
        self.assertIn(f"UID:appointment-{cancelled.id}@showroom.example.com", cancelled_feed)
        self.assertIn("STATUS:CANCELLED", cancelled_feed)
        self.assertIn("SUMMARY:CANCELLED: Appointment: Jan Peeters", cancelled_feed)

    def test_confirmed_feed_keeps_past_events(self) -> None:
        add_appointment(self.db, date(2025, 11, 20), "10:00")

        feed = self.service.generate_feed(date(2025, 11, 1), date(2025, 11, 30))

        self.assertEqual(feed.count("BEGIN:VEVENT"), 1)

    def test_completed_selects_ended_confirmed_appointments(self) -> None:
        self.clock.frozen = datetime(2025, 12, 1, 12, 0, tzinfo=TZ)
        ended = add_appointment(self.db, MONDAY, "10:00")
        add_appointment(self.db, MONDAY, "11:30")  # still running
        add_appointment(self.db, TUESDAY, "10:00")

        feed = unfold(self.service.generate_feed(*DECEMBER, status="completed"))

        self.assertEqual(feed.count("BEGIN:VEVENT"), 1)
        self.assertIn(f"UID:appointment-{ended.id}@", feed)

    def test_invalid_requests_raise_export_error(self) -> None:
        cases = [
            lambda: self.service.generate_feed(date(2025, 12, 31), date(2025, 12, 1)),
            lambda: self.service.generate_feed(datetime(2025, 12, 1, 0, 0), date(2025, 12, 31)),
            lambda: self.service.generate_feed("2025-12-01", date(2025, 12, 31)),
            lambda: self.service.generate_feed(*DECEMBER, status="pending"),
            lambda: self.build_service(tz_name="Mars/Olympus_Mons").generate_feed(*DECEMBER),
        ]
        for n, call in enumerate(cases):
            with self.subTest(case=n):
                with self.assertRaises(ExportError):
                    call()


class EventAttachmentTests(FeedTestCase):
    """Validate single-event documents attached to emails."""

    def test_request_event(self) -> None:
        appointment = add_appointment(self.db, MONDAY, "10:00")

        lines = content_lines(self.service.generate_event_ics(appointment))

        self.assertIn("METHOD:REQUEST", lines)
        self.assertIn("SEQUENCE:0", lines)
        self.assertIn('ORGANIZER;CN="Showroom":mailto:afspraken@example.com', lines)
        self.assertIn('ATTENDEE;CN="Jan Peeters";RSVP=TRUE:mailto:jan@example.com', lines)
        self.assertLess(lines.index("SEQUENCE:0"), lines.index("END:VEVENT"))
        self.assertLess(lines.index("END:VEVENT"), lines.index("END:VCALENDAR"))

    def test_attendee_name_is_a_quoted_parameter(self) -> None:
        appointment = add_appointment(self.db, MONDAY, "10:00", name='Peeters, Jan "JP"; Jr')

        lines = content_lines(self.service.generate_event_ics(appointment))

        self.assertIn('ATTENDEE;CN="Peeters, Jan JP; Jr";RSVP=TRUE:mailto:jan@example.com', lines)

    def test_cancel_event(self) -> None:
        appointment = add_appointment(self.db, MONDAY, "10:00")

        lines = content_lines(self.service.generate_event_ics(appointment, method="CANCEL"))

        self.assertIn("METHOD:CANCEL", lines)
        self.assertIn("SEQUENCE:1", lines)
        self.assertIn("STATUS:CANCELLED", lines)
        self.assertIn(f"UID:appointment-{appointment.id}@showroom.example.com", lines)

    def test_filename(self) -> None:
        appointment = add_appointment(self.db, date(2025, 12, 24), "10:00")

        self.assertEqual(CalendarFeedService.event_filename(appointment), "appointment-20251224.ics")


if __name__ == "__main__":
    unittest.main()
