"""Tests for calendar invites, the Resend mailer, and booking confirmations."""

import base64
import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import httpx
import pytest

from toyotron.config import BookingConfig, EmailConfig
from toyotron.errors import ConfigurationError, MailerError
from toyotron.notifications.calendar import (
    IcsEvent,
    build_ics,
    escape_text,
    fold_line,
    ics_filename,
    to_ics_utc,
)
from toyotron.notifications.confirmation import BookingConfirmation, BookingDetails, format_when
from toyotron.notifications.email import Attachment, ResendMailer

CHICAGO = ZoneInfo("America/Chicago")
START = datetime(2025, 3, 4, 10, 0, tzinfo=CHICAGO)


def details(**overrides) -> BookingDetails:
    values = dict(
        contact_name="Jane Doe",
        contact_email="jane@example.com",
        contact_phone="214-555-0100",
        preferred_location="downtown",
        start=START,
        vehicle_make="Toyota",
        vehicle_model="RAV4",
        vehicle_year=2024,
        vehicle_trim="LE",
    )
    values.update(overrides)
    return BookingDetails(**values)


class TestCalendar:
    def test_utc_stamps(self):
        assert to_ics_utc(START) == "20250304T160000Z"
        assert to_ics_utc(datetime(2025, 1, 1, 8, 30)) == "20250101T083000Z"

    def test_escape_text(self):
        assert escape_text("a,b;c\\d\ne") == "a\\,b\\;c\\\\d\\ne"

    def test_build_ics(self):
        event = IcsEvent(
            title="Test Drive: 2024 Toyota RAV4 LE",
            description="Arrive early, please.",
            start=START,
            end=datetime(2025, 3, 4, 10, 45, tzinfo=CHICAGO),
            location="Downtown Toyota - 123 Main St, Dallas, TX",
            attendee_email="jane@example.com",
            attendee_name="Jane Doe",
            uid="fixed-uid@toyotron.local",
        )
        ics = build_ics(event, now=datetime(2025, 3, 1, tzinfo=timezone.utc))

        assert ics.startswith("BEGIN:VCALENDAR\r\n")
        assert ics.endswith("END:VCALENDAR\r\n")
        lines = ics.split("\r\n")
        assert "UID:fixed-uid@toyotron.local" in lines
        assert "DTSTAMP:20250301T000000Z" in lines
        assert "DTSTART:20250304T160000Z" in lines
        assert "DTEND:20250304T164500Z" in lines
        assert "LOCATION:Downtown Toyota - 123 Main St\\, Dallas\\, TX" in lines
        assert "DESCRIPTION:Arrive early\\, please." in lines
        assert "TRIGGER:-PT15M" in lines
        assert "X-WR-TIMEZONE:America/Chicago" in lines

    def test_attendee_name_cannot_break_out_of_parameter(self):
        event = IcsEvent(
            title="Test Drive",
            description="",
            start=START,
            end=START,
            location="North",
            attendee_email="jane@example.com",
            attendee_name='Jane "JD" Doe\r\nMETHOD:CANCEL',
            uid="fixed-uid@toyotron.local",
        )
        ics = build_ics(event, now=datetime(2025, 3, 1, tzinfo=timezone.utc))
        unfolded = ics.replace("\r\n ", "")
        lines = unfolded.split("\r\n")

        attendee = next(line for line in lines if line.startswith("ATTENDEE"))
        assert attendee.startswith("ATTENDEE;CN=\"Jane 'JD' Doe METHOD:CANCEL\";RSVP=TRUE")
        assert attendee.endswith("mailto:jane@example.com")
        assert "METHOD:CANCEL" not in lines
        assert all(len(line.encode("utf-8")) <= 75 for line in ics.split("\r\n"))

    def test_long_lines_are_folded(self):
        line = "DESCRIPTION:" + "é" * 80
        folded = fold_line(line)
        parts = folded.split("\r\n")
        assert len(parts) > 1
        assert all(part.startswith(" ") for part in parts[1:])
        assert all(len(part.encode("utf-8")) <= 75 for part in parts)
        assert folded.replace("\r\n ", "") == line
        assert fold_line("UID:short") == "UID:short"

    def test_filename(self):
        assert ics_filename("Toyota RAV4", START) == "test-drive-toyota-rav4-2025-03-04.ics"


class TestResendMailer:
    async def test_not_configured(self):
        mailer = ResendMailer(EmailConfig(resend_api_key=None))
        assert not mailer.configured
        with pytest.raises(ConfigurationError):
            await mailer.send_html("jane@example.com", "Hi", "<p>Hi</p>")
        await mailer.close()

    async def test_posts_message_with_attachment(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers.get("authorization")
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email-123"})

        mailer = ResendMailer(
            EmailConfig(resend_api_key="re_test", from_address="Toyotron <hi@toyotron.test>"),
            transport=httpx.MockTransport(handler),
        )
        result = await mailer.send_html(
            "jane@example.com",
            "Confirmed",
            "<p>See you</p>",
            attachments=[Attachment("invite.ics", b"BEGIN:VCALENDAR", "text/calendar")],
        )

        assert result == {"id": "email-123"}
        assert captured["url"] == "https://api.resend.com/emails"
        assert captured["auth"] == "Bearer re_test"
        body = captured["body"]
        assert body["from"] == "Toyotron <hi@toyotron.test>"
        assert body["to"] == ["jane@example.com"]
        attachment = body["attachments"][0]
        assert attachment["filename"] == "invite.ics"
        assert base64.b64decode(attachment["content"]) == b"BEGIN:VCALENDAR"
        await mailer.close()

    async def test_provider_error(self):
        mailer = ResendMailer(
            EmailConfig(resend_api_key="re_test"),
            transport=httpx.MockTransport(lambda request: httpx.Response(422, text="invalid from")),
        )
        with pytest.raises(MailerError, match="422"):
            await mailer.send_html("jane@example.com", "Hi", "<p>Hi</p>")
        await mailer.close()


class TestBookingConfirmation:
    def test_format_when(self):
        assert format_when(START) == "Tuesday, March 4, 2025 at 10:00 AM"

    def test_vehicle_display_fallback(self):
        assert details(vehicle_make=None, vehicle_model=None, vehicle_year=None, vehicle_trim=None).vehicle_display == (
            "your selected vehicle"
        )

    def test_html_escapes_user_values(self):
        confirmation = BookingConfirmation(ResendMailer(EmailConfig()), BookingConfig(), "bookings@toyotron.test")
        html = confirmation.render_html(details(contact_name="<script>x</script>"))
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Downtown Toyota - 123 Main St, Dallas, TX" in html
        assert "Date &amp; Time" in html

    def test_invite_lasts_configured_duration(self):
        confirmation = BookingConfirmation(ResendMailer(EmailConfig()), BookingConfig(), "bookings@toyotron.test")
        invite = confirmation.build_invite(details())
        text = invite.content.decode("utf-8")
        assert invite.filename == "test-drive-toyota-rav4-2025-03-04.ics"
        assert invite.content_type == "text/calendar"
        assert "DTEND:20250304T164500Z" in text
        assert "ORGANIZER;CN=\"Toyotron Test Drive\":mailto:bookings@toyotron.test" in text

    async def test_send(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email-9"})

        mailer = ResendMailer(EmailConfig(resend_api_key="re_test"), transport=httpx.MockTransport(handler))
        confirmation = BookingConfirmation(mailer, BookingConfig(), "bookings@toyotron.test")
        result = await confirmation.send(details())
        assert result == {"id": "email-9"}
        assert captured["body"]["subject"] == "Test Drive Confirmed: 2024 Toyota RAV4 LE"
        assert captured["body"]["attachments"][0]["content_type"] == "text/calendar"
        await mailer.close()
