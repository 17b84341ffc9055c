"""Booking confirmation email with a calendar invite attached."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from html import escape
from typing import Any, Optional

from toyotron.config import BookingConfig
from toyotron.log import get_logger
from toyotron.notifications.calendar import IcsEvent, build_ics, ics_filename
from toyotron.notifications.email import Attachment, ResendMailer

logger = get_logger(__name__)


@dataclass
class BookingDetails:
    contact_name: str
    contact_email: str
    contact_phone: str
    preferred_location: str
    start: datetime
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[int] = None
    vehicle_trim: Optional[str] = None

    @property
    def vehicle_display(self) -> str:
        parts = [
            str(self.vehicle_year) if self.vehicle_year else None,
            self.vehicle_make,
            self.vehicle_model,
            self.vehicle_trim,
        ]
        return " ".join(p for p in parts if p) or "your selected vehicle"


def format_when(moment: datetime) -> str:
    """e.g. 'Tuesday, March 4, 2025 at 10:00 AM'."""
    return f"{moment:%A, %B} {moment.day}, {moment:%Y at %I:%M %p}"


class BookingConfirmation:
    def __init__(self, mailer: ResendMailer, booking_config: BookingConfig, organizer_email: str):
        self._mailer = mailer
        self._booking = booking_config
        self._organizer_email = organizer_email

    @property
    def configured(self) -> bool:
        return self._mailer.configured

    def location_display(self, code: str) -> str:
        return self._booking.locations.get(code, code)

    def render_html(self, details: BookingDetails) -> str:
        rows = (
            ("Vehicle", details.vehicle_display),
            ("Date & Time", format_when(details.start)),
            ("Location", self.location_display(details.preferred_location)),
            ("Your Contact", details.contact_phone),
        )
        detail_html = "\n  ".join(
            f"<p><strong>{escape(label)}</strong><br>{escape(value)}</p>" for label, value in rows
        )
        return f"""<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: sans-serif; color: #333;">
  <h1>Test Drive Scheduled</h1>
  <p>Hi {escape(details.contact_name)},</p>
  <p>Great! We've confirmed your test drive appointment. Here are the details:</p>
  {detail_html}
  <p>We've attached a calendar file (.ics) to this email. Open it to add this appointment
  to Google Calendar, Outlook, Apple Calendar, or any other calendar app.</p>
  <p>If you need to reschedule or cancel your appointment, please contact us directly.</p>
  <p>The Toyotron Team</p>
</body>
</html>"""

    def build_invite(self, details: BookingDetails) -> Attachment:
        end = details.start + timedelta(minutes=self._booking.duration_minutes)
        vehicle = details.vehicle_display
        event = IcsEvent(
            title=f"Test Drive: {vehicle}",
            description=f"Test drive appointment for {vehicle}. Please arrive 10 minutes early.",
            start=details.start,
            end=end,
            location=self.location_display(details.preferred_location),
            attendee_email=details.contact_email,
            attendee_name=details.contact_name,
            organizer_email=self._organizer_email,
        )
        content = build_ics(event, calendar_tz=self._booking.timezone)
        filename = ics_filename(
            f"{details.vehicle_make or 'toyota'}-{details.vehicle_model or 'vehicle'}", details.start
        )
        return Attachment(filename=filename, content=content.encode("utf-8"), content_type="text/calendar")

    async def send(self, details: BookingDetails) -> dict[str, Any]:
        """Email the confirmation. Raises ConfigurationError or MailerError."""
        result = await self._mailer.send_html(
            to=details.contact_email,
            subject=f"Test Drive Confirmed: {details.vehicle_display}",
            html=self.render_html(details),
            attachments=[self.build_invite(details)],
        )
        logger.info("booking_confirmation_sent", to=details.contact_email)
        return result
