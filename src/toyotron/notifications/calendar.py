"""iCalendar (.ics) generation for test-drive appointments."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

# RFC 5545 content lines are limited to 75 octets, excluding the CRLF
MAX_LINE_OCTETS = 75

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]+")


@dataclass
class IcsEvent:
    title: str
    description: str
    start: datetime
    end: datetime
    location: str
    attendee_email: str
    attendee_name: str
    organizer_email: str = "bookings@toyotron.local"
    organizer_name: str = "Toyotron Test Drive"
    uid: str = field(default_factory=lambda: f"test-drive-{uuid.uuid4().hex}@toyotron.local")


def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\r", "\\n")
        .replace("\n", "\\n")
    )


def param_value(value: str) -> str:
    """Quoted parameter value, e.g. for CN. DQUOTE and control characters are not allowed inside."""
    cleaned = _CONTROL_CHARS.sub(" ", value).replace('"', "'").strip()
    return f'"{cleaned}"'


def fold_line(line: str) -> str:
    """Split a content line into 75-octet chunks joined by CRLF plus a space."""
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line
    chunks: list[str] = []
    current = ""
    limit = MAX_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            chunks.append(current)
            current = ""
            # continuation lines start with a space, which counts toward the limit
            limit = MAX_LINE_OCTETS - 1
        current += char
    chunks.append(current)
    return "\r\n ".join(chunks)


def to_ics_utc(moment: datetime) -> str:
    """YYYYMMDDTHHMMSSZ. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def build_ics(event: IcsEvent, now: Optional[datetime] = None, calendar_tz: str = "America/Chicago") -> str:
    stamp = to_ics_utc(now or datetime.now(timezone.utc))
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Toyotron//Test Drive Scheduler//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "X-WR-CALNAME:Toyotron Test Drive",
        f"X-WR-TIMEZONE:{calendar_tz}",
        "BEGIN:VEVENT",
        f"UID:{event.uid}",
        f"DTSTAMP:{stamp}",
        f"DTSTART:{to_ics_utc(event.start)}",
        f"DTEND:{to_ics_utc(event.end)}",
        f"SUMMARY:{escape_text(event.title)}",
        f"DESCRIPTION:{escape_text(event.description)}",
        f"LOCATION:{escape_text(event.location)}",
        f"ATTENDEE;CN={param_value(event.attendee_name)};RSVP=TRUE;PARTSTAT=NEEDS-ACTION:"
        f"mailto:{event.attendee_email}",
        f"ORGANIZER;CN={param_value(event.organizer_name)}:mailto:{event.organizer_email}",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        "BEGIN:VALARM",
        "TRIGGER:-PT15M",
        "ACTION:DISPLAY",
        "DESCRIPTION:Test Drive Reminder",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"


def ics_filename(vehicle: str, start: datetime) -> str:
    slug = re.sub(r"\s+", "-", vehicle.strip()).lower()
    return f"test-drive-{slug}-{start.date().isoformat()}.ics"
