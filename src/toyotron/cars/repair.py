"""Repair heuristics for rows coming out of the trim-spec table.

Some upstream rows carry the transmission inside ``drive_type`` as a
pseudo-JSON tail, e.g. ``AWD,"transmission":"8-Speed Automatic"``. The
functions here split that tail back out. They only ever move text that is
already present in the row, and running them on clean data is a no-op.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from toyotron.cars.models import CarCard

# Tried in order; the first capture wins.
_EXTRACT_PATTERNS: tuple[re.Pattern[str], ...] = (
    # AWD,"transmission":"8-Speed Automatic"
    re.compile(r"""["']transmission["']\s*:\s*["']([^"']+)["']""", re.IGNORECASE),
    # AWD,\"transmission\":\"8-Speed Automatic\"  (backslashes stored literally)
    re.compile(r"""\\["']transmission\\["']\s*:\s*\\["']([^"']+)\\["']"""),
    # AWD,transmission:"8-Speed Automatic"
    re.compile(r""",\s*transmission\s*:\s*["']([^"']+)["']""", re.IGNORECASE),
    # AWD,transmission:8-Speed Automatic
    re.compile(r"""transmission\s*:\s*([^,"']+)""", re.IGNORECASE),
)

# A separator is optional; the fragment may follow the drive type after a space.
_STRIP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"""[,\s]*\\["']transmission\\["']\s*:\s*\\["'][^"']+\\["']""", re.IGNORECASE),
    re.compile(r"""[,\s]*["']transmission["']\s*:\s*["'][^"']+["']""", re.IGNORECASE),
    re.compile(r"""[,\s]*transmission\s*:\s*["'][^"']+["']""", re.IGNORECASE),
    re.compile(r"""[,\s]*transmission["']?\s*:\s*["']?[^,"']+""", re.IGNORECASE),
)

_TEXT_FIELDS = ("make", "model", "trim", "description", "body_type", "fuel_type", "image_url")


def sanitize_string(value: Any) -> Optional[str]:
    """Trim strings, turn blanks into None, and stringify anything else."""
    if value is None:
        return None
    if not isinstance(value, str):
        return str(value)
    return value.strip() or None


def extract_transmission(drive_type: Optional[str], transmission: Optional[str]) -> Optional[str]:
    """Return the genuine transmission, or one recovered from ``drive_type``."""
    if transmission and transmission.strip():
        return transmission.strip()

    if drive_type:
        for pattern in _EXTRACT_PATTERNS:
            match = pattern.search(drive_type)
            if match and match.group(1).strip():
                return match.group(1).strip()

    return None


def clean_drive_type(drive_type: Optional[str]) -> Optional[str]:
    """Strip any embedded transmission fragment from ``drive_type``."""
    if not drive_type:
        return sanitize_string(drive_type)

    cleaned = drive_type
    for pattern in _STRIP_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return cleaned.strip() or None


def repair_row(row: dict[str, Any]) -> CarCard:
    """Build a display-ready CarCard from a raw store row."""
    drive_type_raw = sanitize_string(row.get("drive_type"))
    transmission_raw = sanitize_string(row.get("transmission"))

    values = dict(row)
    for name in _TEXT_FIELDS:
        values[name] = sanitize_string(row.get(name))
    values["transmission"] = extract_transmission(drive_type_raw, transmission_raw)
    values["drive_type"] = clean_drive_type(drive_type_raw)
    return CarCard.model_validate(values)
