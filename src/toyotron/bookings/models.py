"""Booking request shapes accepted at the HTTP and tool boundaries."""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from toyotron.errors import BookingError


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class VehicleReference(_CamelModel):
    # Left loose on purpose; BookingService reports bad ids with its own message
    trim_id: Optional[Union[int, float, str]] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    trim: Optional[str] = None


class BookingRequest(_CamelModel):
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    preferred_location: Optional[str] = None
    booking_date_time: Optional[str] = None
    vehicle: Optional[VehicleReference] = None

    def to_payload(self) -> dict[str, Any]:
        """camelCase JSON body for the bookings endpoint."""
        return self.model_dump(by_alias=True, mode="json")


class BookingEnvelope(BaseModel):
    """Voice-agent style body: the payload wrapped under ``args``."""

    model_config = ConfigDict(extra="ignore")

    args: BookingRequest


def resolve_booking_payload(body: Any) -> Optional[BookingRequest]:
    """Resolve an enveloped or bare booking body into one BookingRequest.

    Returns None for an empty body. Raises BookingError(400) when the body
    is present but not shaped like a booking.
    """
    if body is None:
        return None
    if not isinstance(body, dict):
        raise BookingError("Invalid request body.", status=400)
    try:
        if isinstance(body.get("args"), dict):
            return BookingEnvelope.model_validate(body).args
        return BookingRequest.model_validate(body)
    except ValidationError as e:
        raise BookingError("Invalid request body.", status=400) from e
