"""In-process booking creation following the bookings endpoint contract."""

from __future__ import annotations

from typing import Any, Optional

from toyotron.bookings.models import BookingRequest
from toyotron.errors import BookingError, StoreError
from toyotron.log import get_logger
from toyotron.storage.booking_repo import BookingRepository
from toyotron.storage.models import BookingRecord, UserProfile
from toyotron.storage.vehicle_repo import VehicleRepository

logger = get_logger(__name__)


def parse_trim_id(value: Any) -> Optional[int]:
    """Positive integer trim id, or None when ``value`` is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        try:
            value = float(value) if value else None
        except ValueError:
            return None
        if value is None:
            return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


class BookingService:
    def __init__(self, vehicles: VehicleRepository, bookings: BookingRepository):
        self._vehicles = vehicles
        self._bookings = bookings

    async def create(
        self, user: Optional[UserProfile], request: Optional[BookingRequest]
    ) -> BookingRecord:
        """Validate and persist a test-drive booking. Raises BookingError."""
        if request is None:
            raise BookingError("Request body is required.", status=400)
        if not (request.contact_name and request.contact_email and request.contact_phone):
            raise BookingError("Contact name, email, and phone are required.", status=400)
        if not request.preferred_location:
            raise BookingError("Preferred location is required.", status=400)
        if not request.booking_date_time:
            raise BookingError("Booking date and time are required.", status=400)
        if request.vehicle is None:
            raise BookingError("Vehicle details are required.", status=400)

        trim_id = parse_trim_id(request.vehicle.trim_id)
        if trim_id is None:
            raise BookingError("A valid trim_id must be provided.", status=400)

        if user is None:
            raise BookingError("Unable to verify user.", status=401)

        try:
            car = await self._vehicles.get(trim_id)
        except StoreError as e:
            logger.error("booking_vehicle_lookup_failed", trim_id=trim_id, error=str(e))
            raise BookingError("Unable to locate vehicle in inventory.", status=500) from e
        if car is None:
            raise BookingError(
                "The selected vehicle could not be found. Please choose another model.",
                status=404,
            )

        base = {
            "user_id": user.id,
            "car_id": car["trim_id"],
            "preferred_location": request.preferred_location,
            "booking_date": request.booking_date_time,
            "status": "pending",
        }
        vehicle = request.vehicle
        extended = {
            "contact_name": request.contact_name,
            "contact_email": request.contact_email,
            "contact_phone": request.contact_phone,
            "vehicle_make": vehicle.make,
            "vehicle_model": vehicle.model,
            "vehicle_year": vehicle.year,
            "vehicle_trim": vehicle.trim,
        }

        try:
            record = await self._bookings.create(base, extended)
        except StoreError as e:
            logger.error("booking_insert_failed", user_id=user.id, error=str(e))
            raise BookingError("Unable to create booking. Please try again later.", status=500) from e

        logger.info("booking_created", booking_id=record.id, user_id=user.id, trim_id=trim_id)
        return record

    async def create_booking(
        self, request: BookingRequest, user: UserProfile, access_token: Optional[str] = None
    ) -> dict[str, Any]:
        """Booking backend entry point used by the scheduler tool."""
        record = await self.create(user, request)
        return record.to_dict()
