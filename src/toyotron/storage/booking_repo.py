"""Test-drive booking persistence with a reduced-field fallback insert."""

from __future__ import annotations

from typing import Any

import aiosqlite

from toyotron.errors import StoreError
from toyotron.log import get_logger
from toyotron.storage.database import Database
from toyotron.storage.models import BookingRecord

logger = get_logger(__name__)

_BOOKING_FIELDS = (
    "id",
    "user_id",
    "car_id",
    "preferred_location",
    "booking_date",
    "status",
    "contact_name",
    "contact_email",
    "contact_phone",
    "vehicle_make",
    "vehicle_model",
    "vehicle_year",
    "vehicle_trim",
    "created_at",
)


class BookingRepository:
    def __init__(self, db: Database):
        self._db = db

    async def create(self, base: dict[str, Any], extended: dict[str, Any]) -> BookingRecord:
        """Insert ``base`` + ``extended`` columns; retry with ``base`` only if that fails.

        Older deployments of the bookings table lack the contact/vehicle columns,
        so the extended insert is allowed to fail once.
        """
        try:
            booking_id = await self._insert({**base, **extended})
        except aiosqlite.Error as e:
            logger.warning("booking_extended_insert_failed", error=str(e))
            try:
                booking_id = await self._insert(base)
            except aiosqlite.Error as fallback_error:
                raise StoreError(f"Booking insert failed: {fallback_error}") from fallback_error
        return await self.get(booking_id)

    async def get(self, booking_id: int) -> BookingRecord:
        try:
            cursor = await self._db.conn.execute(
                "SELECT * FROM test_drive_bookings WHERE id = ?", (booking_id,)
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Booking lookup failed: {e}") from e
        if row is None:
            raise StoreError(f"Booking {booking_id} disappeared after insert")
        keys = row.keys()
        return BookingRecord(**{k: row[k] for k in _BOOKING_FIELDS if k in keys})

    async def _insert(self, values: dict[str, Any]) -> int:
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = await self._db.conn.execute(
            f"INSERT INTO test_drive_bookings ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        await self._db.conn.commit()
        return cursor.lastrowid  # type: ignore[return-value]
