"""HTTP client for a remote bookings endpoint."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from toyotron.bookings.models import BookingRequest
from toyotron.errors import BookingError
from toyotron.log import get_logger
from toyotron.storage.models import UserProfile

logger = get_logger(__name__)

GENERIC_FAILURE = "Failed to create booking."


class BookingClient:
    """POSTs bookings to ``{base_url}/api/bookings`` on behalf of the signed-in user."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/api/bookings"

    async def create_booking(
        self, request: BookingRequest, user: UserProfile, access_token: Optional[str] = None
    ) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = await self._http.post(
                self.endpoint, json=request.to_payload(), headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("booking_request_failed", endpoint=self.endpoint, error=str(e))
            raise BookingError(f"{GENERIC_FAILURE} {e}".strip(), status=502) from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            message = data.get("message") if isinstance(data, dict) else None
            logger.warning(
                "booking_rejected", status=response.status_code, message=message, user_id=user.id
            )
            raise BookingError(message or GENERIC_FAILURE, status=response.status_code)

        booking = data.get("booking") if isinstance(data, dict) else None
        if not isinstance(booking, dict):
            raise BookingError(GENERIC_FAILURE, status=502)
        return booking

    async def close(self) -> None:
        await self._http.aclose()
