"""Data models for storage layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class UserProfile:
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class UserPreferences:
    """Quiz answers; budgets are stored in cents."""

    budget_min: Optional[int] = None
    budget_max: Optional[int] = None
    car_types: list[str] = field(default_factory=list)
    seats: Optional[int] = None
    mpg_priority: Optional[str] = None
    use_case: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class BookingRecord:
    id: int
    user_id: str
    car_id: int
    preferred_location: str
    booking_date: str
    status: str = "pending"  # "pending" | "confirmed" | "cancelled"
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[int] = None
    vehicle_trim: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
