"""Vehicle read model and search contracts."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_SEARCH_LIMIT = 24


class CarCard(BaseModel):
    """Denormalized, display-ready trim record."""

    model_config = ConfigDict(protected_namespaces=(), extra="ignore")

    trim_id: int
    model_year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    description: Optional[str] = None
    msrp: Optional[float] = None
    invoice: Optional[float] = None
    body_type: Optional[str] = None
    body_seats: Optional[int] = None
    drive_type: Optional[str] = None
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    cylinders: Optional[int] = None
    horsepower_hp: Optional[float] = None
    torque_ft_lbs: Optional[float] = None
    combined_mpg: Optional[float] = None
    city_mpg: Optional[float] = None
    highway_mpg: Optional[float] = None
    image_url: Optional[str] = None

    @property
    def price(self) -> Optional[float]:
        """MSRP when known, otherwise invoice."""
        return self.msrp if self.msrp is not None else self.invoice

    @property
    def display_name(self) -> str:
        parts = [str(self.model_year) if self.model_year else None, self.make, self.model, self.trim]
        return " ".join(p for p in parts if p)


class SearchCriteria(BaseModel):
    """Filters accepted by the trim search; immutable once validated."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
        extra="ignore",
    )

    q: Optional[str] = Field(
        default=None,
        description="Search query to match against make, model, trim, submodel, or description",
    )
    model: Optional[str] = Field(
        default=None, description="Specific model name (e.g., Camry, RAV4, Highlander)"
    )
    model_year: Optional[int] = Field(
        default=None, ge=2000, le=2030, description="Model year to filter by"
    )
    trim: Optional[str] = Field(default=None, description="Specific trim level")
    body_type: Optional[str] = Field(
        default=None, description="Body type filter (e.g., SUV, Sedan, Truck, Coupe)"
    )
    seats_min: Optional[int] = Field(default=None, ge=2, le=9, description="Minimum number of seats")
    drive_type: Optional[str] = Field(
        default=None, description="Drive type (e.g., FWD, AWD, RWD, 4WD)"
    )
    transmission: Optional[str] = Field(default=None, description="Transmission type")
    fuel_type: Optional[str] = Field(
        default=None, description="Fuel type (e.g., Gasoline, Hybrid, Electric)"
    )
    engine_type: Optional[str] = Field(
        default=None,
        description=(
            "Engine type (e.g., Electric, Hybrid, Gas). Prefer this over fuelType when "
            "searching for electric, hybrid, or gas vehicles."
        ),
    )
    cylinders: Optional[int] = Field(default=None, ge=3, le=12, description="Number of cylinders")
    hp_min: Optional[int] = Field(default=None, ge=0, description="Minimum horsepower")
    torque_min: Optional[int] = Field(default=None, ge=0, description="Minimum torque (ft-lbs)")
    mpg_combined_min: Optional[float] = Field(default=None, ge=0, description="Minimum combined MPG")
    mpg_city_min: Optional[float] = Field(default=None, ge=0, description="Minimum city MPG")
    mpg_highway_min: Optional[float] = Field(default=None, ge=0, description="Minimum highway MPG")
    budget_min: Optional[float] = Field(
        default=None,
        ge=0,
        description="Minimum price in dollars (prefer msrp, fallback to invoice if msrp unavailable)",
    )
    budget_max: Optional[float] = Field(
        default=None,
        ge=0,
        description="Maximum price in dollars (prefer msrp, fallback to invoice if msrp unavailable)",
    )
    sort_by: Literal["msrp", "mpg", "horsepower", "model"] = Field(
        default="msrp", description="Field to sort by"
    )
    sort_dir: Literal["asc", "desc"] = Field(default="asc", description="Sort direction")
    limit: int = Field(
        default=MAX_SEARCH_LIMIT,
        ge=1,
        le=MAX_SEARCH_LIMIT,
        description="Maximum number of results to return (max 24)",
    )

    @property
    def has_budget(self) -> bool:
        return self.budget_min is not None or self.budget_max is not None


class SearchResult(BaseModel):
    items: list[CarCard] = Field(default_factory=list)
    count: int = 0

    @classmethod
    def of(cls, items: list[CarCard]) -> SearchResult:
        return cls(items=items, count=len(items))
