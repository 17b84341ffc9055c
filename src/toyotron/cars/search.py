"""Trim search executor: filters, sorting, budget post-filter, and row repair."""

from __future__ import annotations

from toyotron.cars.models import CarCard, SearchCriteria, SearchResult
from toyotron.cars.repair import repair_row
from toyotron.errors import StoreError
from toyotron.log import get_logger
from toyotron.storage.vehicle_repo import VehicleQuery, VehicleRepository

logger = get_logger(__name__)

SORT_COLUMNS = {
    "msrp": "msrp",
    "mpg": "combined_mpg",
    "horsepower": "horsepower_hp",
    "model": "model",
}

TEXT_SEARCH_COLUMNS = ("make", "model", "trim", "submodel", "description")

# Over-fetch factor when the budget filter runs after the query
BUDGET_OVERFETCH = 2


def build_query(criteria: SearchCriteria) -> VehicleQuery:
    """Translate search criteria into store predicates (budget excluded)."""
    query = VehicleQuery()

    if criteria.q:
        query.any_ilike(TEXT_SEARCH_COLUMNS, criteria.q)

    for column, value in (
        ("model", criteria.model),
        ("trim", criteria.trim),
        ("body_type", criteria.body_type),
        ("drive_type", criteria.drive_type),
        ("transmission", criteria.transmission),
        ("fuel_type", criteria.fuel_type),
        ("engine_type", criteria.engine_type),
    ):
        if value:
            query.ilike(column, value)

    if criteria.model_year:
        query.eq("model_year", criteria.model_year)
    if criteria.cylinders:
        query.eq("cylinders", criteria.cylinders)

    # Zero minimums are ignored so they do not drop rows with unknown values
    for column, minimum in (
        ("body_seats", criteria.seats_min),
        ("horsepower_hp", criteria.hp_min),
        ("torque_ft_lbs", criteria.torque_min),
        ("combined_mpg", criteria.mpg_combined_min),
        ("city_mpg", criteria.mpg_city_min),
        ("highway_mpg", criteria.mpg_highway_min),
    ):
        if minimum:
            query.gte(column, minimum)

    fetch_limit = criteria.limit * BUDGET_OVERFETCH if criteria.has_budget else criteria.limit
    query.order(SORT_COLUMNS[criteria.sort_by], ascending=criteria.sort_dir == "asc")
    query.limit(fetch_limit)
    return query


def within_budget(car: CarCard, criteria: SearchCriteria) -> bool:
    price = car.price
    if price is None:
        return False
    if criteria.budget_min is not None and price < criteria.budget_min:
        return False
    if criteria.budget_max is not None and price > criteria.budget_max:
        return False
    return True


def _price_sort_key(car: CarCard) -> float:
    price = car.price
    return price if price is not None else float("inf")


async def search_trims(repo: VehicleRepository, criteria: SearchCriteria) -> SearchResult:
    """Run a trim search. Store failures degrade to an empty result."""
    query = build_query(criteria)
    try:
        rows = await repo.select(query)
    except StoreError as e:
        logger.error("search_query_failed", error=str(e))
        return SearchResult()

    items = [repair_row(row) for row in rows]

    if criteria.has_budget:
        items = [car for car in items if within_budget(car, criteria)]
        if criteria.sort_by == "msrp":
            # Store order used msrp alone; invoice-priced rows need re-placing
            items.sort(key=_price_sort_key, reverse=criteria.sort_dir == "desc")

    items = items[: criteria.limit]
    logger.debug(
        "search_completed",
        fetched=len(rows),
        returned=len(items),
        budget=criteria.has_budget,
    )
    return SearchResult.of(items)
