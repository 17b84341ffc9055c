"""Trim search tool backed by the vehicle store."""

from __future__ import annotations

from typing import Any

from toyotron.ai.tools.base import Tool, ToolContext
from toyotron.cars.models import SearchCriteria
from toyotron.cars.search import search_trims
from toyotron.log import get_logger
from toyotron.storage.vehicle_repo import VehicleRepository

logger = get_logger(__name__)

SEARCH_TOOL_NAME = "searchToyotaTrims"


class SearchToyotaTrimsTool(Tool):
    """Search and filter trim specifications."""

    input_model = SearchCriteria

    def __init__(self, vehicles: VehicleRepository):
        self._vehicles = vehicles

    @property
    def name(self) -> str:
        return SEARCH_TOOL_NAME

    @property
    def description(self) -> str:
        return (
            "Search and filter Toyota trim specifications from the database. Use this to "
            "find cars matching user preferences or search criteria. Budgets are in dollars. "
            "Returns up to 24 results."
        )

    def invalid_arguments(self, details: list[dict[str, Any]]) -> dict[str, Any]:
        return {**super().invalid_arguments(details), "items": []}

    async def execute(self, params: SearchCriteria, context: ToolContext) -> dict[str, Any]:
        result = await search_trims(self._vehicles, params)
        context.seen_trim_ids.update(car.trim_id for car in result.items)
        logger.info(
            "trims_searched",
            criteria=params.model_dump(exclude_none=True, by_alias=True),
            count=result.count,
        )
        return result.model_dump()
