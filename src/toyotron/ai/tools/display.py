"""Recommendation display tool: a validated pass-through of prior search results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from toyotron.ai.tools.base import Tool, ToolContext
from toyotron.cars.models import CarCard
from toyotron.cars.repair import repair_row
from toyotron.log import get_logger

logger = get_logger(__name__)

MAX_RECOMMENDATIONS = 3

SEARCH_FIRST_ERROR = (
    "Items array is required and must contain 1-3 car objects from searchToyotaTrims "
    "results. You must call searchToyotaTrims first and pass the exact items it returned."
)


class DisplayInput(BaseModel):
    items: list[CarCard] = Field(
        min_length=1,
        max_length=MAX_RECOMMENDATIONS,
        description=(
            "REQUIRED: Array of car objects from searchToyotaTrims results. Must contain "
            "1-3 items. Each item must have trim_id, model, make, and other car properties."
        ),
    )


class DisplayCarRecommendationsTool(Tool):
    """Marks 1-3 searched cars for display as cards.

    Performs no lookup. Every trim_id must have come out of a search visible
    to the current turn, otherwise the call is rejected.
    """

    input_model = DisplayInput

    @property
    def name(self) -> str:
        return "displayCarRecommendations"

    @property
    def description(self) -> str:
        return (
            "Display up to 3 car recommendations as visual cards in the chat interface. "
            "IMPORTANT: You MUST first call searchToyotaTrims to get car results, then select "
            "1-3 items from the 'items' array in the search results, and pass those exact "
            "items to this tool. The items parameter is REQUIRED and must be an array of car "
            "objects from the searchToyotaTrims results."
        )

    def invalid_arguments(self, details: list[dict[str, Any]]) -> dict[str, Any]:
        return {"error": SEARCH_FIRST_ERROR, "details": details, "items": [], "count": 0}

    async def execute(self, params: DisplayInput, context: ToolContext) -> dict[str, Any]:
        unseen = [car.trim_id for car in params.items if car.trim_id not in context.seen_trim_ids]
        if unseen:
            logger.warning("display_without_search", trim_ids=unseen)
            return {"error": SEARCH_FIRST_ERROR, "items": [], "count": 0}

        items = [repair_row(car.model_dump()) for car in params.items]
        return {"items": [car.model_dump() for car in items], "count": len(items)}
