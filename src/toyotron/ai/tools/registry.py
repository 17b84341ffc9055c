"""Tool registry: the read-only table of tools offered to the model."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Mapping

from toyotron.ai.tools.base import Tool
from toyotron.log import get_logger

if TYPE_CHECKING:
    from toyotron.ai.tools.test_drive import BookingBackend, ConfirmationSender
    from toyotron.config import AppConfig
    from toyotron.storage.vehicle_repo import VehicleRepository

logger = get_logger(__name__)


class ToolRegistry:
    """Registry of all available tools, fixed at construction.

    Built once at startup and shared by reference between requests.
    Iteration order is registration order.
    """

    def __init__(self, tools: Iterable[Tool]):
        table: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in table:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            table[tool.name] = tool
            logger.info("tool_registered", tool_name=tool.name)
        self._tools: Mapping[str, Tool] = MappingProxyType(table)
        self._definitions = tuple(tool.to_api_dict() for tool in table.values())

    @property
    def tools(self) -> Mapping[str, Tool]:
        return self._tools

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def all_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def api_definitions(self) -> list[dict[str, Any]]:
        """Tool definitions in the order they were registered."""
        return list(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)


def build_registry(
    config: AppConfig,
    vehicles: VehicleRepository,
    bookings: BookingBackend,
    confirmations: ConfirmationSender | None,
) -> ToolRegistry:
    """Construct the built-in tools with their collaborators."""
    from toyotron.ai.tools.display import DisplayCarRecommendationsTool
    from toyotron.ai.tools.finance import EstimateFinancingTool
    from toyotron.ai.tools.search import SearchToyotaTrimsTool
    from toyotron.ai.tools.test_drive import ScheduleTestDriveTool

    return ToolRegistry(
        [
            SearchToyotaTrimsTool(vehicles),
            DisplayCarRecommendationsTool(),
            ScheduleTestDriveTool(
                vehicles=vehicles,
                bookings=bookings,
                confirmations=confirmations,
                booking_config=config.booking,
                public_url=config.public_url,
            ),
            EstimateFinancingTool(),
        ]
    )
