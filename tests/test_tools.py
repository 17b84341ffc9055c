"""Tests for the tool registry, search tool, and recommendation display tool."""

import pytest

from toyotron.ai.tools.base import INVALID_PARAMETERS, ToolContext
from toyotron.ai.tools.display import SEARCH_FIRST_ERROR, DisplayCarRecommendationsTool
from toyotron.ai.tools.finance import EstimateFinancingTool
from toyotron.ai.tools.registry import ToolRegistry, build_registry
from toyotron.ai.tools.search import SEARCH_TOOL_NAME, SearchToyotaTrimsTool
from toyotron.bookings.service import BookingService


@pytest.fixture
def registry(config, vehicles, booking_repo):
    return build_registry(config, vehicles, BookingService(vehicles, booking_repo), None)


class TestRegistry:
    async def test_registration_order(self, registry):
        assert registry.names() == [
            "searchToyotaTrims",
            "displayCarRecommendations",
            "scheduleTestDrive",
            "estimateFinancing",
        ]
        assert [d["name"] for d in registry.api_definitions()] == registry.names()

    async def test_definitions_carry_json_schema(self, registry):
        search = registry.api_definitions()[0]
        props = search["input_schema"]["properties"]
        assert "bodyType" in props
        assert "budgetMax" in props
        assert props["limit"]["maximum"] == 24

    async def test_read_only(self, registry):
        with pytest.raises(TypeError):
            registry.tools["extra"] = EstimateFinancingTool()
        assert "extra" not in registry
        assert len(registry) == 4

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate tool name"):
            ToolRegistry([EstimateFinancingTool(), EstimateFinancingTool()])

    async def test_lookup(self, registry):
        assert registry.get("estimateFinancing").name == "estimateFinancing"
        assert registry.get("nope") is None


class TestSearchTool:
    async def test_returns_items_and_records_seen_ids(self, vehicles):
        tool = SearchToyotaTrimsTool(vehicles)
        context = ToolContext()
        output = await tool.run({"bodyType": "SUV", "budgetMax": 40000}, context)
        assert [item["trim_id"] for item in output["items"]] == [4, 1, 2]
        assert output["count"] == 3
        assert context.seen_trim_ids == {1, 2, 4}

    @pytest.mark.parametrize(
        "arguments",
        [{"seatsMin": 1}, {"modelYear": 1999}, {"limit": 25}, {"sortBy": "price"}],
    )
    async def test_schema_violations_are_structured(self, vehicles, arguments):
        output = await SearchToyotaTrimsTool(vehicles).run(arguments, ToolContext())
        assert output["error"] == INVALID_PARAMETERS
        assert output["items"] == []
        assert output["details"]

    async def test_unparseable_arguments(self, vehicles):
        output = await SearchToyotaTrimsTool(vehicles).run(None, ToolContext())
        assert output["error"] == INVALID_PARAMETERS
        assert output["details"][0]["message"] == "Arguments were not valid JSON"


class TestDisplayTool:
    async def test_passes_through_searched_items(self):
        context = ToolContext(seen_trim_ids={1, 2})
        items = [
            {"trim_id": 1, "model": "RAV4", "drive_type": "AWD"},
            {"trim_id": 2, "model": "RAV4 Hybrid", "drive_type": 'AWD,"transmission":"CVT"'},
        ]
        output = await DisplayCarRecommendationsTool().run({"items": items}, context)
        assert output["count"] == 2
        assert [item["trim_id"] for item in output["items"]] == [1, 2]
        assert output["items"][1]["drive_type"] == "AWD"
        assert output["items"][1]["transmission"] == "CVT"

    async def test_empty_items_rejected(self):
        output = await DisplayCarRecommendationsTool().run({"items": []}, ToolContext())
        assert output["error"] == SEARCH_FIRST_ERROR
        assert output["items"] == []
        assert output["count"] == 0

    async def test_missing_items_rejected(self):
        output = await DisplayCarRecommendationsTool().run({}, ToolContext())
        assert output["error"] == SEARCH_FIRST_ERROR

    async def test_more_than_three_rejected(self):
        context = ToolContext(seen_trim_ids={1, 2, 3, 4})
        items = [{"trim_id": i} for i in (1, 2, 3, 4)]
        output = await DisplayCarRecommendationsTool().run({"items": items}, context)
        assert output["error"] == SEARCH_FIRST_ERROR
        assert output["count"] == 0

    async def test_unsearched_trim_rejected(self):
        context = ToolContext(seen_trim_ids={1})
        items = [{"trim_id": 1}, {"trim_id": 99, "model": "Supra"}]
        output = await DisplayCarRecommendationsTool().run({"items": items}, context)
        assert output == {"error": SEARCH_FIRST_ERROR, "items": [], "count": 0}

    async def test_search_then_display(self, vehicles):
        context = ToolContext()
        found = await SearchToyotaTrimsTool(vehicles).run({"q": "hybrid"}, context)
        output = await DisplayCarRecommendationsTool().run({"items": found["items"][:1]}, context)
        assert output["count"] == 1
        assert output["items"][0]["trim_id"] == found["items"][0]["trim_id"]


async def test_search_tool_name_constant(vehicles):
    assert SearchToyotaTrimsTool(vehicles).name == SEARCH_TOOL_NAME
