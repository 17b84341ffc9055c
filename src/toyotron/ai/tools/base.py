"""Abstract tool interface for model tool calling."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ValidationError

from toyotron.log import get_logger
from toyotron.storage.models import UserPreferences, UserProfile

logger = get_logger(__name__)

INVALID_PARAMETERS = "Invalid parameters"


@dataclass
class ToolContext:
    """Per-request state passed to every tool call of one chat turn."""

    user: Optional[UserProfile] = None
    access_token: Optional[str] = None
    preferences: Optional[UserPreferences] = None
    # trim_ids returned by searches visible to this turn
    seen_trim_ids: set[int] = field(default_factory=set)


def format_validation_errors(error: ValidationError) -> list[dict[str, Any]]:
    """Compact, JSON-safe view of pydantic errors the model can act on."""
    return [
        {
            "field": ".".join(str(p) for p in err["loc"]) or "(root)",
            "message": err["msg"],
        }
        for err in error.errors()
    ]


class Tool(ABC):
    """Base class for all model-callable tools.

    Subclasses declare ``input_model`` (a pydantic model) and implement
    ``execute``. ``run`` validates raw model arguments first, so ``execute``
    only ever sees schema-valid input.
    """

    input_model: ClassVar[type[BaseModel]]

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name sent to the model."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Natural-language instructions for the model."""
        ...

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema dict describing accepted parameters."""
        return self.input_model.model_json_schema(by_alias=True)

    @abstractmethod
    async def execute(self, params: Any, context: ToolContext) -> dict[str, Any]:
        """Run the tool on validated input and return a JSON-serializable payload."""
        ...

    def invalid_arguments(self, details: list[dict[str, Any]]) -> dict[str, Any]:
        """Payload returned when the model's arguments fail validation."""
        return {"error": INVALID_PARAMETERS, "details": details}

    async def run(self, arguments: Optional[dict[str, Any]], context: ToolContext) -> dict[str, Any]:
        if arguments is None:
            return self.invalid_arguments(
                [{"field": "(root)", "message": "Arguments were not valid JSON"}]
            )
        try:
            params = self.input_model.model_validate(arguments)
        except ValidationError as e:
            details = format_validation_errors(e)
            logger.info("tool_arguments_rejected", tool=self.name, errors=details)
            return self.invalid_arguments(details)
        return await self.execute(params, context)

    def to_api_dict(self) -> dict[str, Any]:
        """Serialize to the Anthropic-style tool definition format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }
