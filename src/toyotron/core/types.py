"""Shared types and enumerations."""

from __future__ import annotations

from enum import StrEnum


class ToolCallState(StrEnum):
    INPUT_AVAILABLE = "input-available"
    OUTPUT_AVAILABLE = "output-available"
    OUTPUT_ERROR = "output-error"


class EventType(StrEnum):
    TEXT = "text"
    TOOL = "tool"
    FINISH = "finish"


class FinishReason(StrEnum):
    STOP = "stop"
    STEP_LIMIT = "step-limit"
    CANCELLED = "cancelled"
    FALLBACK = "fallback"
