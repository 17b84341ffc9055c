"""Chat agent: runs one user turn of the model/tool loop and streams events."""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator, Optional

from toyotron.ai.client import AIClient, ToolCall
from toyotron.ai.events import AgentEvent
from toyotron.ai.guardrails import GuardrailFilter
from toyotron.ai.prompts import build_system_prompt
from toyotron.ai.tools.base import ToolContext
from toyotron.ai.tools.registry import ToolRegistry
from toyotron.ai.tools.search import SEARCH_TOOL_NAME
from toyotron.config import LLMConfig
from toyotron.core.session import AgentSession
from toyotron.core.types import FinishReason, ToolCallState
from toyotron.errors import LLMError
from toyotron.log import get_logger

logger = get_logger(__name__)

STEP_LIMIT_MESSAGE = "[Tool execution limit reached]"

FALLBACK_MESSAGE = (
    "[Limited mode] I'm having trouble connecting to the assistant service right now, so I "
    "can't search the inventory at the moment. In the meantime, popular picks include SUVs "
    "like the RAV4 or Highlander and fuel-efficient sedans like the Camry or Corolla. You can "
    "browse the inventory directly, or try again in a moment."
)


def is_error_payload(output: dict[str, Any]) -> bool:
    return "error" in output or output.get("success") is False


def _sanitize_content(content: Any, guardrails: GuardrailFilter) -> Any:
    if isinstance(content, str):
        return guardrails.sanitize_input(content)
    if isinstance(content, list):
        cleaned = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                block = {**block, "text": guardrails.sanitize_input(block.get("text", ""))}
            cleaned.append(block)
        return cleaned
    return content


def searched_trim_ids(messages: list[dict[str, Any]]) -> set[int]:
    """trim_ids returned by search tool results already in the conversation."""
    search_call_ids: set[str] = set()
    seen: set[int] = set()
    for msg in messages:
        content = msg.get("content")
        if not isinstance(content, list):
            continue
        for block in content:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "tool_use" and block.get("name") == SEARCH_TOOL_NAME:
                search_call_ids.add(block.get("id"))
            elif block.get("type") == "tool_result" and block.get("tool_use_id") in search_call_ids:
                payload = block.get("content")
                if isinstance(payload, str):
                    try:
                        payload = json.loads(payload)
                    except json.JSONDecodeError:
                        continue
                if isinstance(payload, dict):
                    for item in payload.get("items") or []:
                        if isinstance(item, dict) and isinstance(item.get("trim_id"), int):
                            seen.add(item["trim_id"])
    return seen


class ChatAgent:
    """Drives the model through at most ``max_steps`` calls per user turn.

    Tool calls within a step run one after another; the model sees every
    result before it decides on the next step. Model text passes the output
    guardrail before it is emitted.
    """

    def __init__(
        self,
        ai_client: AIClient,
        registry: ToolRegistry,
        guardrails: GuardrailFilter,
        llm_config: LLMConfig,
    ):
        self._ai = ai_client
        self._registry = registry
        self._guardrails = guardrails
        self._llm = llm_config

    def prepare_messages(self, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Copy of the history with every text part run through the input guardrail."""
        return [
            {**msg, "content": _sanitize_content(msg.get("content", ""), self._guardrails)}
            for msg in messages
        ]

    async def run_turn(
        self,
        messages: list[dict[str, Any]],
        session: AgentSession,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[AgentEvent]:
        conversation = self.prepare_messages(messages)
        context = ToolContext(
            user=session.user,
            access_token=session.access_token,
            preferences=session.preferences,
            seen_trim_ids=searched_trim_ids(conversation),
        )
        system = build_system_prompt(session.preferences)
        tool_defs = self._registry.api_definitions()

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        for step in range(self._llm.max_steps):
            if cancelled():
                logger.info("chat_turn_cancelled", step=step)
                yield AgentEvent.finish(FinishReason.CANCELLED)
                return

            try:
                response = await self._ai.chat(
                    system=system,
                    messages=conversation,
                    model=self._llm.model,
                    max_tokens=self._llm.max_tokens,
                    temperature=self._llm.temperature,
                    tools=tool_defs,
                )
            except LLMError as e:
                logger.error("llm_call_failed", step=step, status=e.status, error=str(e))
                yield AgentEvent.text_delta(FALLBACK_MESSAGE)
                yield AgentEvent.finish(FinishReason.FALLBACK)
                return

            text = self._guardrails.sanitize_output(response.text) if response.text else ""
            if text:
                yield AgentEvent.text_delta(text)

            if not response.tool_calls:
                logger.info("chat_turn_completed", steps=step + 1)
                yield AgentEvent.finish(FinishReason.STOP)
                return

            assistant_content: list[dict[str, Any]] = []
            if text:
                assistant_content.append({"type": "text", "text": text})
            for call in response.tool_calls:
                assistant_content.append(
                    {"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments or {}}
                )
            conversation.append({"role": "assistant", "content": assistant_content})

            results: list[dict[str, Any]] = []
            for call in response.tool_calls:
                if cancelled():
                    logger.info("chat_turn_cancelled_before_tool", tool=call.name)
                    yield AgentEvent.finish(FinishReason.CANCELLED)
                    return

                yield AgentEvent.tool(
                    call.name, call.id, ToolCallState.INPUT_AVAILABLE, input=call.arguments or {}
                )
                output = await self._execute(call, context)
                failed = is_error_payload(output)
                yield AgentEvent.tool(
                    call.name,
                    call.id,
                    ToolCallState.OUTPUT_ERROR if failed else ToolCallState.OUTPUT_AVAILABLE,
                    output=output,
                )
                results.append(
                    {
                        "type": "tool_result",
                        "tool_use_id": call.id,
                        "content": json.dumps(output),
                        **({"is_error": True} if failed else {}),
                    }
                )

            conversation.append({"role": "user", "content": results})

        logger.warning("chat_turn_step_limit", max_steps=self._llm.max_steps)
        yield AgentEvent.text_delta(STEP_LIMIT_MESSAGE)
        yield AgentEvent.finish(FinishReason.STEP_LIMIT)

    async def _execute(self, call: ToolCall, context: ToolContext) -> dict[str, Any]:
        tool = self._registry.get(call.name)
        if tool is None:
            logger.warning("unknown_tool_requested", tool=call.name)
            return {"error": f"Unknown tool '{call.name}'"}
        try:
            output = await tool.run(call.arguments, context)
        except Exception as e:
            logger.error("tool_execution_error", tool=call.name, error=str(e))
            return {"error": f"Error executing {call.name}: {e}"}
        logger.info("tool_executed", tool=call.name, failed=is_error_payload(output))
        return output
