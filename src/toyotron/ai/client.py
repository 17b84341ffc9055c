"""AI client abstraction with OpenAI-compatible (OpenRouter, NVIDIA NIM) and Anthropic backends.

Conversations are kept in Anthropic-style content blocks (``text``,
``tool_use``, ``tool_result``) everywhere in the app; the OpenAI-compatible
client translates them on the way out and normalizes replies on the way in.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from toyotron.config import AnthropicConfig, AppConfig, LLMConfig
from toyotron.errors import ConfigurationError, LLMError
from toyotron.log import get_logger

logger = get_logger(__name__)


@dataclass
class ToolCall:
    id: str
    name: str
    # None when the model produced arguments that are not a JSON object
    arguments: Optional[dict[str, Any]]
    raw_arguments: str = ""


@dataclass
class AIResponse:
    """Unified response from any AI backend."""

    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    stop_reason: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    raw: Any = None  # Backend-specific raw response


class AIClient(ABC):
    """Abstract base class for AI backends."""

    @abstractmethod
    async def chat(
        self,
        system: str,
        messages: list[dict[str, Any]],
        model: str = "",
        max_tokens: int = 1000,
        temperature: float = 0.7,
        tools: list[dict[str, Any]] | None = None,
    ) -> AIResponse:
        """Send a conversation to the model and return one normalized step.

        Raises LLMError when the endpoint fails.
        """
        ...

    async def start(self) -> None:
        """One-time setup before the first request."""

    async def close(self) -> None:
        """Release network resources."""


def normalize_chat_url(api_url: str) -> str:
    """Full ``/chat/completions`` URL for a configured base or endpoint URL."""
    if "/chat/completions" in api_url:
        return api_url
    base = api_url.replace("/nemotron", "").rstrip("/")
    return f"{base}/chat/completions"


def _block_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            b.get("text", "") for b in content if isinstance(b, dict) and b.get("type") == "text"
        )
    return json.dumps(content)


def to_openai_messages(system: str, messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Translate content-block messages into chat-completions messages."""
    result: list[dict[str, Any]] = [{"role": "system", "content": system}] if system else []

    for msg in messages:
        role = msg.get("role", "user")
        content = msg.get("content", "")
        if isinstance(content, str):
            result.append({"role": role, "content": content})
            continue

        blocks = [b for b in content if isinstance(b, dict)]
        texts = [b.get("text", "") for b in blocks if b.get("type") == "text"]

        if role == "assistant":
            tool_calls = [
                {
                    "id": b["id"],
                    "type": "function",
                    "function": {"name": b["name"], "arguments": json.dumps(b.get("input", {}))},
                }
                for b in blocks
                if b.get("type") == "tool_use"
            ]
            entry: dict[str, Any] = {"role": "assistant", "content": "".join(texts) or None}
            if tool_calls:
                entry["tool_calls"] = tool_calls
            result.append(entry)
            continue

        # Tool results must directly follow the assistant message that requested them
        for b in blocks:
            if b.get("type") == "tool_result":
                result.append(
                    {
                        "role": "tool",
                        "tool_call_id": b["tool_use_id"],
                        "content": _block_text(b.get("content", "")),
                    }
                )
        if texts:
            result.append({"role": role, "content": "".join(texts)})

    return result


def to_openai_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": t["name"],
                "description": t["description"],
                "parameters": t["input_schema"],
            },
        }
        for t in tools
    ]


def parse_tool_arguments(raw: Any) -> Optional[dict[str, Any]]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return None
    return parsed if isinstance(parsed, dict) else None


class OpenAICompatibleClient(AIClient):
    """Chat-completions backend over httpx.

    The Authorization header format (``Bearer <key>`` or the bare key) is
    negotiated once against ``/models`` and reused for every request.
    """

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._config = config
        self._api_key = config.require_api_key()
        self._endpoint = normalize_chat_url(config.api_url)
        self._http = httpx.AsyncClient(timeout=config.timeout, transport=transport)
        self._auth_header: Optional[str] = None
        self._auth_scheme: Optional[str] = None

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def models_url(self) -> str:
        return self._endpoint[: -len("/chat/completions")] + "/models"

    @property
    def auth_scheme(self) -> Optional[str]:
        return self._auth_scheme

    def _base_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._config.site_url:
            headers["HTTP-Referer"] = self._config.site_url
        if self._config.app_name:
            headers["X-Title"] = self._config.app_name
        return headers

    async def negotiate_auth(self) -> str:
        """Pick the Authorization format the endpoint accepts. Returns the scheme name."""
        if not self._api_key:
            self._auth_header, self._auth_scheme = None, "none"
            return self._auth_scheme

        candidates = (("bearer", f"Bearer {self._api_key}"), ("raw", self._api_key))
        chosen = candidates[0]
        for scheme, header in candidates:
            try:
                response = await self._http.get(
                    self.models_url, headers={**self._base_headers(), "Authorization": header}
                )
            except httpx.HTTPError as e:
                logger.warning("llm_auth_check_failed", url=self.models_url, error=str(e))
                break
            if response.status_code not in (401, 403):
                chosen = (scheme, header)
                break
        else:
            logger.warning("llm_auth_rejected", url=self.models_url)

        self._auth_scheme, self._auth_header = chosen
        logger.info("llm_auth_negotiated", scheme=self._auth_scheme, endpoint=self._endpoint)
        return self._auth_scheme

    async def start(self) -> None:
        if self._auth_scheme is None:
            await self.negotiate_auth()

    async def chat(
        self,
        system: str,
        messages: list[dict[str, Any]],
        model: str = "",
        max_tokens: int = 1000,
        temperature: float = 0.7,
        tools: list[dict[str, Any]] | None = None,
    ) -> AIResponse:
        await self.start()

        body: dict[str, Any] = {
            "model": model or self._config.model,
            "messages": to_openai_messages(system, messages),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if tools:
            body["tools"] = to_openai_tools(tools)
            body["tool_choice"] = "auto"

        headers = self._base_headers()
        if self._auth_header:
            headers["Authorization"] = self._auth_header

        logger.debug("api_request", model=body["model"], message_count=len(messages))
        try:
            response = await self._http.post(self._endpoint, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise LLMError(f"LLM request failed: {e}") from e

        if response.is_error:
            raise LLMError(
                f"LLM API error: {response.status_code} - {response.text[:500]}",
                status=response.status_code,
            )

        try:
            data = response.json()
            choice = data["choices"][0]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Malformed LLM response: {e}") from e

        return self._parse_choice(choice, data.get("usage") or {}, data)

    def _parse_choice(self, choice: dict[str, Any], usage: dict[str, Any], raw: Any) -> AIResponse:
        message = choice.get("message") or {}
        tool_calls: list[ToolCall] = []
        for index, call in enumerate(message.get("tool_calls") or []):
            function = call.get("function") or {}
            raw_args = function.get("arguments", "")
            arguments = parse_tool_arguments(raw_args)
            if arguments is None:
                logger.warning("tool_arguments_unparseable", tool=function.get("name"))
            tool_calls.append(
                ToolCall(
                    id=call.get("id") or f"call_{index}",
                    name=function.get("name", ""),
                    arguments=arguments,
                    raw_arguments=raw_args if isinstance(raw_args, str) else json.dumps(raw_args),
                )
            )

        response = AIResponse(
            text=message.get("content") or "",
            tool_calls=tool_calls,
            stop_reason=choice.get("finish_reason") or "",
            input_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
            raw=raw,
        )
        logger.debug(
            "api_response",
            stop_reason=response.stop_reason,
            tool_calls=len(tool_calls),
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )
        return response

    async def close(self) -> None:
        await self._http.aclose()


class AnthropicClient(AIClient):
    """Anthropic API backend using the official SDK."""

    def __init__(self, config: AnthropicConfig):
        import anthropic

        api_key = config.api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise ConfigurationError("Anthropic API key is not configured.")
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=config.base_url,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )

    async def chat(
        self,
        system: str,
        messages: list[dict[str, Any]],
        model: str = "",
        max_tokens: int = 1000,
        temperature: float = 0.7,
        tools: list[dict[str, Any]] | None = None,
    ) -> AIResponse:
        import anthropic

        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": messages,
            "temperature": temperature,
        }
        if tools:
            kwargs["tools"] = tools

        logger.debug("api_request", model=model, message_count=len(messages))
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            raise LLMError(f"Anthropic API error: {e.status_code} - {e.message}", status=e.status_code) from e
        except anthropic.APIError as e:
            raise LLMError(f"Anthropic request failed: {e}") from e

        logger.debug(
            "api_response",
            model=model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            stop_reason=response.stop_reason,
        )
        return AIResponse(
            text="".join(b.text for b in response.content if b.type == "text"),
            tool_calls=[
                ToolCall(id=b.id, name=b.name, arguments=dict(b.input), raw_arguments=json.dumps(b.input))
                for b in response.content
                if b.type == "tool_use"
            ],
            stop_reason=response.stop_reason or "",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            raw=response,
        )

    async def close(self) -> None:
        await self._client.close()


def create_ai_client(config: AppConfig) -> AIClient:
    """Factory: create the AI client for the configured backend."""
    backend = config.llm.backend
    if backend == "openai_compatible":
        return OpenAICompatibleClient(config.llm)
    if backend == "anthropic":
        return AnthropicClient(config.anthropic)
    raise ConfigurationError(f"Unknown LLM backend: {backend}")
