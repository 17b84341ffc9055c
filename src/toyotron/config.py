"""Configuration loader with YAML parsing, env-var interpolation, and Pydantic validation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from toyotron.errors import ConfigurationError

_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


def _unset_to_none(value: Optional[str]) -> Optional[str]:
    """Treat empty strings and unresolved ``${VAR}`` placeholders as missing."""
    if value is None:
        return None
    value = value.strip()
    if not value or _ENV_VAR_PATTERN.fullmatch(value):
        return None
    return value


class LLMConfig(BaseModel):
    backend: str = "openai_compatible"  # "openai_compatible" | "anthropic"
    api_url: str = "https://openrouter.ai/api/v1"
    api_key: Optional[str] = None
    model: str = "nvidia/llama-3.3-nemotron-super-49b-v1.5"
    max_tokens: int = 1000
    temperature: float = 0.7
    max_steps: int = Field(default=10, ge=1)
    timeout: float = 60.0
    site_url: Optional[str] = None  # sent as HTTP-Referer
    app_name: Optional[str] = None  # sent as X-Title

    @field_validator("api_key", "site_url", "app_name", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Optional[str]) -> Optional[str]:
        return _unset_to_none(value)

    @property
    def is_local(self) -> bool:
        return "localhost" in self.api_url or "127.0.0.1" in self.api_url

    def require_api_key(self) -> str:
        if self.api_key:
            return self.api_key
        if self.is_local:
            return ""
        raise ConfigurationError("LLM API key is not configured.")


class AnthropicConfig(BaseModel):
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_retries: int = 3
    timeout: int = 120

    @field_validator("api_key", "base_url", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Optional[str]) -> Optional[str]:
        return _unset_to_none(value)


class EmailConfig(BaseModel):
    resend_api_key: Optional[str] = None
    from_address: str = "Toyotron <noreply@toyotron.local>"
    api_url: str = "https://api.resend.com"
    organizer_email: str = "bookings@toyotron.local"

    @field_validator("resend_api_key", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Optional[str]) -> Optional[str]:
        return _unset_to_none(value)


class BookingConfig(BaseModel):
    base_url: Optional[str] = None  # None: create bookings in-process
    timeout: float = 15.0
    timezone: str = "America/Chicago"
    default_location: str = "downtown"
    placeholder_phone: str = "(000) 000-0000"
    duration_minutes: int = 45
    locations: dict[str, str] = Field(
        default_factory=lambda: {
            "downtown": "Downtown Toyota - 123 Main St, Dallas, TX",
            "north": "North Dallas Toyota - 456 North Rd, Dallas, TX",
            "south": "South Toyota Center - 789 South Ave, Dallas, TX",
        }
    )

    @field_validator("base_url", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Optional[str]) -> Optional[str]:
        return _unset_to_none(value)


class StorageConfig(BaseModel):
    db_path: str = "./data/toyotron.db"


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8000


class WebhookConfig(BaseModel):
    signing_secret: Optional[str] = None

    @field_validator("signing_secret", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Optional[str]) -> Optional[str]:
        return _unset_to_none(value)


class AppConfig(BaseModel):
    log_level: str = "INFO"
    log_json: bool = False
    data_dir: str = "./data"
    public_url: str = "http://localhost:3000"
    llm: LLMConfig = Field(default_factory=LLMConfig)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    booking: BookingConfig = Field(default_factory=BookingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    webhooks: WebhookConfig = Field(default_factory=WebhookConfig)


def _interpolate_env_vars(text: str, extra: dict[str, str] | None = None) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        if extra and var_name in extra:
            return extra[var_name]
        value = os.environ.get(var_name)
        if value is None:
            return match.group(0)
        return value

    return _ENV_VAR_PATTERN.sub(_replace, text)


def load_config(config_path: str | Path = "config.yaml", env_path: str | Path = ".env") -> AppConfig:
    """Load and validate configuration from YAML file with env-var interpolation."""
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    raw_text = config_file.read_text(encoding="utf-8")

    # First pass: extract data_dir for self-referencing
    raw_data = yaml.safe_load(raw_text) or {}
    data_dir = _interpolate_env_vars(str(raw_data.get("data_dir", "./data")))

    interpolated = _interpolate_env_vars(raw_text, extra={"data_dir": data_dir})
    data = yaml.safe_load(interpolated) or {}

    return AppConfig(**data)
