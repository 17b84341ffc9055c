"""Tests for YAML config loading and env-var interpolation."""

from pathlib import Path

import pytest

from toyotron.ai.prompts import build_system_prompt, format_preferences
from toyotron.config import LLMConfig, load_config
from toyotron.errors import ConfigurationError
from toyotron.storage.models import UserPreferences

EXAMPLE = Path(__file__).resolve().parent.parent / "config.example.yaml"


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "OPENROUTER_API_KEY",
        "OPENROUTER_SITE_URL",
        "OPENROUTER_APP_NAME",
        "ANTHROPIC_API_KEY",
        "RESEND_API_KEY",
        "BOOKING_BASE_URL",
        "BOOKING_WEBHOOK_SECRET",
    ):
        # setenv first so that values written by load_dotenv are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


class TestLoadConfig:
    def test_example_config_with_env(self, tmp_path, clean_env):
        clean_env.setenv("OPENROUTER_API_KEY", "sk-or-123")
        clean_env.setenv("BOOKING_WEBHOOK_SECRET", "whsec")
        config = load_config(EXAMPLE, tmp_path / "missing.env")

        assert config.llm.api_key == "sk-or-123"
        assert config.webhooks.signing_secret == "whsec"
        assert config.storage.db_path == "./data/toyotron.db"
        assert config.llm.max_steps == 10
        assert config.booking.duration_minutes == 45

    def test_unresolved_placeholders_become_none(self, tmp_path, clean_env):
        config = load_config(EXAMPLE, tmp_path / "missing.env")
        assert config.llm.api_key is None
        assert config.llm.site_url is None
        assert config.email.resend_api_key is None
        assert config.booking.base_url is None

    def test_dotenv_file_is_loaded(self, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text("RESEND_API_KEY=re_from_file\n")
        config_file = tmp_path / "config.yaml"
        config_file.write_text("data_dir: /srv/toyotron\nemail:\n  resend_api_key: ${RESEND_API_KEY}\nstorage:\n  db_path: ${data_dir}/app.db\n")

        config = load_config(config_file, env_file)
        assert config.email.resend_api_key == "re_from_file"
        assert config.storage.db_path == "/srv/toyotron/app.db"

    def test_missing_file(self, tmp_path, clean_env):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml", tmp_path / ".env")


class TestLLMConfig:
    def test_local_endpoint_needs_no_key(self):
        assert LLMConfig(api_url="http://127.0.0.1:8000/v1").require_api_key() == ""

    def test_remote_endpoint_needs_key(self):
        with pytest.raises(ConfigurationError):
            LLMConfig().require_api_key()

    def test_blank_key_is_unset(self):
        assert LLMConfig(api_key="  ").api_key is None


class TestSystemPrompt:
    def test_without_preferences(self):
        prompt = build_system_prompt(None)
        assert "IMPORTANT WORKFLOW FOR SHOWING CARS" in prompt
        assert "USER PREFERENCES" not in prompt

    def test_budget_shown_in_dollars(self):
        text = format_preferences(UserPreferences(budget_min=3000000, budget_max=4500000, seats=7))
        assert "$30,000 - $45,000" in text
        assert "budgetMin=30000" in text
        assert "budgetMax=45000" in text
        assert "Seating Needed: 7 seats" in text
