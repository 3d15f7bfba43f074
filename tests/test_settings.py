"""Tests for application settings."""

from config.settings import Settings
from llm.factory import LLMProvider
from schemas.context import OptimizationGoal


class TestSettings:
    """Test settings defaults and environment loading."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        settings = Settings()

        assert settings.optimization_goal == OptimizationGoal.BALANCED
        assert settings.context_token_budget == 8000
        assert settings.max_regenerations == 1
        assert settings.configured_providers() == []

    def test_keys_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-openai")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-anthropic")

        settings = Settings()

        assert settings.get_api_key(LLMProvider.OPENAI) == "env-openai"
        assert settings.get_api_key(LLMProvider.ANTHROPIC) == "env-anthropic"
        assert settings.configured_providers() == [LLMProvider.OPENAI, LLMProvider.ANTHROPIC]

    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-openai")

        settings = Settings(openai_api_key="explicit")

        assert settings.openai_api_key == "explicit"
