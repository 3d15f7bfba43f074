"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel

from llm.factory import LLMProvider
from schemas.context import OptimizationGoal
from schemas.cost import BudgetLimits


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    default_provider: Optional[LLMProvider] = LLMProvider.OPENAI  # Used when a tier's provider is unavailable

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Routing
    optimization_goal: OptimizationGoal = OptimizationGoal.BALANCED

    # Context compression
    context_token_budget: int = 8000
    max_active_turns: int = 10
    token_estimator: str = "heuristic"  # "heuristic" or "tiktoken"

    # Generation
    temperature: float = 0.3
    max_tokens: int = 2000
    streaming: bool = False
    stream_chunk_size: int = 100

    # Retries around the provider call
    max_retries: int = 2
    retry_backoff_multiplier: float = 1.0
    retry_backoff_max: float = 10.0
    max_regenerations: int = 1  # Automatic regenerations after a failed validation

    # Spend ceilings (USD)
    budget_limits: BudgetLimits = BudgetLimits(hourly=5.0, daily=50.0, monthly=400.0)

    # Retrieval settings
    retrieval_top_k: int = 3
    related_concepts_limit: int = 2

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load API keys from environment if not provided
        if "openai_api_key" not in data or data["openai_api_key"] is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if "anthropic_api_key" not in data or data["anthropic_api_key"] is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        super().__init__(**data)

    def get_api_key(self, provider: LLMProvider) -> Optional[str]:
        """Get the API key for a provider."""
        if provider == LLMProvider.OPENAI:
            return self.openai_api_key
        elif provider == LLMProvider.ANTHROPIC:
            return self.anthropic_api_key
        return None

    def configured_providers(self) -> list[LLMProvider]:
        """Providers that have credentials available."""
        return [p for p in LLMProvider if self.get_api_key(p)]
