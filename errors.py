"""Exception hierarchy for the generation pipeline."""

from typing import Optional


class GenerationError(Exception):
    """Base class for failures surfaced by the generation pipeline."""


class ConfigurationError(GenerationError):
    """Missing credentials, provider or catalog entry. Not retryable."""


class ProviderError(GenerationError):
    """The text-generation call failed or returned empty content."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        rate_limited: bool = False
    ):
        super().__init__(message)
        self.provider = provider
        self.rate_limited = rate_limited


class BudgetExceeded(GenerationError):
    """A configured spend ceiling has been reached."""

    def __init__(self, period: str, current_spend: float, budget_limit: float):
        super().__init__(
            f"{period} budget exceeded: ${current_spend:.4f} of ${budget_limit:.2f}"
        )
        self.period = period
        self.current_spend = current_spend
        self.budget_limit = budget_limit
