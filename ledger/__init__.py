"""Usage and cost tracking."""

from .cost_ledger import CostLedger, DEFAULT_PRICING

__all__ = ["CostLedger", "DEFAULT_PRICING"]
