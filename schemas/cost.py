"""Cost ledger schemas."""

from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, Field


class TokenUsage(BaseModel):
    """Token counts for one model call."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0


class CostEntry(BaseModel):
    """One tracked model call. Entries are never modified once recorded."""
    id: str
    timestamp: float
    model: str
    provider: str
    usage: TokenUsage
    cost: float = Field(0.0, ge=0.0)
    cached: bool = False
    request_type: str
    user_id: Optional[str] = None
    project_id: Optional[str] = None


class CostSummary(BaseModel):
    """Aggregate spend over a time window."""
    total_cost: float = 0.0
    total_requests: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0
    savings_from_cache: float = 0.0
    average_cost_per_request: float = 0.0
    cost_by_model: Dict[str, float] = Field(default_factory=dict)
    cost_by_provider: Dict[str, float] = Field(default_factory=dict)
    cost_by_hour: Dict[str, float] = Field(default_factory=dict)
    projected_monthly_cost: float = 0.0


class AlertLevel(str, Enum):
    """Budget alert levels."""
    WARNING = "warning"
    CRITICAL = "critical"
    EXCEEDED = "exceeded"


class BudgetAlert(BaseModel):
    """Budget usage crossing an alert threshold."""
    level: AlertLevel
    period: str
    message: str
    current_spend: float
    budget_limit: float
    percent_used: float


class BudgetLimits(BaseModel):
    """Spend ceilings in USD; None disables a period."""
    hourly: Optional[float] = None
    daily: Optional[float] = None
    monthly: Optional[float] = None
