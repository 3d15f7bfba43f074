"""Model tier catalog and routing decision schemas."""

from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from llm.factory import LLMProvider
from .context import TaskType


class ModelTier(str, Enum):
    """Selectable model tiers, weakest to strongest."""
    FAST = "fast"
    EDUCATIONAL = "educational"
    VALIDATION = "validation"


class ModelConfig(BaseModel):
    """One selectable model tier."""
    model_config = ConfigDict(frozen=True)

    name: str
    tier: ModelTier
    provider: LLMProvider
    model: str
    cost_per_token: float = Field(..., ge=0.0)
    latency_ms: int = Field(..., ge=0, description="Expected latency in milliseconds")
    capabilities: frozenset[TaskType] = Field(default_factory=frozenset)

    def supports(self, task_type: TaskType) -> bool:
        return task_type in self.capabilities


class ModelCatalog(BaseModel):
    """Static mapping from tier to model configuration."""
    model_config = ConfigDict(frozen=True)

    tiers: Dict[ModelTier, ModelConfig]

    def get(self, tier: ModelTier) -> Optional[ModelConfig]:
        return self.tiers.get(tier)

    def find_capable(self, task_type: TaskType) -> Optional[ModelConfig]:
        """First tier (in catalog order) declaring support for the task type."""
        for config in self.tiers.values():
            if config.supports(task_type):
                return config
        return None


class RoutingDecision(BaseModel):
    """Output of the model router for one request."""
    model: ModelConfig
    reason: str
    estimated_cost: float = Field(0.0, ge=0.0)
    estimated_latency_ms: int = 0
    confidence: float = Field(0.5, ge=0.0, le=1.0)
    task_type: TaskType
    complexity: float = Field(0.0, ge=0.0, le=1.0)
    fallback_used: bool = False


class UsageReport(BaseModel):
    """Router-level usage metrics."""
    total_requests: int = 0
    total_cost: float = 0.0
    model_usage: Dict[str, int] = Field(default_factory=dict)
    average_latency_ms: float = 0.0
