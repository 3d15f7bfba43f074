"""Generation request and result schemas."""

from typing import Optional
from pydantic import BaseModel, Field

from .context import OptimizationGoal, Subject
from .validation import ValidationResult


class GenerationOptions(BaseModel):
    """Per-request options for visualization generation."""
    subject: Subject = Subject.PHYSICS
    optimization_goal: Optional[OptimizationGoal] = None  # None uses settings
    streaming: Optional[bool] = None  # None uses settings
    allow_regeneration: bool = True


class CostBreakdown(BaseModel):
    """Spend attributed to one model call."""
    model: str
    tokens: int
    cached: bool = False
    cost: float = 0.0


class GenerationMetadata(BaseModel):
    """Diagnostics about how a visualization was produced."""
    task_type: str
    model_tier: str
    routing_reason: str
    routing_confidence: float
    preserved_concepts: list[str] = Field(default_factory=list)
    retrieval_sources: list[str] = Field(default_factory=list)
    concepts_used: list[str] = Field(default_factory=list)
    compression_ratio: Optional[float] = None
    generation_time_seconds: float = 0.0
    regenerated: bool = False


class GenerationResult(BaseModel):
    """Final output of the generation pipeline."""
    code: str
    validation: ValidationResult
    total_cost: float = 0.0
    cost_breakdown: list[CostBreakdown] = Field(default_factory=list)
    metadata: GenerationMetadata
