"""Pydantic schemas for the visualization generation core."""

from .context import TaskType, OptimizationGoal, Subject
from .routing import ModelTier, ModelConfig, ModelCatalog, RoutingDecision, UsageReport
from .validation import (
    IssueCategory,
    Severity,
    ValidationIssue,
    ValidationResult,
    StreamEvent,
    StreamEventType,
)
from .cost import TokenUsage, CostEntry, CostSummary, BudgetAlert, BudgetLimits, AlertLevel
from .generation import GenerationOptions, GenerationResult, GenerationMetadata, CostBreakdown
from .retrieval import CodeExample, RetrievalResult, CorpusStats

__all__ = [
    "TaskType",
    "OptimizationGoal",
    "Subject",
    "ModelTier",
    "ModelConfig",
    "ModelCatalog",
    "RoutingDecision",
    "UsageReport",
    "IssueCategory",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "StreamEvent",
    "StreamEventType",
    "TokenUsage",
    "CostEntry",
    "CostSummary",
    "BudgetAlert",
    "BudgetLimits",
    "AlertLevel",
    "GenerationOptions",
    "GenerationResult",
    "GenerationMetadata",
    "CostBreakdown",
    "CodeExample",
    "RetrievalResult",
    "CorpusStats",
]
