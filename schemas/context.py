"""Request classification schemas."""

from enum import Enum


class TaskType(str, Enum):
    """Kind of generation work a prompt asks for."""
    SIMPLE_PARAMETER_ADJUSTMENT = "simple_parameter_adjustment"
    VISUALIZATION_GENERATION = "visualization_generation"
    COMPLEX_EDUCATIONAL_CONCEPT = "complex_educational_concept"
    SCIENTIFIC_VALIDATION = "scientific_validation"
    INTERACTIVE_FEATURES = "interactive_features"


class OptimizationGoal(str, Enum):
    """Trade-off the router optimizes for."""
    COST_OPTIMIZED = "cost_optimized"
    BALANCED = "balanced"
    QUALITY_FOCUSED = "quality_focused"


class Subject(str, Enum):
    """Subject area of a visualization request."""
    PHYSICS = "physics"
    MATHEMATICS = "mathematics"
    CHEMISTRY = "chemistry"
