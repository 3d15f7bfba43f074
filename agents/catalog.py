"""Default model tier catalog."""

from llm.factory import LLMProvider
from schemas.context import TaskType
from schemas.routing import ModelCatalog, ModelConfig, ModelTier


def default_catalog() -> ModelCatalog:
    """
    Build the standard three-tier catalog.

    Costs are USD per prompt token; latency is the expected time to first
    complete response.
    """
    return ModelCatalog(tiers={
        # Fast model for simple adjustments
        ModelTier.FAST: ModelConfig(
            name="fast",
            tier=ModelTier.FAST,
            provider=LLMProvider.OPENAI,
            model="gpt-4o-mini",
            cost_per_token=0.00000015,
            latency_ms=300,
            capabilities=frozenset({
                TaskType.SIMPLE_PARAMETER_ADJUSTMENT,
                TaskType.VISUALIZATION_GENERATION,
            }),
        ),
        # Educational model tuned for D3.js generation
        ModelTier.EDUCATIONAL: ModelConfig(
            name="educational",
            tier=ModelTier.EDUCATIONAL,
            provider=LLMProvider.OPENAI,
            model="gpt-4o",
            cost_per_token=0.0000025,
            latency_ms=400,
            capabilities=frozenset({
                TaskType.VISUALIZATION_GENERATION,
                TaskType.COMPLEX_EDUCATIONAL_CONCEPT,
                TaskType.INTERACTIVE_FEATURES,
            }),
        ),
        # Validation model for scientific accuracy
        ModelTier.VALIDATION: ModelConfig(
            name="validation",
            tier=ModelTier.VALIDATION,
            provider=LLMProvider.ANTHROPIC,
            model="claude-sonnet-4-20250514",
            cost_per_token=0.000003,
            latency_ms=800,
            capabilities=frozenset({
                TaskType.SCIENTIFIC_VALIDATION,
                TaskType.COMPLEX_EDUCATIONAL_CONCEPT,
            }),
        ),
    })
