"""Model Router for task classification and model tier selection."""

import re
import time
import logging
import threading
from typing import Dict, Iterator, Optional, Tuple

from pydantic import BaseModel, Field

from errors import ConfigurationError
from llm.base_client import BaseLLMClient, LLMResponse
from llm.factory import LLMProvider
from memory.tokens import TokenEstimator, HeuristicTokenEstimator
from schemas.context import TaskType, OptimizationGoal
from schemas.routing import ModelCatalog, ModelConfig, ModelTier, RoutingDecision, UsageReport

logger = logging.getLogger(__name__)

# Weakest to strongest
TIER_ORDER = [ModelTier.FAST, ModelTier.EDUCATIONAL, ModelTier.VALIDATION]


class RoutingPolicy(BaseModel):
    """Routing heuristics. The numbers are tunable policy, not derived values."""
    task_complexity: Dict[TaskType, float] = Field(default_factory=lambda: {
        TaskType.SIMPLE_PARAMETER_ADJUSTMENT: 0.2,
        TaskType.VISUALIZATION_GENERATION: 0.5,
        TaskType.INTERACTIVE_FEATURES: 0.6,
        TaskType.COMPLEX_EDUCATIONAL_CONCEPT: 0.8,
        TaskType.SCIENTIFIC_VALIDATION: 0.9,
    })
    # Complexity above which the strongest tier is justified
    routing_thresholds: Dict[OptimizationGoal, float] = Field(default_factory=lambda: {
        OptimizationGoal.COST_OPTIMIZED: 0.12,
        OptimizationGoal.BALANCED: 0.08,
        OptimizationGoal.QUALITY_FOCUSED: 0.05,
    })
    visualization_complexity_floor: float = 0.3
    low_complexity_ceiling: float = 0.3
    high_complexity_floor: float = 0.7
    accuracy_patterns: list[str] = Field(default_factory=lambda: [
        r"scientifically accurate",
        r"precise",
        r"exact",
        r"formula",
    ])
    visualization_patterns: list[str] = Field(default_factory=lambda: [
        r"visuali[sz]e",
        r"show",
        r"display",
        r"animate",
        r"interactive",
    ])
    complex_math_patterns: list[str] = Field(default_factory=lambda: [
        r"integral",
        r"derivative",
        r"differential",
        r"quantum",
        r"relativity",
    ])


class PromptAnalysis(BaseModel):
    """Routing hints found in a prompt."""
    requires_high_accuracy: bool = False
    is_visualization_task: bool = False
    has_complex_math: bool = False


class ModelRouter:
    """Selects a model tier per request and dispatches generation to its provider."""

    def __init__(
        self,
        catalog: ModelCatalog,
        clients: Optional[Dict[LLMProvider, BaseLLMClient]] = None,
        default_provider: Optional[LLMProvider] = None,
        estimator: Optional[TokenEstimator] = None,
        policy: Optional[RoutingPolicy] = None
    ):
        """
        Initialize router.

        Args:
            catalog: Model tiers available to this router
            clients: One client per provider
            default_provider: Provider used when a tier's own provider is unavailable
            estimator: Token estimator for cost estimates
            policy: Routing thresholds and prompt cues

        Raises:
            ConfigurationError: If the catalog has no tiers
        """
        if not catalog.tiers:
            raise ConfigurationError("Model catalog has no tiers")

        self.catalog = catalog
        self.clients = dict(clients or {})
        self.default_provider = default_provider
        self.estimator = estimator or HeuristicTokenEstimator()
        self.policy = policy or RoutingPolicy()

        self.task_patterns = [
            (TaskType.SIMPLE_PARAMETER_ADJUSTMENT, [r"adjust", r"change parameter", r"tweak"]),
            (TaskType.INTERACTIVE_FEATURES, [r"interactive", r"animation"]),
            (TaskType.SCIENTIFIC_VALIDATION, [r"prove", r"derive", r"verify"]),
            (TaskType.COMPLEX_EDUCATIONAL_CONCEPT, [r"complex", r"advanced"]),
        ]

        self._metrics = UsageReport()
        self._metrics_lock = threading.Lock()
        self._latency_samples = 0

    def classify_task(self, prompt: str) -> TaskType:
        """Classify a prompt into a task type."""
        prompt_lower = prompt.lower()

        # Check patterns in priority order
        for task_type, patterns in self.task_patterns:
            for pattern in patterns:
                if re.search(pattern, prompt_lower):
                    return task_type

        # Default to plain visualization generation
        return TaskType.VISUALIZATION_GENERATION

    def analyze_prompt(self, prompt: str) -> PromptAnalysis:
        """Scan a prompt for accuracy, visualization and math cues."""
        def matches(patterns: list[str]) -> bool:
            return any(re.search(p, prompt, re.IGNORECASE) for p in patterns)

        return PromptAnalysis(
            requires_high_accuracy=matches(self.policy.accuracy_patterns),
            is_visualization_task=matches(self.policy.visualization_patterns),
            has_complex_math=matches(self.policy.complex_math_patterns),
        )

    def route(
        self,
        task_type: TaskType,
        prompt_text: str,
        context_text: str = "",
        optimization_goal: OptimizationGoal = OptimizationGoal.BALANCED
    ) -> RoutingDecision:
        """
        Route request to a model tier.

        Args:
            task_type: Classified task
            prompt_text: User prompt
            context_text: Compressed context that will accompany the prompt
            optimization_goal: Cost/quality trade-off

        Returns:
            RoutingDecision with the chosen tier, estimates and confidence
        """
        complexity = self.policy.task_complexity.get(task_type, 0.5)
        threshold = self.policy.routing_thresholds.get(
            optimization_goal,
            self.policy.routing_thresholds[OptimizationGoal.BALANCED]
        )
        analysis = self.analyze_prompt(prompt_text)

        if analysis.requires_high_accuracy or complexity > threshold:
            preferred = ModelTier.VALIDATION
            reason = "Complex educational concept requiring high accuracy"
        elif analysis.is_visualization_task and complexity > self.policy.visualization_complexity_floor:
            preferred = ModelTier.EDUCATIONAL
            reason = "D3.js visualization generation task"
        else:
            preferred = ModelTier.FAST
            reason = "Simple parameter adjustment or basic task"

        selected = self._tier_or_nearest(preferred)
        if selected.tier != preferred:
            reason += f" ({preferred.value} tier not in catalog, using {selected.tier.value})"

        fallback_used = False
        if not selected.supports(task_type):
            capable = self.catalog.find_capable(task_type)
            fallback_used = True
            if capable:
                reason = (
                    f"Fallback: {selected.name} not capable of {task_type.value}, "
                    f"using {capable.name}"
                )
                selected = capable
            else:
                reason = (
                    f"Fallback unavailable: no tier handles {task_type.value}, "
                    f"best effort with {selected.name}"
                )
                logger.warning(reason)

        estimated_tokens = self.estimator.estimate(prompt_text + context_text)
        estimated_cost = estimated_tokens * selected.cost_per_token

        self._record_route(selected.name, estimated_cost)

        decision = RoutingDecision(
            model=selected,
            reason=reason,
            estimated_cost=estimated_cost,
            estimated_latency_ms=selected.latency_ms,
            confidence=self._calculate_confidence(selected, task_type, complexity),
            task_type=task_type,
            complexity=complexity,
            fallback_used=fallback_used
        )
        logger.info(
            f"Routed {task_type.value} ({optimization_goal.value}) to {selected.name}: "
            f"{reason} [confidence={decision.confidence:.2f}]"
        )
        return decision

    def _tier_or_nearest(self, preferred: ModelTier) -> ModelConfig:
        """The preferred tier, or the closest tier present in the catalog."""
        position = TIER_ORDER.index(preferred)
        by_distance = sorted(
            TIER_ORDER,
            key=lambda tier: (abs(TIER_ORDER.index(tier) - position), -TIER_ORDER.index(tier))
        )
        for tier in by_distance:
            config = self.catalog.get(tier)
            if config:
                return config
        # Catalog is non-empty, checked at construction
        return next(iter(self.catalog.tiers.values()))

    def _calculate_confidence(
        self,
        model: ModelConfig,
        task_type: TaskType,
        complexity: float
    ) -> float:
        """Confidence in a routing decision, in [0, 1]."""
        confidence = 0.5

        # Model capability match
        if model.supports(task_type):
            confidence += 0.3

        # Complexity alignment
        if complexity < self.policy.low_complexity_ceiling and model.tier == ModelTier.FAST:
            confidence += 0.2
        elif complexity > self.policy.high_complexity_floor and model.tier == ModelTier.VALIDATION:
            confidence += 0.2

        return min(confidence, 1.0)

    def _resolve_client(self, config: ModelConfig) -> Tuple[BaseLLMClient, Optional[str]]:
        """Client and model name for a tier, falling back to the default provider."""
        client = self.clients.get(config.provider)
        if client and client.is_available():
            return client, config.model

        if self.default_provider and self.default_provider != config.provider:
            fallback = self.clients.get(self.default_provider)
            if fallback and fallback.is_available():
                logger.warning(
                    f"{config.provider.value} not available for {config.name}, "
                    f"using {self.default_provider.value} fallback"
                )
                # The fallback client's own default model replaces the tier's model
                return fallback, None

        raise ConfigurationError(
            f"No available client for provider '{config.provider.value}' (tier {config.name})"
        )

    def generate(
        self,
        decision: RoutingDecision,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> LLMResponse:
        """Run the request on the chosen tier and return the full response."""
        client, model = self._resolve_client(decision.model)
        start = time.monotonic()
        response = client.chat(
            messages=BaseLLMClient.build_messages(system_prompt, user_prompt),
            model=model,
            temperature=temperature,
            max_tokens=max_tokens
        )
        self._record_latency((time.monotonic() - start) * 1000)
        return response

    def execute(
        self,
        decision: RoutingDecision,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> str:
        """
        Execute request with the selected model.

        Raises:
            ConfigurationError: If neither the tier's provider nor the default is available
            ProviderError: If the provider call fails or returns empty content
        """
        return self.generate(decision, system_prompt, user_prompt, temperature, max_tokens).content

    def stream(
        self,
        decision: RoutingDecision,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000
    ) -> Iterator[str]:
        """Stream generated text fragments from the chosen tier."""
        client, model = self._resolve_client(decision.model)
        start = time.monotonic()
        yield from client.stream(
            messages=BaseLLMClient.build_messages(system_prompt, user_prompt),
            model=model,
            temperature=temperature,
            max_tokens=max_tokens
        )
        self._record_latency((time.monotonic() - start) * 1000)

    def _record_route(self, model_name: str, cost: float):
        with self._metrics_lock:
            self._metrics.total_requests += 1
            self._metrics.total_cost += cost
            self._metrics.model_usage[model_name] = self._metrics.model_usage.get(model_name, 0) + 1

    def _record_latency(self, latency_ms: float):
        with self._metrics_lock:
            self._latency_samples += 1
            total = self._metrics.average_latency_ms * (self._latency_samples - 1)
            self._metrics.average_latency_ms = (total + latency_ms) / self._latency_samples

    def get_usage_report(self) -> UsageReport:
        """Copy of the router's usage metrics."""
        with self._metrics_lock:
            return self._metrics.model_copy(deep=True)

    def get_cost_optimization_recommendations(self) -> list[str]:
        """Suggestions based on tier usage and observed latency."""
        recommendations = []
        report = self.get_usage_report()

        strongest = self.catalog.get(ModelTier.VALIDATION)
        if strongest and report.total_requests > 0:
            share = report.model_usage.get(strongest.name, 0) / report.total_requests * 100
            if share > 40:
                recommendations.append(
                    "Consider using more cost-optimized routing. Validation model usage is high at "
                    f"{share:.1f}%"
                )

        if report.average_latency_ms > 1000:
            recommendations.append(
                "Average latency is high. Consider caching common requests or using faster models."
            )

        return recommendations
