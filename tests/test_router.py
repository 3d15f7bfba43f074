"""Tests for Model Router."""

import pytest
from unittest.mock import Mock

from agents.catalog import default_catalog
from agents.router import ModelRouter, RoutingPolicy
from errors import ConfigurationError
from llm.base_client import BaseLLMClient, LLMResponse
from llm.factory import LLMProvider
from schemas.context import TaskType, OptimizationGoal
from schemas.routing import ModelCatalog, ModelConfig, ModelTier


def make_client(content="const x = 1;"):
    client = Mock(spec=BaseLLMClient)
    client.is_available.return_value = True
    client.chat.return_value = LLMResponse(content=content, model="test-model")
    client.stream.return_value = iter(["const ", "x = 1;"])
    return client


class TestModelRouterRouting:
    """Test tier selection."""

    def setup_method(self):
        """Set up test fixtures."""
        self.router = ModelRouter(default_catalog())

    def test_scientific_validation_quality_focused(self):
        """Test that scientific validation always reaches the strongest tier."""
        decision = self.router.route(
            TaskType.SCIENTIFIC_VALIDATION,
            "Draw a circle",
            optimization_goal=OptimizationGoal.QUALITY_FOCUSED
        )

        assert decision.model.tier == ModelTier.VALIDATION
        assert decision.fallback_used is False
        assert decision.complexity == 0.9

    def test_selected_tier_is_capable(self):
        """Test that every task type is routed to a tier that supports it."""
        for task_type in TaskType:
            for goal in OptimizationGoal:
                decision = self.router.route(task_type, "Create a visualization", optimization_goal=goal)

                assert decision.model.supports(task_type)
                assert 0.0 <= decision.confidence <= 1.0

    def test_fallback_reason_prefix(self):
        """Test that a capability fallback is reported in the reason."""
        decision = self.router.route(
            TaskType.INTERACTIVE_FEATURES,
            "Make it interactive",
            optimization_goal=OptimizationGoal.BALANCED
        )

        # Validation tier is preferred but cannot build interactive features
        assert decision.fallback_used is True
        assert decision.reason.startswith("Fallback:")
        assert decision.model.tier == ModelTier.EDUCATIONAL

    def test_no_capable_tier(self):
        """Test best-effort routing when no tier handles the task."""
        catalog = ModelCatalog(tiers={
            ModelTier.FAST: ModelConfig(
                name="fast",
                tier=ModelTier.FAST,
                provider=LLMProvider.OPENAI,
                model="gpt-4o-mini",
                cost_per_token=0.00000015,
                latency_ms=300,
                capabilities=frozenset({TaskType.SIMPLE_PARAMETER_ADJUSTMENT}),
            )
        })
        router = ModelRouter(catalog)

        decision = router.route(TaskType.SCIENTIFIC_VALIDATION, "Verify the formula")

        assert decision.model.name == "fast"
        assert decision.fallback_used is True
        assert decision.reason.startswith("Fallback unavailable:")

    def test_low_thresholds_route_to_fast(self):
        """Test that a permissive policy keeps simple tasks on the fast tier."""
        policy = RoutingPolicy(routing_thresholds={
            OptimizationGoal.COST_OPTIMIZED: 0.95,
            OptimizationGoal.BALANCED: 0.95,
            OptimizationGoal.QUALITY_FOCUSED: 0.95,
        })
        router = ModelRouter(default_catalog(), policy=policy)

        decision = router.route(TaskType.SIMPLE_PARAMETER_ADJUSTMENT, "Adjust the length")

        assert decision.model.tier == ModelTier.FAST
        assert decision.confidence == 1.0

    def test_estimated_cost(self):
        """Test that estimated cost is tokens times price per token."""
        prompt = "a" * 400
        decision = self.router.route(TaskType.SCIENTIFIC_VALIDATION, prompt)

        assert decision.estimated_cost == pytest.approx(100 * decision.model.cost_per_token)
        assert decision.estimated_latency_ms == decision.model.latency_ms

    def test_empty_catalog_rejected(self):
        with pytest.raises(ConfigurationError):
            ModelRouter(ModelCatalog(tiers={}))

    def test_usage_report(self):
        """Test that routing decisions are counted per tier."""
        self.router.route(TaskType.SCIENTIFIC_VALIDATION, "Verify")
        self.router.route(TaskType.SCIENTIFIC_VALIDATION, "Verify again")

        report = self.router.get_usage_report()

        assert report.total_requests == 2
        assert report.model_usage["validation"] == 2
        assert self.router.get_cost_optimization_recommendations()


class TestTaskClassification:
    """Test prompt classification."""

    def setup_method(self):
        """Set up test fixtures."""
        self.router = ModelRouter(default_catalog())

    def test_classification(self):
        cases = {
            "Adjust the pendulum length": TaskType.SIMPLE_PARAMETER_ADJUSTMENT,
            "Tweak the colors": TaskType.SIMPLE_PARAMETER_ADJUSTMENT,
            "Add an animation of the orbit": TaskType.INTERACTIVE_FEATURES,
            "Prove the Pythagorean theorem": TaskType.SCIENTIFIC_VALIDATION,
            "Explain advanced quantum tunnelling": TaskType.COMPLEX_EDUCATIONAL_CONCEPT,
            "Show a projectile": TaskType.VISUALIZATION_GENERATION,
        }

        for prompt, expected in cases.items():
            assert self.router.classify_task(prompt) == expected

    def test_analyze_prompt(self):
        analysis = self.router.analyze_prompt("Visualize the exact derivative of sin(x)")

        assert analysis.requires_high_accuracy is True
        assert analysis.is_visualization_task is True
        assert analysis.has_complex_math is True


class TestModelRouterExecution:
    """Test dispatch to provider clients."""

    def setup_method(self):
        """Set up test fixtures."""
        self.openai_client = make_client("openai code")
        self.anthropic_client = make_client("anthropic code")

    def test_execute_uses_tier_provider(self):
        router = ModelRouter(default_catalog(), clients={
            LLMProvider.OPENAI: self.openai_client,
            LLMProvider.ANTHROPIC: self.anthropic_client,
        })
        decision = router.route(TaskType.SCIENTIFIC_VALIDATION, "Verify energy conservation")

        result = router.execute(decision, "system", "user")

        assert result == "anthropic code"
        kwargs = self.anthropic_client.chat.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-20250514"
        self.openai_client.chat.assert_not_called()

    def test_execute_falls_back_to_default_provider(self):
        """Test that a missing provider falls back to the default client's own model."""
        router = ModelRouter(
            default_catalog(),
            clients={LLMProvider.OPENAI: self.openai_client},
            default_provider=LLMProvider.OPENAI
        )
        decision = router.route(TaskType.SCIENTIFIC_VALIDATION, "Verify energy conservation")

        result = router.execute(decision, "system", "user")

        assert result == "openai code"
        assert self.openai_client.chat.call_args.kwargs["model"] is None

    def test_execute_without_client(self):
        router = ModelRouter(default_catalog(), clients={})
        decision = router.route(TaskType.SCIENTIFIC_VALIDATION, "Verify")

        with pytest.raises(ConfigurationError):
            router.execute(decision, "system", "user")

    def test_unavailable_client_skipped(self):
        self.anthropic_client.is_available.return_value = False
        router = ModelRouter(
            default_catalog(),
            clients={
                LLMProvider.OPENAI: self.openai_client,
                LLMProvider.ANTHROPIC: self.anthropic_client,
            },
            default_provider=LLMProvider.OPENAI
        )
        decision = router.route(TaskType.SCIENTIFIC_VALIDATION, "Verify")

        assert router.execute(decision, "system", "user") == "openai code"

    def test_stream(self):
        router = ModelRouter(default_catalog(), clients={LLMProvider.OPENAI: self.openai_client})
        decision = router.route(TaskType.SIMPLE_PARAMETER_ADJUSTMENT, "Adjust")

        assert decision.model.tier == ModelTier.FAST
        fragments = list(router.stream(decision, "system", "user"))

        assert "".join(fragments) == "const x = 1;"
        assert router.get_usage_report().average_latency_ms >= 0.0
