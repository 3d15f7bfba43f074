"""Tests for the cost ledger."""

import csv
import io
import json
import pytest
from datetime import datetime, timezone

from errors import BudgetExceeded
from ledger.cost_ledger import CostLedger, DAY, HOUR
from schemas.cost import AlertLevel, BudgetLimits, TokenUsage

# Mid-month so the monthly window covers earlier entries in the tests
NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc).timestamp()


class FakeClock:
    """Settable time source."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


def usage(prompt=1000, completion=1000, cached=0):
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=prompt + completion,
        cached_tokens=cached
    )


class TestCostLedger:
    """Test usage tracking and summaries."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.ledger = CostLedger(budget_limits=BudgetLimits(), clock=self.clock)

    def test_track_usage_cost(self):
        """Test that cost follows the per-1K-token price table."""
        entry = self.ledger.track_usage("gpt-4o", "openai", usage(), "visualization_generation")

        assert entry.cost == pytest.approx(0.0025 + 0.01)
        assert entry.timestamp == NOW
        assert len(self.ledger.entries) == 1

    def test_unknown_model_uses_custom_price(self):
        entry = self.ledger.track_usage("my-local-model", "custom", usage(), "test")
        assert entry.cost == pytest.approx(0.0002)

    def test_cached_tokens_discounted(self):
        """Test that cached prompt tokens cost 10% of the normal rate."""
        entry = self.ledger.track_usage(
            "gpt-4o", "openai", usage(completion=0, cached=1000), "test", cached=True
        )

        assert entry.cost == pytest.approx(0.0025 * 0.1)

    def test_summary(self):
        self.ledger.track_usage("gpt-4o", "openai", usage(), "test")
        self.ledger.track_usage("claude-sonnet-4-20250514", "anthropic", usage(), "test")

        summary = self.ledger.get_cost_summary()

        assert summary.total_requests == 2
        assert summary.total_tokens == 4000
        assert summary.total_cost == pytest.approx(0.0125 + 0.018)
        assert set(summary.cost_by_provider) == {"openai", "anthropic"}
        assert summary.average_cost_per_request == pytest.approx(summary.total_cost / 2)
        assert summary.projected_monthly_cost == pytest.approx(summary.total_cost * 30)
        assert len(summary.cost_by_hour) == 1

    def test_summary_window(self):
        """Test that entries outside the window are excluded."""
        self.clock.now = NOW - 2 * DAY
        self.ledger.track_usage("gpt-4o", "openai", usage(), "test")
        self.clock.now = NOW
        self.ledger.track_usage("gpt-4o", "openai", usage(), "test")

        assert self.ledger.get_cost_summary().total_requests == 1
        assert self.ledger.get_cost_summary(NOW - 3 * DAY, NOW).total_requests == 2

    def test_cache_savings(self):
        self.ledger.track_usage("gpt-4o", "openai", usage(cached=1000), "test", cached=True)

        summary = self.ledger.get_cost_summary()

        assert summary.cached_tokens == 1000
        assert summary.savings_from_cache == pytest.approx(0.0025 * 0.9)

    def test_prune_old_entries(self):
        self.clock.now = NOW - 40 * DAY
        self.ledger.track_usage("gpt-4o", "openai", usage(), "test")
        self.clock.now = NOW
        self.ledger.track_usage("gpt-4o", "openai", usage(), "test")

        removed = self.ledger.prune_old_entries(days_to_keep=30)

        assert removed == 1
        assert len(self.ledger.entries) == 1


class TestBudget:
    """Test budget alerts and enforcement."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FakeClock()

    def test_no_alerts_under_budget(self):
        ledger = CostLedger(budget_limits=BudgetLimits(hourly=1.0), clock=self.clock)
        ledger.track_usage("gpt-4o", "openai", usage(), "test")

        assert ledger.budget_alerts() == []
        ledger.check_budget()

    def test_alert_levels(self):
        """Test warning, critical and exceeded thresholds."""
        # Each call costs 0.0125
        cases = [(0.016, AlertLevel.WARNING), (0.0135, AlertLevel.CRITICAL), (0.0125, AlertLevel.EXCEEDED)]

        for limit, expected in cases:
            ledger = CostLedger(budget_limits=BudgetLimits(hourly=limit), clock=self.clock)
            ledger.track_usage("gpt-4o", "openai", usage(), "test")

            alerts = ledger.budget_alerts()

            assert len(alerts) == 1
            assert alerts[0].level == expected
            assert alerts[0].period == "hourly"

    def test_check_budget_raises(self):
        ledger = CostLedger(budget_limits=BudgetLimits(daily=0.01), clock=self.clock)
        ledger.track_usage("gpt-4o", "openai", usage(), "test")

        with pytest.raises(BudgetExceeded) as exc_info:
            ledger.check_budget()

        assert exc_info.value.period == "daily"
        assert exc_info.value.budget_limit == 0.01

    def test_hourly_window_rolls_over(self):
        ledger = CostLedger(budget_limits=BudgetLimits(hourly=0.01), clock=self.clock)
        ledger.track_usage("gpt-4o", "openai", usage(), "test")

        self.clock.now = NOW + 2 * HOUR
        ledger.check_budget()

    def test_monthly_budget(self):
        ledger = CostLedger(budget_limits=BudgetLimits(monthly=0.02), clock=self.clock)
        self.clock.now = NOW - 10 * DAY
        ledger.track_usage("gpt-4o", "openai", usage(), "test")
        self.clock.now = NOW
        ledger.track_usage("gpt-4o", "openai", usage(), "test")

        with pytest.raises(BudgetExceeded) as exc_info:
            ledger.check_budget()
        assert exc_info.value.period == "monthly"


class TestExportAndRecommendations:
    """Test export formats and optimization hints."""

    def setup_method(self):
        """Set up test fixtures."""
        self.ledger = CostLedger(clock=FakeClock())
        self.ledger.track_usage("gpt-4", "openai", usage(), "test")

    def test_export_json(self):
        data = json.loads(self.ledger.export_cost_data("json"))

        assert len(data["entries"]) == 1
        assert data["summary"]["total_requests"] == 1
        assert isinstance(data["recommendations"], list)

    def test_export_csv(self):
        rows = list(csv.reader(io.StringIO(self.ledger.export_cost_data("csv"))))

        assert rows[0][0] == "Timestamp"
        assert rows[1][1] == "gpt-4"
        assert rows[1][5] == "No"

    def test_export_unknown_format(self):
        with pytest.raises(ValueError):
            self.ledger.export_cost_data("xml")

    def test_recommendations(self):
        recommendations = self.ledger.get_optimization_recommendations()

        assert any("cache" in r.lower() for r in recommendations)
        assert any("expensive models" in r for r in recommendations)
        assert any("average cost" in r.lower() for r in recommendations)
