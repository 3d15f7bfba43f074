"""Process-wide usage and cost ledger."""

import csv
import io
import json
import time
import uuid
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from errors import BudgetExceeded
from schemas.cost import (
    AlertLevel,
    BudgetAlert,
    BudgetLimits,
    CostEntry,
    CostSummary,
    TokenUsage,
)

logger = logging.getLogger(__name__)

HOUR = 60 * 60
DAY = 24 * HOUR

# USD per 1K tokens
DEFAULT_PRICING: Dict[str, Dict[str, float]] = {
    # OpenAI
    "gpt-4o": {"prompt": 0.0025, "completion": 0.01},
    "gpt-4o-mini": {"prompt": 0.00015, "completion": 0.0006},
    "gpt-4-turbo": {"prompt": 0.01, "completion": 0.03},
    "gpt-4": {"prompt": 0.03, "completion": 0.06},
    "gpt-3.5-turbo": {"prompt": 0.0005, "completion": 0.0015},
    # Anthropic
    "claude-sonnet-4-20250514": {"prompt": 0.003, "completion": 0.015},
    "claude-3-opus": {"prompt": 0.015, "completion": 0.075},
    "claude-3-haiku": {"prompt": 0.00025, "completion": 0.00125},
    # Custom/local models
    "custom": {"prompt": 0.0001, "completion": 0.0001},
}

EXPENSIVE_MODELS = ("gpt-4", "gpt-4-turbo", "claude-3-opus")


class CostLedger:
    """
    Append-only record of model calls with budget tracking.

    Safe to share between concurrent requests: entries are appended under a
    lock and never modified afterwards.
    """

    CACHE_DISCOUNT = 0.9  # Cached prompt tokens cost 10% of the normal rate

    def __init__(
        self,
        budget_limits: Optional[BudgetLimits] = None,
        pricing: Optional[Dict[str, Dict[str, float]]] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize ledger.

        Args:
            budget_limits: Hourly/daily/monthly spend ceilings in USD
            pricing: Per-model prompt/completion prices per 1K tokens
            clock: Source of epoch-seconds timestamps
        """
        self.budget_limits = budget_limits or BudgetLimits()
        self.pricing = pricing or dict(DEFAULT_PRICING)
        self.clock = clock
        self._entries: List[CostEntry] = []
        self._lock = threading.Lock()

    @property
    def entries(self) -> List[CostEntry]:
        with self._lock:
            return list(self._entries)

    def _price(self, model: str) -> Dict[str, float]:
        return self.pricing.get(model) or self.pricing.get("custom") or DEFAULT_PRICING["custom"]

    def calculate_cost(self, model: str, usage: TokenUsage, cached: bool = False) -> float:
        """Cost in USD of one call, discounting cached prompt tokens."""
        price = self._price(model)
        prompt_cost = (usage.prompt_tokens / 1000) * price["prompt"]
        completion_cost = (usage.completion_tokens / 1000) * price["completion"]

        if cached and usage.cached_tokens:
            cached_tokens = min(usage.cached_tokens, usage.prompt_tokens)
            cached_cost = (cached_tokens / 1000) * price["prompt"] * (1 - self.CACHE_DISCOUNT)
            uncached_cost = ((usage.prompt_tokens - cached_tokens) / 1000) * price["prompt"]
            prompt_cost = cached_cost + uncached_cost

        return prompt_cost + completion_cost

    def track_usage(
        self,
        model: str,
        provider: str,
        usage: TokenUsage,
        request_type: str,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
        cached: bool = False
    ) -> CostEntry:
        """
        Record one model call.

        Args:
            model: Model identifier used for pricing
            provider: Provider name
            usage: Token counts
            request_type: What the call was for
            user_id: Optional user attribution
            project_id: Optional project attribution
            cached: Whether part of the prompt was served from cache

        Returns:
            The recorded CostEntry
        """
        entry = CostEntry(
            id=f"cost-{uuid.uuid4().hex[:12]}",
            timestamp=self.clock(),
            model=model,
            provider=provider,
            usage=usage,
            cost=self.calculate_cost(model, usage, cached),
            cached=cached,
            request_type=request_type,
            user_id=user_id,
            project_id=project_id
        )

        with self._lock:
            self._entries.append(entry)

        for alert in self.budget_alerts():
            logger.warning(f"Budget alert [{alert.level.value}]: {alert.message}")

        return entry

    def get_cost_summary(
        self,
        start_time: Optional[float] = None,
        end_time: Optional[float] = None
    ) -> CostSummary:
        """
        Aggregate spend between two timestamps (default: the last 24 hours).
        """
        now = self.clock()
        start = start_time if start_time is not None else now - DAY
        end = end_time if end_time is not None else now

        relevant = [e for e in self.entries if start <= e.timestamp <= end]
        summary = CostSummary(total_requests=len(relevant))

        for entry in relevant:
            summary.total_cost += entry.cost
            summary.total_tokens += entry.usage.total_tokens
            summary.cached_tokens += entry.usage.cached_tokens

            summary.cost_by_model[entry.model] = summary.cost_by_model.get(entry.model, 0.0) + entry.cost
            summary.cost_by_provider[entry.provider] = (
                summary.cost_by_provider.get(entry.provider, 0.0) + entry.cost
            )

            hour = datetime.fromtimestamp(entry.timestamp, tz=timezone.utc).strftime("%Y-%m-%dT%H")
            summary.cost_by_hour[hour] = summary.cost_by_hour.get(hour, 0.0) + entry.cost

            if entry.cached and entry.usage.cached_tokens:
                full_cost = (entry.usage.cached_tokens / 1000) * self._price(entry.model)["prompt"]
                summary.savings_from_cache += full_cost * self.CACHE_DISCOUNT

        if summary.total_requests:
            summary.average_cost_per_request = summary.total_cost / summary.total_requests

        span_days = (end - start) / DAY
        if span_days > 0:
            summary.projected_monthly_cost = summary.total_cost / span_days * 30

        return summary

    def _period_spend(self) -> Dict[str, tuple[float, float]]:
        """Current spend and limit for each configured period."""
        now = self.clock()
        periods = {}

        if self.budget_limits.hourly:
            spend = self.get_cost_summary(now - HOUR, now).total_cost
            periods["hourly"] = (spend, self.budget_limits.hourly)

        if self.budget_limits.daily:
            spend = self.get_cost_summary(now - DAY, now).total_cost
            periods["daily"] = (spend, self.budget_limits.daily)

        if self.budget_limits.monthly:
            month_start = datetime.fromtimestamp(now, tz=timezone.utc).replace(
                day=1, hour=0, minute=0, second=0, microsecond=0
            )
            spend = self.get_cost_summary(month_start.timestamp(), now).total_cost
            periods["monthly"] = (spend, self.budget_limits.monthly)

        return periods

    def budget_alerts(self) -> List[BudgetAlert]:
        """Alerts for periods at or above 75%, 90% and 100% of their limit."""
        alerts = []
        for period, (spend, limit) in self._period_spend().items():
            percent_used = spend / limit * 100

            if percent_used >= 100:
                level, message = AlertLevel.EXCEEDED, f"{period} budget exceeded!"
            elif percent_used >= 90:
                level, message = AlertLevel.CRITICAL, f"{period} budget nearly exhausted"
            elif percent_used >= 75:
                level, message = AlertLevel.WARNING, f"{period} budget usage high"
            else:
                continue

            alerts.append(BudgetAlert(
                level=level,
                period=period,
                message=message,
                current_spend=spend,
                budget_limit=limit,
                percent_used=percent_used
            ))
        return alerts

    def check_budget(self):
        """
        Raise if any spend ceiling has been reached.

        Raises:
            BudgetExceeded: For the first exhausted period
        """
        for period, (spend, limit) in self._period_spend().items():
            if spend >= limit:
                raise BudgetExceeded(period, spend, limit)

    def get_optimization_recommendations(self) -> List[str]:
        """Cost-saving suggestions from the last 24 hours of usage."""
        recommendations = []
        summary = self.get_cost_summary()
        if not summary.total_requests:
            return recommendations

        if summary.total_tokens:
            cache_rate = summary.cached_tokens / summary.total_tokens
            if cache_rate < 0.3:
                recommendations.append(
                    f"Low cache usage ({cache_rate * 100:.1f}%). "
                    "Consider implementing prompt caching for repeated queries."
                )

        if summary.total_cost > 0:
            expensive = sum(summary.cost_by_model.get(m, 0.0) for m in EXPENSIVE_MODELS)
            expensive_percentage = expensive / summary.total_cost * 100
            if expensive_percentage > 50:
                recommendations.append(
                    f"High usage of expensive models ({expensive_percentage:.1f}%). "
                    "Consider using model routing to reduce costs."
                )

        if summary.average_cost_per_request > 0.05:
            recommendations.append(
                "High average cost per request. Consider breaking down complex requests "
                "or using smaller models for simple tasks."
            )

        return recommendations

    def export_cost_data(self, format: str = "json") -> str:
        """
        Export entries as JSON (with summary) or CSV.

        Raises:
            ValueError: If the format is not supported
        """
        entries = self.entries

        if format == "json":
            return json.dumps({
                "entries": [entry.model_dump() for entry in entries],
                "summary": self.get_cost_summary().model_dump(),
                "recommendations": self.get_optimization_recommendations(),
            }, indent=2)

        if format == "csv":
            output = io.StringIO()
            writer = csv.writer(output)
            writer.writerow(["Timestamp", "Model", "Provider", "Tokens", "Cost", "Cached", "Type"])
            for entry in entries:
                writer.writerow([
                    datetime.fromtimestamp(entry.timestamp, tz=timezone.utc).isoformat(),
                    entry.model,
                    entry.provider,
                    entry.usage.total_tokens,
                    f"{entry.cost:.4f}",
                    "Yes" if entry.cached else "No",
                    entry.request_type,
                ])
            return output.getvalue()

        raise ValueError(f"Unsupported export format: {format}")

    def prune_old_entries(self, days_to_keep: int = 30) -> int:
        """Drop entries older than the retention window. Returns how many were removed."""
        cutoff = self.clock() - days_to_keep * DAY
        with self._lock:
            before = len(self._entries)
            self._entries = [e for e in self._entries if e.timestamp > cutoff]
            removed = before - len(self._entries)

        if removed:
            logger.info(f"Pruned {removed} cost entries older than {days_to_keep} days")
        return removed
