"""Context compression for keeping conversation history within a token budget."""

import json
import logging
import re
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from .models import (
    CompressionResult,
    ConversationTurn,
    KeyDecision,
    MemoryLayers,
    TurnMetadata,
)
from .tokens import TokenEstimator, HeuristicTokenEstimator
from .topics import TopicStrategy, DecisionExtractor, DEFAULT_TOPIC

logger = logging.getLogger(__name__)


class CompressionPolicy(BaseModel):
    """Tunable heuristics for compression. Values are policy, not derived."""
    max_active_turns: int = Field(10, ge=0)
    similarity_threshold: float = Field(0.85, ge=0.0, le=1.0)
    project_memory_importance: float = 0.9
    semantic_cache_importance: float = 0.7
    cache_budget_fraction: float = Field(0.9, ge=0.0, le=1.0)


class TopicSegment(BaseModel):
    """A run of consecutive turns sharing one topic label."""
    topic: str
    turns: List[ConversationTurn] = Field(default_factory=list)


def normalize_content(content: str) -> str:
    """Case-fold, strip punctuation and collapse whitespace."""
    simplified = re.sub(r"[^\w\s]", "", content.lower())
    return re.sub(r"\s+", " ", simplified).strip()


def jaccard_similarity(first: str, second: str) -> float:
    """Shared words over the union of words of two normalized strings."""
    words_first = set(first.split(" "))
    words_second = set(second.split(" "))
    union = words_first | words_second
    if not union:
        return 1.0
    return len(words_first & words_second) / len(union)


class ContextCompressionEngine:
    """
    Reduces an unbounded conversation history to a token-budgeted context.

    Layers, in assembly priority order:
    - Active context: the most recent turns, always verbatim
    - Project memory: key decisions per topic, merged across passes
    - Semantic cache: deduplicated text per topic that had near-duplicates

    One engine holds per-session state and must not be shared between
    concurrent sessions.
    """

    def __init__(
        self,
        estimator: Optional[TokenEstimator] = None,
        topic_strategy: Optional[TopicStrategy] = None,
        decision_extractor: Optional[DecisionExtractor] = None,
        policy: Optional[CompressionPolicy] = None
    ):
        """
        Initialize compression engine.

        Args:
            estimator: Token estimator (default: characters / 4)
            topic_strategy: Topic labelling strategy
            decision_extractor: Key-decision heuristics
            policy: Compression thresholds
        """
        self.estimator = estimator or HeuristicTokenEstimator()
        self.topic_strategy = topic_strategy or TopicStrategy()
        self.decision_extractor = decision_extractor or DecisionExtractor()
        self.policy = policy or CompressionPolicy()
        self.memory = MemoryLayers()

    def compress(
        self,
        history: Sequence[ConversationTurn],
        token_budget: int = 8000
    ) -> CompressionResult:
        """
        Compress conversation history into a token budget.

        Args:
            history: Full conversation, oldest first
            token_budget: Maximum tokens for the compressed context

        Returns:
            CompressionResult with the compressed turns and metrics. The ratio
            is in (0, 1] when any turn fits the budget and 0.0 when none does.
        """
        token_budget = max(token_budget, 0)

        segments = self.segment_by_topics(history)
        self._update_memory_layers(history, segments)
        self._compress_redundant(segments)

        anchor = max((turn.timestamp for turn in history), default=None)
        compressed, token_count = self._assemble(token_budget, anchor)

        original_tokens = self.estimator.estimate_turns(history)
        if original_tokens > 0:
            ratio = min(token_count / original_tokens, 1.0)
        else:
            ratio = 1.0

        logger.debug(
            f"Compressed {len(history)} turns ({original_tokens} tokens) "
            f"to {len(compressed)} turns ({token_count} tokens)"
        )

        return CompressionResult(
            compressed=compressed,
            compression_ratio=ratio,
            preserved_concepts=sorted(self.memory.educational_concepts),
            token_count=token_count,
            original_token_count=original_tokens
        )

    def segment_by_topics(self, history: Sequence[ConversationTurn]) -> List[TopicSegment]:
        """Split history into consecutive same-topic segments in a single pass."""
        segments: List[TopicSegment] = []

        for turn in history:
            topic = self.topic_strategy.label_for(turn)
            if segments and segments[-1].topic == topic:
                segments[-1].turns.append(turn)
            else:
                segments.append(TopicSegment(topic=topic, turns=[turn]))

        return segments

    def deduplicate(self, turns: Sequence[ConversationTurn]) -> List[ConversationTurn]:
        """Drop turns whose normalized content is a near-duplicate of a kept turn."""
        retained = []
        retained_normalized: List[str] = []

        for turn in turns:
            normalized = normalize_content(turn.content)
            is_duplicate = any(
                jaccard_similarity(normalized, existing) > self.policy.similarity_threshold
                for existing in retained_normalized
            )
            if not is_duplicate:
                retained_normalized.append(normalized)
                retained.append(turn)

        return retained

    def _update_memory_layers(
        self,
        history: Sequence[ConversationTurn],
        segments: List[TopicSegment]
    ):
        """Refresh active context, merge key decisions and track concepts."""
        if self.policy.max_active_turns > 0:
            self.memory.active_context = list(history[-self.policy.max_active_turns:])
        else:
            self.memory.active_context = []

        for segment in segments:
            decisions = self.decision_extractor.extract(segment.turns)
            if decisions:
                self._merge_decisions(segment.topic, decisions)

            if segment.topic != DEFAULT_TOPIC:
                self.memory.educational_concepts.add(segment.topic)

    def _merge_decisions(self, topic: str, decisions: List[KeyDecision]):
        stored = self.memory.project_memory.setdefault(topic, [])
        for decision in decisions:
            if decision not in stored:
                stored.append(decision)

    def _compress_redundant(self, segments: List[TopicSegment]):
        """Populate the semantic cache for topics that contain near-duplicates."""
        turns_by_topic: dict[str, List[ConversationTurn]] = {}
        for segment in segments:
            turns_by_topic.setdefault(segment.topic, []).extend(segment.turns)

        for topic, turns in turns_by_topic.items():
            retained = self.deduplicate(turns)
            if len(retained) < len(turns):
                self.memory.semantic_cache[topic] = "\n".join(
                    turn.content for turn in retained
                )
                logger.debug(
                    f"Topic '{topic}': dropped {len(turns) - len(retained)} near-duplicate turns"
                )

    def _assemble(
        self,
        token_budget: int,
        anchor: Optional[datetime]
    ) -> tuple[List[ConversationTurn], int]:
        """Add candidates tier by tier; an oversized candidate is skipped, not fatal."""
        timestamp = anchor or datetime.now()
        compressed: List[ConversationTurn] = []
        current_tokens = 0

        # 1. Active context
        for turn in self.memory.active_context:
            tokens = self.estimator.estimate_turn(turn)
            if current_tokens + tokens <= token_budget:
                compressed.append(turn)
                current_tokens += tokens

        # 2. Key decisions from project memory
        for topic, decisions in self.memory.project_memory.items():
            serialized = json.dumps([decision.model_dump() for decision in decisions])
            summary_turn = ConversationTurn(
                role="system",
                content=f"[{topic} context]: {serialized}",
                timestamp=timestamp,
                metadata=TurnMetadata(
                    concept=topic,
                    importance=self.policy.project_memory_importance
                )
            )
            tokens = self.estimator.estimate_turn(summary_turn)
            if current_tokens + tokens <= token_budget:
                compressed.append(summary_turn)
                current_tokens += tokens

        # 3. Semantic cache, keeping headroom
        cache_budget = token_budget * self.policy.cache_budget_fraction
        for topic, cached_content in self.memory.semantic_cache.items():
            cache_turn = ConversationTurn(
                role="system",
                content=f"[{topic} summary]: {cached_content}",
                timestamp=timestamp,
                metadata=TurnMetadata(
                    concept=topic,
                    importance=self.policy.semantic_cache_importance
                )
            )
            tokens = self.estimator.estimate_turn(cache_turn)
            if current_tokens + tokens <= cache_budget:
                compressed.append(cache_turn)
                current_tokens += tokens

        return compressed, current_tokens

    def get_memory_state(self) -> MemoryLayers:
        """Snapshot of the memory layers for persistence."""
        return self.memory.model_copy(deep=True)

    def restore_memory_state(self, state: MemoryLayers):
        """Replace the memory layers with a previously saved snapshot."""
        self.memory = state.model_copy(deep=True)
        logger.info(
            f"Restored memory: {len(self.memory.project_memory)} topics, "
            f"{len(self.memory.educational_concepts)} concepts"
        )

    def reset(self):
        """Forget all memory layers."""
        self.memory = MemoryLayers()
