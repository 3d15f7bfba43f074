"""Topic labelling and key-decision heuristics for context compression."""

import re
from typing import Optional, Sequence, Tuple

from .models import ConversationTurn, KeyDecision

DEFAULT_TOPIC = "general"

# Ranked: the first matching pattern wins
DEFAULT_TOPIC_PATTERNS: Sequence[Tuple[str, str]] = (
    (r"pendulum|wave|motion|force|energy|momentum", "physics"),
    (r"derivative|integral|calculus|algebra|geometry|vector", "mathematics"),
    (r"molecule|reaction|element|compound|periodic", "chemistry"),
    (r"d3|chart|graph|animation|interactive", "visualization"),
)

DEFAULT_DECISION_PATTERNS: Sequence[Tuple[str, str]] = (
    (r"\b(set|define|configure|parameter)", "parameter"),
    (r"\b(formula|equation|calculate)", "formula"),
    (r"\b(create|generate|show|display)", "visualization"),
)

FILLER_WORDS = re.compile(r"\b(basically|actually|just|really|very|quite)\b", re.IGNORECASE)
SENTENCE_SPLIT = re.compile(r"[.!?]+")


class TopicStrategy:
    """Assigns a topic label to a turn from a ranked list of (pattern, label) pairs."""

    def __init__(
        self,
        patterns: Optional[Sequence[Tuple[str, str]]] = None,
        default_label: str = DEFAULT_TOPIC
    ):
        """
        Initialize the strategy.

        Args:
            patterns: Ranked (regex, label) pairs, matched case-insensitively
            default_label: Label used when nothing matches
        """
        self.patterns = list(patterns if patterns is not None else DEFAULT_TOPIC_PATTERNS)
        self.default_label = default_label
        self._compiled = [
            (re.compile(pattern, re.IGNORECASE), label)
            for pattern, label in self.patterns
        ]

    def label_for(self, turn: ConversationTurn) -> str:
        """Topic label for a turn; an explicit metadata concept always wins."""
        if turn.metadata and turn.metadata.concept:
            return turn.metadata.concept

        for pattern, label in self._compiled:
            if pattern.search(turn.content):
                return label

        return self.default_label

    def extended(self, pattern: str, label: str, rank: Optional[int] = None) -> "TopicStrategy":
        """New strategy with an extra pattern inserted at rank (default: lowest)."""
        patterns = list(self.patterns)
        if rank is None:
            patterns.append((pattern, label))
        else:
            patterns.insert(rank, (pattern, label))
        return TopicStrategy(patterns, self.default_label)


def extract_core_information(content: str) -> str:
    """Drop filler words; keep first and last sentence of long passages."""
    compressed = FILLER_WORDS.sub("", content)
    compressed = re.sub(r"\s+", " ", compressed).strip()

    sentences = [s.strip() for s in SENTENCE_SPLIT.split(compressed) if s.strip()]
    if len(sentences) > 3:
        return f"{sentences[0]}. [...] {sentences[-1]}."

    return compressed


class DecisionExtractor:
    """Finds turns that carry key decisions worth keeping in project memory."""

    def __init__(
        self,
        patterns: Optional[Sequence[Tuple[str, str]]] = None,
        default_importance: float = 0.8
    ):
        self.patterns = list(patterns if patterns is not None else DEFAULT_DECISION_PATTERNS)
        self.default_importance = default_importance
        self._compiled = [
            (re.compile(pattern, re.IGNORECASE), kind)
            for pattern, kind in self.patterns
        ]

    def classify(self, content: str) -> Optional[str]:
        """Kind of decision the content expresses, or None."""
        for pattern, kind in self._compiled:
            if pattern.search(content):
                return kind
        return None

    def extract(self, turns: Sequence[ConversationTurn]) -> list[KeyDecision]:
        """Key decisions in turn order."""
        decisions = []
        for turn in turns:
            kind = self.classify(turn.content)
            if kind is None:
                continue

            importance = self.default_importance
            if turn.metadata and turn.metadata.importance is not None:
                importance = turn.metadata.importance

            decisions.append(KeyDecision(
                content=extract_core_information(turn.content),
                role=turn.role,
                kind=kind,
                importance=importance
            ))
        return decisions
