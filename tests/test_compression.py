"""Tests for context compression."""

from datetime import datetime, timedelta

from memory.compression import (
    CompressionPolicy,
    ContextCompressionEngine,
    jaccard_similarity,
    normalize_content,
)
from memory.models import ConversationTurn, TurnMetadata
from memory.tokens import HeuristicTokenEstimator
from memory.topics import TopicStrategy, DecisionExtractor, extract_core_information

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


def make_turn(content, role="user", minutes=0, concept=None):
    metadata = TurnMetadata(concept=concept) if concept else None
    return ConversationTurn(
        role=role,
        content=content,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        metadata=metadata
    )


class TestContextCompressionEngine:
    """Test history compression into a token budget."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = ContextCompressionEngine()
        self.estimator = HeuristicTokenEstimator()

    def test_short_history_fits(self):
        """Test that a short history is kept verbatim with a full ratio."""
        history = [
            make_turn("Create a pendulum simulation", minutes=0),
            make_turn("Here is the pendulum code", role="assistant", minutes=1),
        ]

        result = self.engine.compress(history, token_budget=8000)

        assert result.compressed[:2] == history
        assert result.compression_ratio == 1.0
        assert result.token_count <= 8000
        assert "physics" in result.preserved_concepts

    def test_gravity_explanation_kept_verbatim(self):
        """Test that a small question and answer pair fits entirely."""
        history = [
            make_turn("explain gravity", minutes=0),
            make_turn(
                "A pendulum swings with period 2 * Math.PI * Math.sqrt(L / g)",
                role="assistant",
                minutes=1
            ),
        ]

        result = self.engine.compress(history, token_budget=8000)

        assert result.compressed[:2] == history
        assert result.compression_ratio == 1.0

    def test_empty_history(self):
        """Test that an empty history compresses to nothing."""
        result = self.engine.compress([], token_budget=8000)

        assert result.compressed == []
        assert result.token_count == 0
        assert result.compression_ratio == 1.0

    def test_near_duplicates_collapse_to_one(self):
        """Test that repeated turns under one topic are retained once and cached."""
        history = [
            make_turn("set length to 2m", minutes=i, concept="pendulum")
            for i in range(50)
        ]

        retained = self.engine.deduplicate(history)
        self.engine.compress(history, token_budget=8000)
        memory = self.engine.get_memory_state()

        assert len(retained) == 1
        assert memory.semantic_cache["pendulum"] == "set length to 2m"

    def test_token_budget_respected(self):
        """Test that the compressed context never exceeds the budget."""
        history = [
            make_turn(f"Show the wave with frequency {i} Hz and amplitude {i * 2}", minutes=i)
            for i in range(40)
        ]

        for budget in (0, 10, 50, 200, 8000):
            result = self.engine.compress(history, token_budget=budget)
            assert result.token_count <= budget
            assert self.estimator.estimate_turns(result.compressed) == result.token_count

    def test_ratio_in_range(self):
        """Test that the compression ratio stays within (0, 1]."""
        history = [
            make_turn(f"Explain the derivative of x^{i} step by step", minutes=i)
            for i in range(30)
        ]

        result = self.engine.compress(history, token_budget=100)

        assert 0.0 < result.compression_ratio <= 1.0

    def test_ratio_zero_when_nothing_fits(self):
        """Test that a budget too small for any turn yields an empty context and a zero ratio."""
        history = [make_turn("explain gravity")]

        for budget in (0, 1):
            result = self.engine.compress(history, token_budget=budget)

            assert result.compressed == []
            assert result.token_count == 0
            assert result.original_token_count > 0
            assert result.compression_ratio == 0.0

    def test_oversized_turn_skipped(self):
        """Test that an oversized turn is skipped and later turns are still added."""
        engine = ContextCompressionEngine(policy=CompressionPolicy(max_active_turns=3))
        history = [
            make_turn("short one", minutes=0),
            make_turn("x" * 4000, minutes=1),
            make_turn("short two", minutes=2),
        ]

        result = engine.compress(history, token_budget=50)
        contents = [turn.content for turn in result.compressed]

        assert "short one" in contents
        assert "short two" in contents
        assert "x" * 4000 not in contents

    def test_idempotent(self):
        """Test that compressing the same history twice gives the same result."""
        history = [
            make_turn("Create a pendulum with length 2m", minutes=0),
            make_turn("Set gravity to 9.81", minutes=1),
            make_turn("Set gravity to 9.81", minutes=2),
            make_turn("Show the derivative of sin(x)", minutes=3),
        ]

        first = self.engine.compress(history, token_budget=8000)
        second = self.engine.compress(history, token_budget=8000)

        assert first == second

    def test_decisions_preserved_beyond_active_window(self):
        """Test that key decisions outlive the active context window."""
        engine = ContextCompressionEngine(policy=CompressionPolicy(max_active_turns=2))
        history = [make_turn("Define pendulum length parameter as 2m", minutes=0)]
        history += [make_turn(f"filler message number {i}", minutes=i + 1) for i in range(5)]

        result = engine.compress(history, token_budget=8000)
        summaries = [t.content for t in result.compressed if t.role == "system"]

        assert any(s.startswith("[physics context]") for s in summaries)

    def test_synthetic_turns_use_history_timestamp(self):
        """Test that summary turns are stamped with the latest history timestamp."""
        history = [
            make_turn("Create a molecule viewer", minutes=0),
            make_turn("Create a molecule viewer", minutes=5),
        ]

        result = self.engine.compress(history, token_budget=8000)
        system_turns = [t for t in result.compressed if t.role == "system"]

        assert system_turns
        assert all(t.timestamp == BASE_TIME + timedelta(minutes=5) for t in system_turns)

    def test_segment_by_topics(self):
        """Test that consecutive same-topic turns share a segment."""
        history = [
            make_turn("pendulum length", minutes=0),
            make_turn("pendulum mass", minutes=1),
            make_turn("integral of x", minutes=2),
            make_turn("pendulum again", minutes=3),
        ]

        segments = self.engine.segment_by_topics(history)

        assert [s.topic for s in segments] == ["physics", "mathematics", "physics"]
        assert len(segments[0].turns) == 2

    def test_memory_round_trip(self):
        """Test that exported memory can be restored into a fresh engine."""
        self.engine.compress([make_turn("Create a wave demo")], token_budget=8000)
        state = self.engine.get_memory_state()

        other = ContextCompressionEngine()
        other.restore_memory_state(state)

        assert other.get_memory_state() == state

    def test_reset(self):
        self.engine.compress([make_turn("Create a wave demo")], token_budget=8000)
        self.engine.reset()

        memory = self.engine.get_memory_state()
        assert memory.project_memory == {}
        assert memory.educational_concepts == set()


class TestTopicStrategy:
    """Test injectable topic labelling."""

    def test_metadata_concept_wins(self):
        strategy = TopicStrategy()
        turn = make_turn("pendulum", concept="custom-topic")
        assert strategy.label_for(turn) == "custom-topic"

    def test_default_label(self):
        strategy = TopicStrategy()
        assert strategy.label_for(make_turn("hello there")) == "general"

    def test_extended_strategy(self):
        """Test that a new subject can be added without touching the engine."""
        strategy = TopicStrategy().extended(r"genome|dna|protein", "biology", rank=0)
        engine = ContextCompressionEngine(topic_strategy=strategy)

        result = engine.compress([make_turn("Create a DNA helix")], token_budget=8000)

        assert "biology" in result.preserved_concepts


class TestHelpers:
    """Test text helpers."""

    def test_normalize_content(self):
        assert normalize_content("Set  Length, to 2m!") == "set length to 2m"

    def test_jaccard_similarity(self):
        assert jaccard_similarity("a b c", "a b c") == 1.0
        assert jaccard_similarity("a b", "c d") == 0.0

    def test_extract_core_information(self):
        text = "This is basically one. Two here. Three here. Four here."
        assert extract_core_information(text) == "This is one. [...] Four here."

    def test_decision_extractor(self):
        extractor = DecisionExtractor()
        assert extractor.classify("Set the mass to 1kg") == "parameter"
        assert extractor.classify("Use the formula T = 2pi") == "formula"
        assert extractor.classify("hello") is None
