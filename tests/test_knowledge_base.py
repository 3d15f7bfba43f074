"""Tests for the educational knowledge base."""

from memory.knowledge_base import EducationalKnowledgeBase, query_words
from memory.models import EducationalConcept, ProjectState

NOW = 1_700_000_000.0


class FakeClock:
    """Settable time source."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


class TestEducationalKnowledgeBase:
    """Test concept lookup, learning paths and session progress."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.kb = EducationalKnowledgeBase(clock=self.clock)

    def test_find_similar_concepts(self):
        concepts = self.kb.find_similar_concepts("Show a pendulum swinging", limit=2)

        assert concepts
        assert concepts[0].id == "pendulum-simple"

    def test_find_by_keyword_stem(self):
        concepts = self.kb.find_similar_concepts("animate the derivatives of a parabola")

        assert concepts[0].id == "derivative-visual"

    def test_unrelated_query_finds_nothing(self):
        assert self.kb.find_similar_concepts("zzzz qqqq") == []
        assert self.kb.find_similar_concepts("") == []

    def test_find_counts_access(self):
        self.kb.find_similar_concepts("pendulum")

        concept = self.kb.get_concept("pendulum-simple")

        assert concept.access_count == 2
        assert concept.last_accessed == NOW

    def test_returned_concepts_are_copies(self):
        concept = self.kb.get_concept("pendulum-simple")
        concept.name = "changed"

        assert self.kb.get_concept("pendulum-simple").name == "Simple Pendulum"

    def test_get_missing_concept(self):
        assert self.kb.get_concept("nope") is None

    def test_learning_path(self):
        path = self.kb.get_learning_path("projectile-motion", "harmonic-motion")

        assert path == ["projectile-motion", "energy-conservation", "pendulum-simple", "harmonic-motion"]

    def test_learning_path_same_and_unconnected(self):
        assert self.kb.get_learning_path("wave-motion", "wave-motion") == ["wave-motion"]
        assert self.kb.get_learning_path("pendulum-simple", "molecular-structure") == []

    def test_add_concept_links_both_ways(self):
        self.kb.add_concept(EducationalConcept(
            id="orbital-motion",
            name="Orbital Motion",
            subject="physics",
            related_concepts=["projectile-motion"]
        ))

        assert self.kb.get_learning_path("projectile-motion", "orbital-motion") == [
            "projectile-motion", "orbital-motion"
        ]

    def test_record_conversation(self):
        linked = self.kb.record_conversation("Let the pendulum swing with a longer string")

        assert linked == ["pendulum-simple"]
        assert self.kb.record_conversation("pendulum again") == []
        assert self.kb.export_state().explored_concepts == ["pendulum-simple"]

    def test_recommendations_follow_graph(self):
        """Test that unexplored neighbours of explored concepts are recommended."""
        self.kb.record_conversation("Simple pendulum demo")

        recommended = [c.id for c in self.kb.get_recommended_concepts()]

        assert set(recommended) == {"harmonic-motion", "energy-conservation"}

    def test_recommendations_without_history(self):
        self.kb.find_similar_concepts("molecule")

        recommended = self.kb.get_recommended_concepts(limit=1)

        assert [c.id for c in recommended] == ["molecular-structure"]

    def test_add_generated_visualization(self):
        visualization = self.kb.add_generated_visualization(
            "derivative-visual", "d3.select('#visualization');", "derivative demo", 1.4
        )

        state = self.kb.export_state()
        assert visualization.quality == 1.0
        assert visualization.timestamp == NOW
        assert state.visualizations == [visualization]
        assert state.explored_concepts == ["derivative-visual"]

    def test_visualization_for_unknown_concept(self):
        self.kb.add_generated_visualization("custom", "code", "prompt", 0.8)

        state = self.kb.export_state()
        assert len(state.visualizations) == 1
        assert state.explored_concepts == []

    def test_usage_statistics(self):
        self.kb.record_conversation("pendulum")
        stats = self.kb.get_usage_statistics()

        assert stats.total_concepts == 9
        assert stats.subject_distribution == {"physics": 5, "mathematics": 2, "chemistry": 2}
        assert stats.explored_concepts == 1
        assert stats.generated_visualizations == 0
        assert 1.0 <= stats.average_difficulty <= 10.0

    def test_state_round_trip_and_reset(self):
        self.kb.record_conversation("integral under a curve")
        state = self.kb.export_state()

        other = EducationalKnowledgeBase()
        other.restore_state(state)
        assert other.export_state() == state

        other.reset()
        assert other.export_state() == ProjectState()

    def test_empty_knowledge_base(self):
        kb = EducationalKnowledgeBase(concepts=[])

        assert kb.find_similar_concepts("pendulum") == []
        assert kb.get_recommended_concepts() == []
        assert kb.get_usage_statistics().average_difficulty == 0.0


def test_query_words():
    assert query_words("Show the pendulum, a bob!") == ["pendulum", "bob"]
