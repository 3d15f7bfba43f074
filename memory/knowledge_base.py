"""Educational concept store with a relationship graph and session progress."""

import re
import time
import uuid
import logging
import threading
from collections import deque
from typing import Callable, Dict, List, Optional, Set

from .models import (
    EducationalConcept,
    GeneratedVisualization,
    KnowledgeBaseStats,
    ParameterDefinition,
    ProjectState,
)

logger = logging.getLogger(__name__)

WORD = re.compile(r"[a-z0-9]+")
STOP_WORDS = frozenset({
    "and", "the", "for", "with", "from", "that", "this", "how", "what", "show",
    "create", "make", "build", "draw", "visualize", "visualization", "interactive",
})

NAME_MATCH_SCORE = 10.0
KEYWORD_MATCH_SCORE = 8.0
FORMULA_MATCH_SCORE = 8.0
DESCRIPTION_MATCH_SCORE = 5.0
RECENT_ACCESS_BONUS = 3.0
RECENT_ACCESS_WINDOW = 7 * 86400
POPULARITY_WEIGHT = 0.1
POPULARITY_CAP = 5.0

UNKNOWN_CONCEPT = "custom"


def query_words(text: str) -> List[str]:
    """Lowercase words of a prompt, without stop words and very short tokens."""
    return [w for w in WORD.findall(text.lower()) if len(w) >= 3 and w not in STOP_WORDS]


def base_concepts() -> List[EducationalConcept]:
    """Starter concepts for the supported subjects."""
    return [
        EducationalConcept(
            id="pendulum-simple",
            name="Simple Pendulum",
            subject="physics",
            description="A mass suspended from a pivot that can swing freely under gravity",
            keywords=["pendulum", "swing", "bob"],
            related_concepts=["harmonic-motion", "energy-conservation"],
            difficulty=3,
            visualization_types=["animation", "graph"],
            formulas=["T = 2π√(L/g)", "θ(t) = θ₀cos(ωt)"],
            parameters=[
                ParameterDefinition(
                    name="length",
                    unit="meters",
                    min_value=0.5,
                    max_value=3,
                    default=2,
                    description="Length of the pendulum string",
                    affects=["period", "frequency"]
                ),
                ParameterDefinition(
                    name="gravity",
                    unit="m/s²",
                    min_value=1,
                    max_value=20,
                    default=9.81,
                    description="Gravitational acceleration",
                    affects=["period", "frequency"]
                ),
            ]
        ),
        EducationalConcept(
            id="harmonic-motion",
            name="Simple Harmonic Motion",
            subject="physics",
            description="Periodic motion where the restoring force is proportional to displacement",
            keywords=["harmonic", "oscillat", "spring"],
            related_concepts=["pendulum-simple", "wave-motion"],
            difficulty=4,
            visualization_types=["animation", "graph"],
            formulas=["x(t) = A cos(ωt + φ)", "F = -kx"]
        ),
        EducationalConcept(
            id="energy-conservation",
            name="Conservation of Energy",
            subject="physics",
            description="Kinetic and potential energy exchange while their total stays constant",
            keywords=["energy", "kinetic", "potential"],
            prerequisites=["pendulum-simple"],
            related_concepts=["projectile-motion"],
            difficulty=5,
            visualization_types=["bar-chart", "animation"],
            formulas=["E = ½mv² + mgh"]
        ),
        EducationalConcept(
            id="projectile-motion",
            name="Projectile Motion",
            subject="physics",
            description="Motion of an object launched into the air and subject only to gravity",
            keywords=["projectile", "trajectory", "launch", "cannon"],
            difficulty=4,
            visualization_types=["animation", "trajectory"],
            formulas=["y = x tanθ - gx²/(2v²cos²θ)"]
        ),
        EducationalConcept(
            id="wave-motion",
            name="Wave Motion",
            subject="physics",
            description="A disturbance travelling through a medium with a frequency and amplitude",
            keywords=["wave", "frequency", "amplitude", "interference"],
            difficulty=5,
            visualization_types=["animation", "graph"],
            formulas=["y = A sin(kx - ωt)"]
        ),
        EducationalConcept(
            id="derivative-visual",
            name="Derivative Visualization",
            subject="mathematics",
            description="Visual representation of the derivative as the slope of a tangent line",
            keywords=["derivative", "slope", "tangent", "differentiat"],
            prerequisites=["function-basics", "limits"],
            related_concepts=["integral-visual", "rate-of-change"],
            difficulty=5,
            visualization_types=["interactive-graph", "animation"],
            formulas=["f'(x) = lim(h→0) [f(x+h) - f(x)]/h"]
        ),
        EducationalConcept(
            id="integral-visual",
            name="Integral as Area",
            subject="mathematics",
            description="The definite integral as the limit of Riemann sums under a curve",
            keywords=["integral", "riemann", "area", "integrat"],
            prerequisites=["derivative-visual"],
            difficulty=6,
            visualization_types=["interactive-graph"],
            formulas=["∫ f(x) dx ≈ Σ f(xᵢ)Δx"]
        ),
        EducationalConcept(
            id="molecular-structure",
            name="Molecular Structure",
            subject="chemistry",
            description="Atoms joined by bonds into a three-dimensional molecule",
            keywords=["molecul", "atom", "bond"],
            related_concepts=["chemical-reaction"],
            difficulty=4,
            visualization_types=["force-graph"]
        ),
        EducationalConcept(
            id="chemical-reaction",
            name="Chemical Reaction",
            subject="chemistry",
            description="Reactants rearranging into products while mass is conserved",
            keywords=["reaction", "reactant", "product", "equilibrium"],
            difficulty=6,
            visualization_types=["animation"]
        ),
    ]


class EducationalKnowledgeBase:
    """
    In-process concept graph plus the learning progress of one session.

    Concepts are linked both ways through related_concepts. The project
    state records which concepts the conversation touched and which
    visualizations were generated for them.
    """

    def __init__(
        self,
        concepts: Optional[List[EducationalConcept]] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize knowledge base.

        Args:
            concepts: Seed concepts; defaults to the built-in starter concepts
            clock: Source of epoch-seconds timestamps
        """
        self.clock = clock
        self._concepts: Dict[str, EducationalConcept] = {}
        self._graph: Dict[str, Set[str]] = {}
        self._project = ProjectState()
        self._lock = threading.Lock()

        for concept in (base_concepts() if concepts is None else concepts):
            self.add_concept(concept)

    def add_concept(self, concept: EducationalConcept):
        """Store a concept and link it with its related concepts in both directions."""
        with self._lock:
            self._concepts[concept.id] = concept.model_copy(deep=True)
            self._graph.setdefault(concept.id, set())
            for related_id in concept.related_concepts:
                self._graph[concept.id].add(related_id)
                self._graph.setdefault(related_id, set()).add(concept.id)

    def get_concept(self, concept_id: str) -> Optional[EducationalConcept]:
        """Copy of a concept, counting the access."""
        with self._lock:
            concept = self._concepts.get(concept_id)
            if concept is None:
                return None
            self._touch(concept)
            return concept.model_copy(deep=True)

    def _touch(self, concept: EducationalConcept):
        concept.last_accessed = self.clock()
        concept.access_count += 1

    def _text_score(self, concept: EducationalConcept, words: List[str]) -> float:
        name = concept.name.lower()
        description = concept.description.lower()
        formulas = " ".join(concept.formulas).lower()

        score = 0.0
        for word in words:
            if word in name:
                score += NAME_MATCH_SCORE
            if any(word.startswith(keyword) for keyword in concept.keywords):
                score += KEYWORD_MATCH_SCORE
            if word in description:
                score += DESCRIPTION_MATCH_SCORE
            if word in formulas:
                score += FORMULA_MATCH_SCORE
        return score

    def find_similar_concepts(self, query: str, limit: int = 5) -> List[EducationalConcept]:
        """
        Concepts matching the words of a query, best first.

        Only concepts with a textual match are ranked. Recent access and
        popularity then add a bonus. Returned concepts count as accessed.
        """
        words = query_words(query)
        if not words or limit <= 0:
            return []

        now = self.clock()
        with self._lock:
            scored = []
            for concept in self._concepts.values():
                score = self._text_score(concept, words)
                if score <= 0:
                    continue
                if concept.last_accessed is not None and now - concept.last_accessed < RECENT_ACCESS_WINDOW:
                    score += RECENT_ACCESS_BONUS
                score += min(concept.access_count * POPULARITY_WEIGHT, POPULARITY_CAP)
                scored.append((score, concept))

            scored.sort(key=lambda item: item[0], reverse=True)
            matches = [concept for _, concept in scored[:limit]]
            for concept in matches:
                self._touch(concept)
            return [concept.model_copy(deep=True) for concept in matches]

    def get_learning_path(self, from_concept_id: str, to_concept_id: str) -> List[str]:
        """Shortest chain of concept ids linking two concepts, or [] if unconnected."""
        with self._lock:
            graph = {node: set(neighbors) for node, neighbors in self._graph.items()}

        visited = {from_concept_id}
        queue = deque([[from_concept_id]])
        while queue:
            path = queue.popleft()
            if path[-1] == to_concept_id:
                return path
            for neighbor in sorted(graph.get(path[-1], ())):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(path + [neighbor])
        return []

    def record_conversation(self, text: str) -> List[str]:
        """
        Link the concepts mentioned in a conversation turn to the session.

        Returns:
            Ids of concepts newly marked as explored
        """
        words = query_words(text)
        lowered = text.lower()
        linked = []

        with self._lock:
            for concept_id, concept in self._concepts.items():
                mentioned = (
                    concept.name.lower() in lowered
                    or any(formula.lower() in lowered for formula in concept.formulas)
                    or any(w.startswith(k) for w in words for k in concept.keywords)
                )
                if mentioned and concept_id not in self._project.explored_concepts:
                    self._project.explored_concepts.append(concept_id)
                    linked.append(concept_id)

        if linked:
            logger.debug(f"Linked concepts to session: {', '.join(linked)}")
        return linked

    def add_generated_visualization(
        self,
        concept_id: str,
        code: str,
        prompt: str,
        quality: float
    ) -> GeneratedVisualization:
        """Record a validated visualization against a concept."""
        visualization = GeneratedVisualization(
            id=f"viz-{uuid.uuid4().hex[:12]}",
            concept_id=concept_id,
            code=code,
            prompt=prompt,
            timestamp=self.clock(),
            quality=min(max(quality, 0.0), 1.0)
        )
        with self._lock:
            self._project.visualizations.append(visualization)
            if concept_id in self._concepts and concept_id not in self._project.explored_concepts:
                self._project.explored_concepts.append(concept_id)

        logger.info(f"Recorded visualization {visualization.id} for concept '{concept_id}'")
        return visualization

    def get_recommended_concepts(self, limit: int = 5) -> List[EducationalConcept]:
        """
        Unexplored concepts next to the explored ones, most connected first.

        Falls back to the most accessed concepts when nothing is explored yet.
        """
        with self._lock:
            explored = set(self._project.explored_concepts)
            if not explored:
                popular = sorted(self._concepts.values(), key=lambda c: c.access_count, reverse=True)
                return [c.model_copy(deep=True) for c in popular[:limit]]

            counts: Dict[str, int] = {}
            for concept_id in self._project.explored_concepts:
                for related_id in sorted(self._graph.get(concept_id, ())):
                    if related_id not in explored and related_id in self._concepts:
                        counts[related_id] = counts.get(related_id, 0) + 1

            ranked = sorted(counts, key=lambda cid: counts[cid], reverse=True)
            return [self._concepts[cid].model_copy(deep=True) for cid in ranked[:limit]]

    def get_usage_statistics(self) -> KnowledgeBaseStats:
        with self._lock:
            concepts = list(self._concepts.values())
            explored = len(self._project.explored_concepts)
            visualizations = len(self._project.visualizations)

        distribution: Dict[str, int] = {}
        for concept in concepts:
            distribution[concept.subject] = distribution.get(concept.subject, 0) + 1

        most_accessed = sorted(concepts, key=lambda c: c.access_count, reverse=True)[:5]
        return KnowledgeBaseStats(
            total_concepts=len(concepts),
            most_accessed=[c.id for c in most_accessed],
            average_difficulty=sum(c.difficulty for c in concepts) / len(concepts) if concepts else 0.0,
            subject_distribution=distribution,
            explored_concepts=explored,
            generated_visualizations=visualizations
        )

    def export_state(self) -> ProjectState:
        with self._lock:
            return self._project.model_copy(deep=True)

    def restore_state(self, state: ProjectState):
        with self._lock:
            self._project = state.model_copy(deep=True)

    def reset(self):
        """Forget the session's progress; concepts are kept."""
        with self._lock:
            self._project = ProjectState()
