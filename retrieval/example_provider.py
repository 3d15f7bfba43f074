"""Example provider interface with in-memory implementation."""

import re
import uuid
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from schemas.retrieval import CodeExample, CorpusStats, RetrievalResult

logger = logging.getLogger(__name__)

WORD = re.compile(r"[a-z0-9]+")


class ExampleProvider(ABC):
    """Source of previously generated visualizations to use as few-shot context."""

    @abstractmethod
    def retrieve_relevant_code(
        self,
        query: str,
        k: int = 3,
        concept_type: Optional[str] = None
    ) -> list[RetrievalResult]:
        """
        Find examples relevant to a query.

        Args:
            query: User prompt
            k: Maximum number of results
            concept_type: Only return examples of this concept type

        Returns:
            Results sorted by descending score
        """
        pass

    @abstractmethod
    def add_to_corpus(
        self,
        code: str,
        concept_type: str,
        source: str = "user-generated",
        complexity: Optional[float] = None
    ) -> CodeExample:
        """Store a validated visualization for future retrieval."""
        pass

    @abstractmethod
    def get_corpus_stats(self) -> CorpusStats:
        """Describe the stored corpus."""
        pass


class InMemoryExampleProvider(ExampleProvider):
    """Keyword-matching example store held in process memory."""

    def __init__(self, examples: Optional[list[CodeExample]] = None):
        """
        Initialize store.

        Args:
            examples: Seed corpus; defaults to the built-in starter examples
        """
        self._corpus = list(examples) if examples is not None else self._create_starter_corpus()
        self._lock = threading.Lock()

    def _create_starter_corpus(self) -> list[CodeExample]:
        """Create starter examples."""
        return [
            CodeExample(
                id="pendulum-1",
                concept_type="physics",
                content=(
                    "const g = 9.81;\n"
                    "const period = 2 * Math.PI * Math.sqrt(length / g);\n"
                    "const svg = d3.select('#visualization').append('svg');\n"
                    "const bob = svg.append('circle').attr('r', 20);\n"
                    "svg.append('text').text('Simple pendulum');"
                ),
            ),
            CodeExample(
                id="derivative-1",
                concept_type="mathematics",
                content=(
                    "const h = 0.001;\n"
                    "const slope = (f(x + h) - f(x)) / h;\n"
                    "const xScale = d3.scaleLinear().domain([-5, 5]).range([0, width]);\n"
                    "d3.select('#visualization').append('path').datum(points);"
                ),
            ),
            CodeExample(
                id="molecule-1",
                concept_type="chemistry",
                content=(
                    "const atoms = d3.select('#visualization').selectAll('circle')\n"
                    "  .data(molecule.atoms)\n"
                    "  .join('circle')\n"
                    "  .attr('r', d => d.radius);"
                ),
            ),
        ]

    def retrieve_relevant_code(
        self,
        query: str,
        k: int = 3,
        concept_type: Optional[str] = None
    ) -> list[RetrievalResult]:
        """Score examples by the share of query words they contain."""
        keywords = set(WORD.findall(query.lower()))
        if not keywords or k <= 0:
            return []

        with self._lock:
            corpus = list(self._corpus)

        results = []
        for example in corpus:
            if concept_type and example.concept_type != concept_type:
                continue

            searchable_text = f"{example.id} {example.concept_type or ''} {example.content}".lower()
            matched = sum(1 for keyword in keywords if keyword in searchable_text)
            if matched:
                results.append(RetrievalResult(
                    example=example.model_copy(),
                    score=min(matched / len(keywords), 1.0)
                ))

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:k]

    def add_to_corpus(
        self,
        code: str,
        concept_type: str,
        source: str = "user-generated",
        complexity: Optional[float] = None
    ) -> CodeExample:
        example = CodeExample(
            id=f"{concept_type}-{uuid.uuid4().hex[:8]}",
            content=code,
            concept_type=concept_type,
            source=source,
            complexity=complexity
        )
        with self._lock:
            self._corpus.append(example)
        logger.info(f"Added example {example.id} to corpus ({len(code)} chars)")
        return example

    def get_corpus_stats(self) -> CorpusStats:
        with self._lock:
            corpus = list(self._corpus)

        distribution: dict[str, int] = {}
        for example in corpus:
            key = example.concept_type or "unknown"
            distribution[key] = distribution.get(key, 0) + 1

        average = sum(len(e.content) for e in corpus) / len(corpus) if corpus else 0.0
        return CorpusStats(
            total_examples=len(corpus),
            concept_distribution=distribution,
            average_example_size=average
        )
