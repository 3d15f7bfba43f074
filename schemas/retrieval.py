"""Schemas for retrieved example code."""

from typing import Optional
from pydantic import BaseModel, Field


class CodeExample(BaseModel):
    """A stored visualization snippet."""
    id: str
    content: str
    concept_type: Optional[str] = None
    source: str = "builtin"
    complexity: Optional[float] = None
    language: str = "javascript"


class RetrievalResult(BaseModel):
    """An example with its relevance to a query."""
    example: CodeExample
    score: float = Field(ge=0.0, le=1.0)


class CorpusStats(BaseModel):
    """Size and makeup of an example corpus."""
    total_examples: int = 0
    concept_distribution: dict[str, int] = Field(default_factory=dict)
    average_example_size: float = 0.0
