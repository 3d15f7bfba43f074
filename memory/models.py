"""Memory data models."""

from datetime import datetime
from typing import Any, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field


class TurnMetadata(BaseModel):
    """Optional annotations carried by a conversation turn."""
    model_config = ConfigDict(frozen=True)

    concept: Optional[str] = None  # Explicit topic label, wins over keyword matching
    subject: Optional[str] = None
    visualization_type: Optional[str] = None
    importance: Optional[float] = Field(None, ge=0.0, le=1.0)


class ConversationTurn(BaseModel):
    """A single turn in a conversation. Never mutated once created."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: Optional[TurnMetadata] = None


class KeyDecision(BaseModel):
    """A parameter definition, formula or visualization request worth remembering."""
    content: str
    role: str
    kind: str
    importance: float = Field(0.8, ge=0.0, le=1.0)


class MemoryLayers(BaseModel):
    """Compression engine state rebuilt from history on every pass."""
    active_context: list[ConversationTurn] = Field(default_factory=list)
    project_memory: dict[str, list[KeyDecision]] = Field(default_factory=dict)
    semantic_cache: dict[str, str] = Field(default_factory=dict)
    educational_concepts: set[str] = Field(default_factory=set)


class CompressionResult(BaseModel):
    """Token-budgeted view of a conversation history."""
    compressed: list[ConversationTurn] = Field(default_factory=list)
    compression_ratio: float = Field(1.0, ge=0.0, le=1.0)
    preserved_concepts: list[str] = Field(default_factory=list)
    token_count: int = 0
    original_token_count: int = 0


class ParameterDefinition(BaseModel):
    """An adjustable parameter of a concept's visualization."""
    name: str
    type: Literal["number", "string", "boolean", "array"] = "number"
    unit: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    default: Any = None
    description: str = ""
    affects: list[str] = Field(default_factory=list)  # Visual elements driven by this parameter


class EducationalConcept(BaseModel):
    """A teachable concept and its place in the concept graph."""
    id: str
    name: str
    subject: str = "general"
    description: str = ""
    keywords: list[str] = Field(default_factory=list)  # Word stems that signal the concept in a prompt
    prerequisites: list[str] = Field(default_factory=list)
    related_concepts: list[str] = Field(default_factory=list)
    difficulty: int = Field(5, ge=1, le=10)
    visualization_types: list[str] = Field(default_factory=list)
    formulas: list[str] = Field(default_factory=list)
    parameters: list[ParameterDefinition] = Field(default_factory=list)
    last_accessed: Optional[float] = None  # Epoch seconds
    access_count: int = 0


class GeneratedVisualization(BaseModel):
    """A validated visualization produced in this session."""
    id: str
    concept_id: str
    code: str
    prompt: str
    timestamp: float
    quality: float = Field(0.8, ge=0.0, le=1.0)


class ProjectState(BaseModel):
    """Per-session learning progress held by the knowledge base."""
    explored_concepts: list[str] = Field(default_factory=list)
    visualizations: list[GeneratedVisualization] = Field(default_factory=list)


class KnowledgeBaseStats(BaseModel):
    total_concepts: int = 0
    most_accessed: list[str] = Field(default_factory=list)
    average_difficulty: float = 0.0
    subject_distribution: dict[str, int] = Field(default_factory=dict)
    explored_concepts: int = 0
    generated_visualizations: int = 0
