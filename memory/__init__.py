"""Conversation memory and context compression."""

from .models import (
    ConversationTurn,
    TurnMetadata,
    KeyDecision,
    MemoryLayers,
    CompressionResult,
    EducationalConcept,
    GeneratedVisualization,
    ProjectState,
)
from .tokens import TokenEstimator, HeuristicTokenEstimator, TiktokenEstimator, create_token_estimator
from .topics import TopicStrategy, DecisionExtractor
from .compression import ContextCompressionEngine, CompressionPolicy
from .knowledge_base import EducationalKnowledgeBase

__all__ = [
    "ConversationTurn",
    "TurnMetadata",
    "KeyDecision",
    "MemoryLayers",
    "CompressionResult",
    "EducationalConcept",
    "GeneratedVisualization",
    "ProjectState",
    "TokenEstimator",
    "HeuristicTokenEstimator",
    "TiktokenEstimator",
    "create_token_estimator",
    "TopicStrategy",
    "DecisionExtractor",
    "ContextCompressionEngine",
    "CompressionPolicy",
    "EducationalKnowledgeBase",
]
