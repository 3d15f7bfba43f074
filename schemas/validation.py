"""Validation result schemas."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class IssueCategory(str, Enum):
    """What kind of problem an issue describes."""
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    EDUCATIONAL = "educational"
    PERFORMANCE = "performance"


class Severity(str, Enum):
    """How serious an issue is."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationIssue(BaseModel):
    """A single error or warning found in generated code."""
    model_config = ConfigDict(frozen=True)

    category: IssueCategory
    severity: Severity
    message: str
    line: Optional[int] = None
    column: Optional[int] = None
    suggestion: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of an incremental or final validation pass."""
    model_config = ConfigDict(frozen=True)

    is_valid: bool = True
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    scientific_accuracy: Optional[float] = Field(None, ge=0.0, le=1.0)
    pedagogical_quality: Optional[float] = Field(None, ge=0.0, le=1.0)

    def feedback(self) -> list[str]:
        """Human-readable lines suitable for a regeneration prompt."""
        lines = []
        for issue in self.errors + self.warnings:
            line = f"[{issue.category.value}/{issue.severity.value}] {issue.message}"
            if issue.suggestion:
                line += f" ({issue.suggestion})"
            lines.append(line)
        lines.extend(self.suggestions)
        return lines


class StreamEventType(str, Enum):
    """Event kinds emitted by the streaming validator."""
    CODE = "code"
    VALIDATION = "validation"


class StreamEvent(BaseModel):
    """A code fragment with its incremental verdict, or the final verdict."""
    type: StreamEventType
    content: Optional[str] = None
    position: int = 0
    validation: Optional[ValidationResult] = None
