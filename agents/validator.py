"""Streaming Validator for generated visualization code."""

import logging
from enum import Enum
from typing import Iterable, Iterator, Optional

from schemas.validation import StreamEvent, StreamEventType, ValidationResult
from .checks import (
    ValidationPolicy,
    check_accessibility,
    check_educational_quality,
    check_performance_complete,
    check_performance_patterns,
    check_required_patterns,
    check_scientific_accuracy,
    check_syntax,
    inspect_tree,
    looks_like_complete_statement,
)

logger = logging.getLogger(__name__)


class ValidatorState(str, Enum):
    """Lifecycle of one validation session."""
    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"


class StreamingValidator:
    """
    Validates generated D3.js code as it streams in, then runs a final battery.

    Fragments must be ingested in arrival order; the code buffer is
    order-sensitive. One instance per generation session.
    """

    def __init__(self, policy: Optional[ValidationPolicy] = None):
        """
        Initialize validator.

        Args:
            policy: Thresholds and penalty weights
        """
        self.policy = policy or ValidationPolicy()
        self.reset()

    @property
    def state(self) -> ValidatorState:
        return self._state

    @property
    def code(self) -> str:
        """Everything ingested since the last reset."""
        return self._buffer

    def reset(self):
        """Return to Idle and clear the code buffer."""
        self._state = ValidatorState.IDLE
        self._buffer = ""
        self._latest = ValidationResult()
        self._final: Optional[ValidationResult] = None

    def ingest(self, fragment: str) -> ValidationResult:
        """
        Append a fragment to the buffer and run the incremental checks.

        Args:
            fragment: Next piece of generated code

        Returns:
            Incremental ValidationResult for the buffer so far

        Raises:
            RuntimeError: If the session was already finalized
        """
        if self._state == ValidatorState.FINALIZED:
            raise RuntimeError("Validator already finalized; call reset() first")

        self._state = ValidatorState.ACCUMULATING
        self._buffer += fragment

        errors = []
        warnings = []

        if looks_like_complete_statement(fragment):
            errors.extend(check_syntax(self._buffer))

        warnings.extend(check_required_patterns(self._buffer, self.policy))
        warnings.extend(check_performance_patterns(fragment))

        self._latest = ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
        )
        return self._latest

    def finalize(self) -> ValidationResult:
        """
        Run the full validation battery on the buffer.

        Syntax failure short-circuits the remaining passes. Calling finalize
        again returns the same result until reset().
        """
        if self._final is not None:
            return self._final

        self._state = ValidatorState.FINALIZED
        code = self._buffer

        # 1. Syntax
        syntax_errors = check_syntax(code)
        if syntax_errors:
            logger.info(f"Validation stopped at syntax: {syntax_errors[0].message}")
            self._final = ValidationResult(is_valid=False, errors=syntax_errors)
            self._latest = self._final
            return self._final

        errors = []
        warnings = []
        suggestions = []

        # 2. Tree inspection
        tree = inspect_tree(code)
        errors.extend(tree.errors)
        warnings.extend(tree.warnings)

        # 3. Educational quality
        educational = check_educational_quality(code, self.policy)
        errors.extend(educational.errors)
        warnings.extend(educational.warnings)
        suggestions.extend(educational.suggestions)

        # 4. Scientific accuracy
        scientific = check_scientific_accuracy(code, self.policy)
        warnings.extend(scientific.warnings)

        # 5. Performance
        warnings.extend(check_performance_complete(code, self.policy))

        # 6. Accessibility
        suggestions.extend(check_accessibility(code))

        self._final = ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=suggestions,
            scientific_accuracy=scientific.score,
            pedagogical_quality=educational.score,
        )
        self._latest = self._final

        logger.info(
            f"Validation finished: valid={self._final.is_valid}, "
            f"errors={len(errors)}, warnings={len(warnings)}, "
            f"pedagogy={educational.score:.2f}, accuracy={scientific.score:.2f}"
        )
        return self._final

    def current_validation(self) -> ValidationResult:
        """Most recent incremental or final result."""
        return self._latest

    def validate(self, code: str) -> ValidationResult:
        """Validate a complete piece of code in one go."""
        self.reset()
        self.ingest(code)
        return self.finalize()

    def validate_stream(self, fragments: Iterable[str]) -> Iterator[StreamEvent]:
        """
        Validate fragments as they arrive.

        Yields one CODE event per fragment carrying its incremental result,
        then a single VALIDATION event with the final result.
        """
        self.reset()
        for fragment in fragments:
            position = len(self._buffer)
            incremental = self.ingest(fragment)
            yield StreamEvent(
                type=StreamEventType.CODE,
                content=fragment,
                position=position,
                validation=incremental
            )

        yield StreamEvent(
            type=StreamEventType.VALIDATION,
            position=len(self._buffer),
            validation=self.finalize()
        )
