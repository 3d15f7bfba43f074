"""Checks over generated D3.js code, shared by incremental and final validation.

Every function here is pure: it looks only at the text it is given.
"""

import re
from typing import Callable, Optional

import esprima
from esprima.error_handler import Error as EsprimaError
from pydantic import BaseModel, Field

from schemas.validation import IssueCategory, Severity, ValidationIssue


class ValidationPolicy(BaseModel):
    """Thresholds and penalty weights. The numbers are tunable policy."""
    container_id: str = "visualization"
    min_buffer_size: int = 100  # Characters before required patterns are enforced
    missing_container_penalty: float = 0.3
    missing_interactivity_penalty: float = 0.1
    missing_labels_penalty: float = 0.2
    gravity_penalty: float = 0.2
    pendulum_formula_penalty: float = 0.1
    derivative_formula_penalty: float = 0.1
    gravity_range: tuple[float, float] = (9.7, 10.0)
    dom_mutation_threshold: int = 100


class CheckOutcome(BaseModel):
    """Findings of one check."""
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    score: Optional[float] = None


USES_D3 = re.compile(r"d3\.|import.*d3")
HAS_INTERACTIVITY = re.compile(r"\.on\(['\"](?:click|mouseover|mousemove|drag|input|change)")
HAS_LABELS = re.compile(r"\.text\(|\.append\(['\"]text")
HAS_SCALES = re.compile(r"scale(?:Linear|Log|Time|Ordinal|Band|Sqrt)")
HAS_ACCESSIBILITY = re.compile(r"aria-|role=|['\"]role['\"]")

INEFFICIENT_SELECTIONS = re.compile(r"d3\.select.*d3\.select")
HEAVY_ANIMATION = re.compile(r"setInterval|setTimeout.*\b\d{1,2}(?!\d)")
DOM_MUTATION = re.compile(r"\.(?:append|insert)\(")

# Case-sensitive: uppercase G is the universal gravitational constant
GRAVITY_ASSIGNMENT = re.compile(r"\b(?:g|[gG]ravity\w*|GRAVITY\w*)\s*[:=]\s*(-?\d+(?:\.\d+)?)")
PENDULUM_FORMULA = re.compile(r"2\s*\*\s*Math\.PI\s*\*\s*Math\.sqrt")
DERIVATIVE_FORMULA = re.compile(r"\(\s*f\(\s*x\s*\+\s*h\s*\)\s*-\s*f\(\s*x\s*\)\s*\)\s*/\s*h")
VALID_ID_SELECTOR = re.compile(r"^#[a-zA-Z][\w-]*$")

STATEMENT_TERMINATORS = (";", "}", ")")


def container_pattern(policy: ValidationPolicy) -> re.Pattern:
    container = re.escape(policy.container_id)
    return re.compile(rf"#{container}\b|\.select\(['\"]#{container}")


def looks_like_complete_statement(fragment: str) -> bool:
    """Whether a fragment appears to end a statement or block."""
    return fragment.strip().endswith(STATEMENT_TERMINATORS)


def parse_program(code: str, delegate: Optional[Callable] = None):
    """Parse code as an ES module. Raises esprima's Error on invalid syntax."""
    return esprima.parseModule(code, {"loc": True}, delegate)


def check_syntax(code: str) -> list[ValidationIssue]:
    """Syntax errors from a full parse of the code."""
    try:
        parse_program(code)
    except EsprimaError as e:
        return [ValidationIssue(
            category=IssueCategory.SYNTAX,
            severity=Severity.ERROR,
            message=getattr(e, "description", None) or str(e),
            line=getattr(e, "lineNumber", None),
            column=getattr(e, "column", None),
        )]
    except RecursionError:
        # esprima is recursive descent, deep nesting exhausts the Python stack
        return [ValidationIssue(
            category=IssueCategory.SYNTAX,
            severity=Severity.ERROR,
            message="Code nests too deeply to parse",
            suggestion="Flatten nested callbacks into named functions",
        )]
    return []


def _node_line(node) -> Optional[int]:
    loc = getattr(node, "loc", None)
    start = getattr(loc, "start", None)
    return getattr(start, "line", None)


def _callee_property(node) -> Optional[str]:
    prop = getattr(getattr(node, "callee", None), "property", None)
    return getattr(prop, "name", None)


def _first_string_argument(node) -> Optional[str]:
    arguments = getattr(node, "arguments", None) or []
    if not arguments:
        return None
    value = getattr(arguments[0], "value", None)
    return value if isinstance(value, str) else None


def inspect_tree(code: str) -> CheckOutcome:
    """
    Walk the syntax tree for D3 selection and data-binding mistakes.

    Expects code that already passed check_syntax.
    """
    outcome = CheckOutcome()
    has_join = ".join(" in code or ".enter(" in code

    def visit(node, metadata):
        if getattr(node, "type", None) != "CallExpression":
            return
        method = _callee_property(node)

        if method in ("select", "selectAll"):
            selector = _first_string_argument(node)
            if selector and selector.startswith("#") and not VALID_ID_SELECTOR.match(selector):
                outcome.warnings.append(ValidationIssue(
                    category=IssueCategory.SEMANTIC,
                    severity=Severity.WARNING,
                    message=f"Invalid ID selector: {selector}",
                    line=_node_line(node),
                    suggestion="Use valid CSS ID selector syntax",
                ))

        if method == "data" and not has_join:
            outcome.warnings.append(ValidationIssue(
                category=IssueCategory.SEMANTIC,
                severity=Severity.WARNING,
                message="Data binding without enter/update/exit pattern",
                line=_node_line(node),
                suggestion="Consider using .join() for proper data binding",
            ))

    parse_program(code, visit)
    return outcome


def check_required_patterns(buffer: str, policy: ValidationPolicy) -> list[ValidationIssue]:
    """Warnings for missing D3 usage or container once the buffer is large enough."""
    if len(buffer) <= policy.min_buffer_size:
        return []

    warnings = []
    if not USES_D3.search(buffer):
        warnings.append(ValidationIssue(
            category=IssueCategory.SEMANTIC,
            severity=Severity.WARNING,
            message="No D3.js usage detected yet",
        ))
    if not container_pattern(policy).search(buffer):
        warnings.append(ValidationIssue(
            category=IssueCategory.EDUCATIONAL,
            severity=Severity.WARNING,
            message=f"No #{policy.container_id} reference detected yet",
        ))
    return warnings


def check_performance_patterns(fragment: str) -> list[ValidationIssue]:
    """Quick performance hints for a single fragment."""
    warnings = []

    if INEFFICIENT_SELECTIONS.search(fragment):
        warnings.append(ValidationIssue(
            category=IssueCategory.PERFORMANCE,
            severity=Severity.WARNING,
            message="Multiple D3 selections detected",
            suggestion="Chain selections or cache them in variables",
        ))

    if HEAVY_ANIMATION.search(fragment):
        warnings.append(ValidationIssue(
            category=IssueCategory.PERFORMANCE,
            severity=Severity.WARNING,
            message="Potentially heavy animation loop",
            suggestion="Use requestAnimationFrame or d3.timer for smooth animations",
        ))

    return warnings


def check_educational_quality(buffer: str, policy: ValidationPolicy) -> CheckOutcome:
    """Pedagogical score starting at 1.0 with weighted penalties."""
    outcome = CheckOutcome()
    score = 1.0

    if not container_pattern(policy).search(buffer):
        outcome.errors.append(ValidationIssue(
            category=IssueCategory.EDUCATIONAL,
            severity=Severity.ERROR,
            message=f"No #{policy.container_id} container found",
            suggestion=f"Ensure code targets the #{policy.container_id} element",
        ))
        score -= policy.missing_container_penalty

    if not HAS_INTERACTIVITY.search(buffer):
        outcome.suggestions.append("Consider adding interactive elements for better engagement")
        score -= policy.missing_interactivity_penalty

    if not HAS_LABELS.search(buffer):
        outcome.warnings.append(ValidationIssue(
            category=IssueCategory.EDUCATIONAL,
            severity=Severity.WARNING,
            message="No text labels found",
            suggestion="Add labels to explain the visualization",
        ))
        score -= policy.missing_labels_penalty

    if not HAS_SCALES.search(buffer):
        outcome.suggestions.append("Consider using D3 scales for proper data mapping")

    outcome.score = max(0.0, score)
    return outcome


def _gravity_is_plausible(buffer: str, policy: ValidationPolicy) -> bool:
    low, high = policy.gravity_range
    values = [abs(float(v)) for v in GRAVITY_ASSIGNMENT.findall(buffer)]
    return bool(values) and all(low <= v <= high for v in values)


def check_scientific_accuracy(buffer: str, policy: ValidationPolicy) -> CheckOutcome:
    """Domain sanity checks, each subtracting a fixed penalty from 1.0."""
    outcome = CheckOutcome()
    accuracy = 1.0

    if "gravity" in buffer.lower() or "9.8" in buffer:
        if not _gravity_is_plausible(buffer, policy):
            outcome.warnings.append(ValidationIssue(
                category=IssueCategory.EDUCATIONAL,
                severity=Severity.WARNING,
                message="Gravity constant may be inaccurate",
                suggestion="Use g = 9.81 m/s² for Earth's gravity",
            ))
            accuracy -= policy.gravity_penalty

    if "pendulum" in buffer.lower() and not PENDULUM_FORMULA.search(buffer):
        outcome.warnings.append(ValidationIssue(
            category=IssueCategory.EDUCATIONAL,
            severity=Severity.INFO,
            message="Pendulum period formula not found",
            suggestion="Period T = 2π√(L/g) for small angles",
        ))
        accuracy -= policy.pendulum_formula_penalty

    if "derivative" in buffer.lower() and not DERIVATIVE_FORMULA.search(buffer):
        outcome.warnings.append(ValidationIssue(
            category=IssueCategory.EDUCATIONAL,
            severity=Severity.INFO,
            message="Finite-difference derivative not found",
            suggestion="Approximate f'(x) with (f(x + h) - f(x)) / h",
        ))
        accuracy -= policy.derivative_formula_penalty

    outcome.score = max(0.0, accuracy)
    return outcome


def check_performance_complete(buffer: str, policy: ValidationPolicy) -> list[ValidationIssue]:
    """Flag code that performs an excessive number of DOM mutations."""
    mutation_count = len(DOM_MUTATION.findall(buffer))
    if mutation_count > policy.dom_mutation_threshold:
        return [ValidationIssue(
            category=IssueCategory.PERFORMANCE,
            severity=Severity.WARNING,
            message=f"High number of DOM mutation calls ({mutation_count})",
            suggestion="Consider using enter/update/exit pattern for efficiency",
        )]
    return []


def check_accessibility(buffer: str) -> list[str]:
    """Accessibility suggestions."""
    suggestions = []

    if not HAS_ACCESSIBILITY.search(buffer):
        suggestions.append("Consider adding ARIA labels for screen reader accessibility")

    # Basic color contrast reminder
    if "fill" in buffer or "stroke" in buffer:
        suggestions.append("Ensure sufficient color contrast for visibility")

    return suggestions
