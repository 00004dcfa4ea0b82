"""Exceptions raised while generating puzzles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence, Tuple

if TYPE_CHECKING:
    from .validator import ValidationIssue, ValidationResult


class GenerationError(Exception):
    """Base class for recoverable generation failures."""

    def __init__(self, message: str, issues: Sequence["ValidationIssue"] = ()):
        super().__init__(message)
        self.issues: Tuple["ValidationIssue", ...] = tuple(issues)


class NoSolution(GenerationError):
    pass


class MultipleSolutions(GenerationError):
    pass


class InfiniteLoopDetected(GenerationError):
    pass


class PhysicsViolation(GenerationError):
    pass


class PlacementViolation(GenerationError):
    pass


class LowConfidence(GenerationError):
    pass


class PathPlanningError(GenerationError):
    pass


class PlacementError(GenerationError):
    pass


class GenerationExhausted(Exception):
    """Raised when neither generation nor the backup puzzle succeeded."""


_ISSUE_ERRORS = {
    "infinite_loop": InfiniteLoopDetected,
    "no_solution": NoSolution,
    "placement_violation": PlacementViolation,
    "physics_violation": PhysicsViolation,
    "multiple_solutions": MultipleSolutions,
}


def error_for_result(result: "ValidationResult", threshold: float = 0.0) -> GenerationError:
    """Pick the exception describing why ``result`` was rejected."""

    critical = [issue for issue in result.issues if issue.severity.value == "critical"]
    for issue_type, error_class in _ISSUE_ERRORS.items():
        matching = [issue for issue in critical if issue.type.value == issue_type]
        if matching:
            return error_class(matching[0].description, critical)
    if not result.has_unique_solution:
        return MultipleSolutions("Puzzle does not have a unique solution", result.issues)
    return LowConfidence(
        f"Confidence {result.confidence_score:.1f} is below {threshold:.1f}", result.issues
    )
