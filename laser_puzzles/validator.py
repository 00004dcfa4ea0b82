"""Checks that a puzzle has exactly one answer and obeys the optics rules."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Set, Tuple

from .grid import (
    SUPPORTED_GRID_SIZES,
    Absorber,
    Glass,
    Grid,
    GridPosition,
    Material,
    Metal,
    Mirror,
    Water,
    angular_difference,
    edge_neighbours,
    entry_direction,
    is_boundary,
    is_corner,
    normalize_angle,
    step_vector,
)
from .puzzle import Puzzle
from .simulator import (
    BeamSimulator,
    BeamState,
    Interaction,
    LaserPath,
    glass_branches,
    reflect,
    water_deviation_bound,
)


logger = logging.getLogger(__name__)

MATERIALITY_THRESHOLD = 0.4
MIN_ALTERNATIVE_CONFIDENCE = 0.1
MAX_ALTERNATIVES = 5
ENTRY_OFFSET_PLAUSIBILITY = 0.5
ANGLE_TOLERANCE = 1e-6
ACCURACY_WARNING_THRESHOLD = 0.9


class IssueType(Enum):
    NO_SOLUTION = "no_solution"
    MULTIPLE_SOLUTIONS = "multiple_solutions"
    INFINITE_LOOP = "infinite_loop"
    PHYSICS_VIOLATION = "physics_violation"
    PLACEMENT_VIOLATION = "placement_violation"


class Severity(Enum):
    CRITICAL = "critical"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    type: IssueType
    severity: Severity
    description: str
    affected_positions: Tuple[GridPosition, ...] = ()


@dataclass(frozen=True)
class AlternativePath:
    path: LaserPath
    confidence: float
    difference_from_primary: float
    source: str


@dataclass(frozen=True)
class MaterialInteraction:
    material: Material
    incident_angle: float
    expected_reflection: Optional[float]
    actual_reflection: Optional[float]
    accuracy_score: float
    compliant: bool


@dataclass
class PhysicsValidation:
    valid: bool
    material_interactions: List[MaterialInteraction]
    reflection_accuracy: float
    path_continuity: bool
    termination_correct: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ValidationResult:
    is_valid: bool
    has_unique_solution: bool
    alternative_count: int
    physics_compliant: bool
    confidence_score: float
    issues: List[ValidationIssue]
    validation_time_ms: float
    solution_path: Optional[LaserPath] = None
    alternatives: List[AlternativePath] = field(default_factory=list)

    @property
    def critical_issues(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is Severity.CRITICAL]


def _path_difference(first: LaserPath, second: LaserPath) -> float:
    cells_a = set(first.cells())
    cells_b = set(second.cells())
    union = cells_a | cells_b
    if not union:
        return 0.0
    return 1.0 - len(cells_a & cells_b) / len(union)


def _interaction_similarity(alternative: LaserPath, primary: LaserPath) -> float:
    alt_count = len(alternative.interactions)
    primary_count = len(primary.interactions)
    return 1.0 - abs(alt_count - primary_count) / max(alt_count, primary_count, 1)


class SolutionValidator:
    """Re-simulates puzzles and scores how trustworthy their answer is."""

    def __init__(
        self,
        simulator: Optional[BeamSimulator] = None,
        materiality_threshold: float = MATERIALITY_THRESHOLD,
    ) -> None:
        self.simulator = simulator or BeamSimulator()
        self.materiality_threshold = materiality_threshold

    def verify_unique_solution(self, puzzle: Puzzle) -> ValidationResult:
        started = time.perf_counter()
        layout_issues = self._layout_issues(puzzle)
        if layout_issues:
            logger.warning(
                "Puzzle %s cannot be simulated: %s",
                puzzle.id,
                "; ".join(issue.description for issue in layout_issues),
            )
            return ValidationResult(
                is_valid=False,
                has_unique_solution=False,
                alternative_count=0,
                physics_compliant=False,
                confidence_score=0.0,
                issues=layout_issues,
                validation_time_ms=(time.perf_counter() - started) * 1000.0,
            )

        grid = puzzle.grid()
        issues: List[ValidationIssue] = []

        for material in puzzle.materials:
            if material.position in (puzzle.entry, puzzle.solution):
                issues.append(
                    ValidationIssue(
                        IssueType.PLACEMENT_VIOLATION,
                        Severity.CRITICAL,
                        f"{material.kind.value} occupies the entry or solution cell {material.position}",
                        (material.position,),
                    )
                )

        path = self.simulator.simulate(grid, puzzle.entry)
        reaches_solution = path.exit == puzzle.solution
        if path.loop_detected:
            issues.append(
                ValidationIssue(
                    IssueType.INFINITE_LOOP,
                    Severity.CRITICAL,
                    "Beam never leaves the grid",
                    tuple(path.cells()[-1:]),
                )
            )
        elif path.exit is None:
            issues.append(
                ValidationIssue(
                    IssueType.NO_SOLUTION,
                    Severity.CRITICAL,
                    "Beam is absorbed before reaching an exit",
                    tuple(path.cells()[-1:]),
                )
            )
        elif not reaches_solution:
            issues.append(
                ValidationIssue(
                    IssueType.NO_SOLUTION,
                    Severity.CRITICAL,
                    f"Beam exits at {path.exit} instead of {puzzle.solution}",
                    (path.exit, puzzle.solution),
                )
            )

        alternatives: List[AlternativePath] = []
        if reaches_solution:
            alternatives = self.check_alternative_paths(puzzle, primary=path, grid=grid)
        material = [alt for alt in alternatives if alt.confidence >= self.materiality_threshold]
        if material:
            issues.append(
                ValidationIssue(
                    IssueType.MULTIPLE_SOLUTIONS,
                    Severity.CRITICAL,
                    f"{len(material)} plausible alternative exit(s)",
                    tuple(alt.path.exit for alt in material if alt.path.exit is not None),
                )
            )

        physics = self.validate_physics_compliance(puzzle, path, grid=grid)
        if not physics.valid:
            issues.append(
                ValidationIssue(
                    IssueType.PHYSICS_VIOLATION,
                    Severity.CRITICAL,
                    "; ".join(physics.errors) or "Physics check failed",
                    tuple(
                        check.material.position
                        for check in physics.material_interactions
                        if not check.compliant
                    ),
                )
            )
        for warning in physics.warnings:
            issues.append(ValidationIssue(IssueType.PHYSICS_VIOLATION, Severity.WARNING, warning))

        confidence = self.generate_confidence_score(puzzle, path, alternatives, physics)
        is_valid = not any(issue.severity is Severity.CRITICAL for issue in issues)
        elapsed = (time.perf_counter() - started) * 1000.0
        logger.debug(
            "Validated %s: valid=%s alternatives=%d confidence=%.1f in %.2fms",
            puzzle.id,
            is_valid,
            len(material),
            confidence,
            elapsed,
        )
        return ValidationResult(
            is_valid=is_valid,
            has_unique_solution=reaches_solution and not material,
            alternative_count=len(material),
            physics_compliant=physics.valid,
            confidence_score=confidence,
            issues=issues,
            validation_time_ms=elapsed,
            solution_path=path,
            alternatives=alternatives,
        )

    @staticmethod
    def _layout_issues(puzzle: Puzzle) -> List[ValidationIssue]:
        """Problems that stop the puzzle from being traced at all."""

        size = puzzle.grid_size
        if size not in SUPPORTED_GRID_SIZES:
            return [
                ValidationIssue(
                    IssueType.PLACEMENT_VIOLATION, Severity.CRITICAL, f"Unsupported grid size {size}"
                )
            ]

        issues: List[ValidationIssue] = []
        seen: Set[GridPosition] = set()
        shared: List[GridPosition] = []
        outside: List[GridPosition] = []
        for material in puzzle.materials:
            row, col = material.position
            if not (0 <= row < size and 0 <= col < size):
                outside.append(material.position)
            elif material.position in seen and material.position not in shared:
                shared.append(material.position)
            seen.add(material.position)
        if shared:
            issues.append(
                ValidationIssue(
                    IssueType.PLACEMENT_VIOLATION,
                    Severity.CRITICAL,
                    f"Cells holding more than one material: {shared}",
                    tuple(shared),
                )
            )
        if outside:
            issues.append(
                ValidationIssue(
                    IssueType.PLACEMENT_VIOLATION,
                    Severity.CRITICAL,
                    f"Materials outside the {size}x{size} grid: {outside}",
                    tuple(outside),
                )
            )
        for label, position in (("Entry", puzzle.entry), ("Solution", puzzle.solution)):
            if not is_boundary(position, size):
                issues.append(
                    ValidationIssue(
                        IssueType.NO_SOLUTION,
                        Severity.CRITICAL,
                        f"{label} {position} is not on the grid boundary",
                        (position,),
                    )
                )
        return issues

    def check_alternative_paths(
        self,
        puzzle: Puzzle,
        *,
        primary: Optional[LaserPath] = None,
        grid: Optional[Grid] = None,
    ) -> List[AlternativePath]:
        """Beams a player could plausibly follow to a different exit.

        Two sources are considered: the minor branch of every glass the
        solution beam crosses, and beams entering at the boundary cells
        either side of the entry.
        """

        grid = grid or puzzle.grid()
        if primary is None:
            primary = self.simulator.simulate(grid, puzzle.entry)

        candidates: List[AlternativePath] = []
        glass_hits = [
            interaction for interaction in primary.interactions if interaction.state is BeamState.SPLITTING
        ]
        for index, interaction in enumerate(glass_hits):
            if interaction.secondary is None or interaction.outgoing is None:
                continue
            if angular_difference(interaction.secondary, interaction.outgoing) <= ANGLE_TOLERANCE:
                continue
            branch = self.simulator.simulate(grid, puzzle.entry, secondary_at=index)
            if not self._is_other_answer(branch, puzzle):
                continue
            _, _, confidence = glass_branches(interaction.material, interaction.incident)
            candidates.append(
                AlternativePath(branch, confidence, _path_difference(branch, primary), "glass_branch")
            )

        direction = entry_direction(puzzle.entry, puzzle.grid_size)
        for start in edge_neighbours(puzzle.entry, puzzle.grid_size):
            if grid.material_at(start) is not None:
                continue
            offset = self.simulator.trace(grid, start, direction)
            if not self._is_other_answer(offset, puzzle):
                continue
            confidence = ENTRY_OFFSET_PLAUSIBILITY * _interaction_similarity(offset, primary)
            candidates.append(
                AlternativePath(offset, confidence, _path_difference(offset, primary), "entry_offset")
            )

        candidates = [alt for alt in candidates if alt.confidence >= MIN_ALTERNATIVE_CONFIDENCE]
        candidates.sort(key=lambda alt: alt.confidence, reverse=True)
        return candidates[:MAX_ALTERNATIVES]

    @staticmethod
    def _is_other_answer(path: LaserPath, puzzle: Puzzle) -> bool:
        return path.exit is not None and path.exit != puzzle.solution

    def validate_physics_compliance(
        self,
        puzzle: Puzzle,
        path: Optional[LaserPath] = None,
        *,
        grid: Optional[Grid] = None,
    ) -> PhysicsValidation:
        grid = grid or puzzle.grid()
        if path is None:
            path = self.simulator.simulate(grid, puzzle.entry)

        errors: List[str] = []
        warnings: List[str] = []
        checks = []
        for index, interaction in enumerate(path.interactions):
            is_last = index == len(path.interactions) - 1
            check = self._check_interaction(interaction, path, is_last)
            checks.append(check)
            label = f"{interaction.material.kind.value} at {interaction.position}"
            if not check.compliant:
                errors.append(
                    f"{label} sends the beam to {check.actual_reflection}, "
                    f"expected {check.expected_reflection}"
                )
            elif check.accuracy_score < ACCURACY_WARNING_THRESHOLD:
                warnings.append(f"{label} has low reflection accuracy {check.accuracy_score:.2f}")

        accuracy = sum(check.accuracy_score for check in checks) / len(checks) if checks else 1.0
        continuity = self._path_continuity(path, puzzle.entry)
        if not continuity:
            errors.append("Path segments are not continuous")
        termination = self._termination_correct(path, grid)
        if not termination:
            errors.append(f"Beam terminates incorrectly ({path.state.value})")

        return PhysicsValidation(
            valid=all(check.compliant for check in checks) and continuity and termination,
            material_interactions=checks,
            reflection_accuracy=accuracy,
            path_continuity=continuity,
            termination_correct=termination,
            errors=errors,
            warnings=warnings,
        )

    @staticmethod
    def _check_interaction(interaction: Interaction, path: LaserPath, is_last: bool) -> MaterialInteraction:
        material = interaction.material
        incident = interaction.incident
        actual = interaction.outgoing
        allowed = ANGLE_TOLERANCE

        if isinstance(material, Absorber):
            ends_here = is_last and bool(path.segments) and path.segments[-1].end == material.position
            compliant = actual is None and ends_here
            return MaterialInteraction(material, incident, None, actual, 1.0 if compliant else 0.0, compliant)

        if isinstance(material, Mirror):
            expected = reflect(incident, material.angle)
        elif isinstance(material, Metal):
            expected = normalize_angle(incident + 180.0)
        elif isinstance(material, Glass):
            canonical, secondary, _ = glass_branches(material, incident)
            expected = secondary if interaction.took_secondary else canonical
        elif isinstance(material, Water):
            expected = normalize_angle(incident)
            allowed += water_deviation_bound(material)
        else:
            raise TypeError(f"Unsupported material: {material!r}")

        if actual is None:
            return MaterialInteraction(material, incident, expected, None, 0.0, False)
        excess = max(0.0, angular_difference(expected, actual) - allowed)
        accuracy = max(0.0, 1.0 - excess / 180.0)
        return MaterialInteraction(material, incident, expected, actual, accuracy, excess == 0.0)

    @staticmethod
    def _path_continuity(path: LaserPath, start: GridPosition) -> bool:
        if not path.segments or path.segments[0].start != start:
            return False
        previous_end = start
        for segment in path.segments:
            if segment.start != previous_end:
                return False
            if max(abs(segment.end[0] - segment.start[0]), abs(segment.end[1] - segment.start[1])) != 1:
                return False
            previous_end = segment.end
        return True

    @staticmethod
    def _termination_correct(path: LaserPath, grid: Grid) -> bool:
        if path.state is BeamState.ABSORBED:
            return bool(path.segments) and isinstance(path.segments[-1].material, Absorber)
        if path.state is not BeamState.EXITED or path.exit is None or path.final_direction is None:
            return False
        last_cell = path.segments[-1].end if path.segments else path.exit
        if last_cell != path.exit or not grid.is_boundary(path.exit):
            return False
        d_row, d_col = step_vector(path.final_direction)
        return not grid.inside((path.exit[0] + d_row, path.exit[1] + d_col))

    def generate_confidence_score(
        self,
        puzzle: Puzzle,
        path: Optional[LaserPath] = None,
        alternatives: Optional[Sequence[AlternativePath]] = None,
        physics: Optional[PhysicsValidation] = None,
    ) -> float:
        """Score from 0 to 100 combining correctness, ambiguity and physics."""

        grid = puzzle.grid()
        if path is None:
            path = self.simulator.simulate(grid, puzzle.entry)
        if alternatives is None:
            alternatives = []
            if path.exit == puzzle.solution:
                alternatives = self.check_alternative_paths(puzzle, primary=path, grid=grid)
        if physics is None:
            physics = self.validate_physics_compliance(puzzle, path, grid=grid)

        score = 100.0
        if not path.segments or path.exit is None:
            score -= 50.0
        elif path.exit != puzzle.solution:
            score -= 40.0
        score -= min(40.0, 20.0 * sum(alt.confidence for alt in alternatives))
        score -= (1.0 - physics.reflection_accuracy) * 50.0
        if not physics.valid:
            score -= 30.0
        if is_corner(puzzle.entry, puzzle.grid_size) or is_corner(puzzle.solution, puzzle.grid_size):
            score += 5.0
        return round(max(0.0, min(100.0, score)), 2)
