"""Lay out a bent beam path between a fixed entry and exit."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .errors import PathPlanningError
from .grid import (
    Difficulty,
    Direction,
    GridPosition,
    MaterialType,
    Water,
    entry_direction,
    exit_directions,
    is_boundary,
    manhattan_distance,
)
from .simulator import water_offset


@dataclass(frozen=True)
class ReflectionBounds:
    minimum: int
    maximum: int


REFLECTION_BOUNDS: Dict[Difficulty, ReflectionBounds] = {
    Difficulty.EASY: ReflectionBounds(2, 4),
    Difficulty.MEDIUM: ReflectionBounds(3, 6),
    Difficulty.HARD: ReflectionBounds(4, 8),
}

MIN_WAYPOINT_SPACING = 2
MAX_LAYOUT_ATTEMPTS = 200

GLASS_SUBSTITUTION_RATE = {Difficulty.EASY: 0.0, Difficulty.MEDIUM: 0.2, Difficulty.HARD: 0.25}
WATER_RATE = {Difficulty.EASY: 0.0, Difficulty.MEDIUM: 0.3, Difficulty.HARD: 0.5}
# Metal sits this many cells past a glass turn to catch the transmitted beam.
GUARD_OFFSET = 2


class Priority(Enum):
    CRITICAL = "critical"
    FILLER = "filler"


@dataclass(frozen=True)
class MaterialRequirement:
    position: GridPosition
    material_type: MaterialType
    priority: Priority = Priority.CRITICAL
    reflection_index: Optional[int] = None


@dataclass(frozen=True)
class PathPlan:
    entry: GridPosition
    exit: GridPosition
    difficulty: Difficulty
    grid_size: int
    required_reflections: int
    key_reflection_points: Tuple[GridPosition, ...]
    material_requirements: Tuple[MaterialRequirement, ...]
    complexity_score: int
    path_cells: Tuple[GridPosition, ...]

    def turn_points(self) -> List[GridPosition]:
        return [self.entry, *self.key_reflection_points, self.exit]

    def turn_directions(self, index: int) -> Tuple[Direction, Direction]:
        """Incoming and outgoing leg directions at reflection point ``index``."""

        points = self.turn_points()
        return (
            Direction.between(points[index], points[index + 1]),
            Direction.between(points[index + 1], points[index + 2]),
        )

    @property
    def critical_positions(self) -> List[GridPosition]:
        return [
            requirement.position
            for requirement in self.material_requirements
            if requirement.priority is Priority.CRITICAL
        ]


def walk_legs(points: Sequence[GridPosition]) -> List[GridPosition]:
    """Expand axis-aligned turn points into the full cell sequence."""

    cells = [points[0]]
    for start, end in zip(points, points[1:]):
        d_row, d_col = Direction.between(start, end).vector
        current = start
        while current != end:
            current = (current[0] + d_row, current[1] + d_col)
            cells.append(current)
    return cells


def complexity_score(reflections: int, material_types: Set[MaterialType]) -> int:
    return max(1, min(10, reflections + len(material_types)))


class ReversePathPlanner:
    """Plans the turns a beam must take to get from an entry to an exit.

    The last two legs are pinned by the exit, so the layout is anchored at
    both ends; the inner legs are sampled from the seeded generator and
    rejected until the geometry holds up.
    """

    def __init__(self, max_layout_attempts: int = MAX_LAYOUT_ATTEMPTS) -> None:
        self.max_layout_attempts = max_layout_attempts

    def plan(
        self,
        entry: GridPosition,
        exit: GridPosition,
        difficulty: Difficulty,
        rng: Optional[random.Random] = None,
        grid_size: Optional[int] = None,
        seed: str = "",
    ) -> PathPlan:
        size = grid_size or difficulty.grid_size
        if rng is None:
            rng = random.Random(f"{entry}:{exit}:{difficulty.value}")
        if entry == exit:
            raise PathPlanningError("Entry and exit must differ")
        for label, position in (("Entry", entry), ("Exit", exit)):
            if not is_boundary(position, size):
                raise PathPlanningError(f"{label} {position} is not on the grid boundary")

        first = Direction(entry_direction(entry, size))
        for reflections, last in self._reflection_options(entry, exit, difficulty, first, size):
            for _ in range(self.max_layout_attempts):
                points = self._sample_layout(entry, exit, first, last, reflections, size, rng)
                if points is None:
                    continue
                cells = self._trace_cells(points)
                if cells is None:
                    continue
                return self._build_plan(entry, exit, difficulty, size, points, cells, rng, seed)
        raise PathPlanningError(
            f"No layout from {entry} to {exit} for {difficulty.value} within the reflection bounds"
        )

    def _reflection_options(
        self,
        entry: GridPosition,
        exit: GridPosition,
        difficulty: Difficulty,
        first: Direction,
        size: int,
    ) -> List[Tuple[int, Direction]]:
        bounds = REFLECTION_BOUNDS[difficulty]
        preferred = manhattan_distance(entry, exit) // 3 + bounds.minimum
        preferred = max(bounds.minimum, min(bounds.maximum, preferred))
        options = []
        for last in exit_directions(exit, size):
            same_axis = last.is_vertical == first.is_vertical
            for reflections in range(bounds.minimum, bounds.maximum + 1):
                # Every turn swaps the axis of travel.
                if (reflections % 2 == 0) == same_axis:
                    options.append((reflections, last))
        options.sort(key=lambda option: (abs(option[0] - preferred), option[0]))
        return options

    @staticmethod
    def _sample_layout(
        entry: GridPosition,
        exit: GridPosition,
        first: Direction,
        last: Direction,
        reflections: int,
        size: int,
        rng: random.Random,
    ) -> Optional[List[GridPosition]]:
        points = [entry]
        current = entry
        vertical = first.is_vertical
        for leg in range(reflections + 1):
            if leg >= reflections - 1:
                target = exit[0] if vertical else exit[1]
            else:
                target = rng.randint(1, size - 2)
            following = (target, current[1]) if vertical else (current[0], target)
            if following == current:
                return None
            points.append(following)
            current = following
            vertical = not vertical

        if points[-1] != exit:
            return None
        if Direction.between(points[0], points[1]) is not first:
            return None
        if Direction.between(points[-2], points[-1]) is not last:
            return None
        waypoints = points[1:-1]
        for index, point in enumerate(waypoints):
            if point in (entry, exit):
                return None
            for other in waypoints[index + 1:]:
                if manhattan_distance(point, other) < MIN_WAYPOINT_SPACING:
                    return None
        return points

    @staticmethod
    def _trace_cells(points: List[GridPosition]) -> Optional[List[GridPosition]]:
        """Walk the legs, allowing only perpendicular crossings of plain cells."""

        entry, exit = points[0], points[-1]
        turns = set(points[1:-1])
        axes: Dict[GridPosition, Set[bool]] = {}
        cells = [entry]
        legs = list(zip(points, points[1:]))
        for leg_index, (start, end) in enumerate(legs):
            direction = Direction.between(start, end)
            d_row, d_col = direction.vector
            current = start
            while current != end:
                current = (current[0] + d_row, current[1] + d_col)
                if current == entry:
                    return None
                if current == exit and (leg_index != len(legs) - 1 or current != end):
                    return None
                if current in turns and current != end:
                    return None
                if current in axes:
                    if current in turns or direction.is_vertical in axes[current]:
                        return None
                axes.setdefault(current, set()).add(direction.is_vertical)
                cells.append(current)
        return cells

    def _build_plan(
        self,
        entry: GridPosition,
        exit: GridPosition,
        difficulty: Difficulty,
        size: int,
        points: List[GridPosition],
        cells: List[GridPosition],
        rng: random.Random,
        seed: str,
    ) -> PathPlan:
        waypoints = points[1:-1]
        requirements: List[MaterialRequirement] = []
        for index, point in enumerate(waypoints):
            material_type = MaterialType.MIRROR
            if rng.random() < GLASS_SUBSTITUTION_RATE[difficulty]:
                material_type = MaterialType.GLASS
            requirements.append(MaterialRequirement(point, material_type, Priority.CRITICAL, index))

        critical = list(waypoints)
        if rng.random() < WATER_RATE[difficulty]:
            counts: Dict[GridPosition, int] = {}
            for cell in cells:
                counts[cell] = counts.get(cell, 0) + 1
            # The beam meets cells[k] at step k - 1; water there must let it through.
            candidates = [
                cell
                for index, cell in enumerate(cells[1:-1], start=1)
                if counts[cell] == 1
                and water_offset(seed, index - 1, Water(cell).diffusion) == 0.0
                and cell not in critical
                and all(manhattan_distance(cell, other) >= MIN_WAYPOINT_SPACING for other in critical)
            ]
            if candidates:
                water = rng.choice(candidates)
                requirements.append(MaterialRequirement(water, MaterialType.WATER))
                critical.append(water)

        if difficulty is Difficulty.HARD:
            path = set(cells)
            for requirement in list(requirements):
                if requirement.material_type is not MaterialType.GLASS:
                    continue
                index = requirement.reflection_index
                incoming = Direction.between(points[index], points[index + 1])
                d_row, d_col = incoming.vector
                guard = (
                    requirement.position[0] + GUARD_OFFSET * d_row,
                    requirement.position[1] + GUARD_OFFSET * d_col,
                )
                if not (0 <= guard[0] < size and 0 <= guard[1] < size) or guard in path:
                    continue
                if any(manhattan_distance(guard, other) < MIN_WAYPOINT_SPACING for other in critical):
                    continue
                requirements.append(MaterialRequirement(guard, MaterialType.METAL))
                critical.append(guard)

        reflections = len(waypoints)
        return PathPlan(
            entry=entry,
            exit=exit,
            difficulty=difficulty,
            grid_size=size,
            required_reflections=reflections,
            key_reflection_points=tuple(waypoints),
            material_requirements=tuple(requirements),
            complexity_score=complexity_score(
                reflections, {requirement.material_type for requirement in requirements}
            ),
            path_cells=tuple(cells),
        )
