"""Deterministic beam tracing across a material grid."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set, Tuple

from .grid import (
    Absorber,
    Glass,
    Grid,
    GridPosition,
    Material,
    Metal,
    Mirror,
    Water,
    entry_direction,
    normalize_angle,
    step_vector,
)


MAX_STEPS = 1000
# Diffusing water turns the beam by exactly one octant.
WATER_OCTANT_SHIFT = 45.0


class BeamState(Enum):
    TRAVELING = "traveling"
    REFLECTING = "reflecting"
    SPLITTING = "splitting"
    DIFFUSING = "diffusing"
    REVERSING = "reversing"
    ABSORBED = "absorbed"
    EXITED = "exited"
    LOOP_DETECTED = "loop_detected"


def reflect(direction: float, surface_angle: float) -> float:
    """Specular reflection of ``direction`` off a surface oriented at ``surface_angle``."""

    return normalize_angle(2.0 * surface_angle - direction)


def water_deviation_bound(water: Water) -> float:
    return WATER_OCTANT_SHIFT if water.diffusion > 0 else 0.0


def water_offset(seed: str, step: int, diffusion: float) -> float:
    """Turn applied by water met at ``step`` of a trace on a grid seeded with ``seed``.

    With probability ``diffusion`` the beam shifts one octant either way;
    otherwise it passes straight through.
    """

    rng = random.Random(f"{seed}:{step}")
    if rng.random() >= diffusion:
        return 0.0
    return rng.choice((-WATER_OCTANT_SHIFT, WATER_OCTANT_SHIFT))


def glass_branches(glass: Glass, direction: float) -> Tuple[float, float, float]:
    """Return ``(canonical, secondary, secondary_confidence)`` for a glass hit.

    The higher-weight branch is canonical; a tie favours the transmitted
    beam. The confidence is the minor weight over the major weight.
    """

    transmitted = normalize_angle(direction)
    reflected = reflect(direction, glass.angle)
    major = max(glass.reflectivity, glass.transparency)
    minor = min(glass.reflectivity, glass.transparency)
    confidence = minor / major if major > 0 else 0.0
    if glass.reflectivity > glass.transparency:
        return reflected, transmitted, confidence
    return transmitted, reflected, confidence


@dataclass(frozen=True)
class PathSegment:
    """One cell step; ``material`` is whatever occupies ``end``.

    ``state`` is what the beam did on entering ``end``: ``TRAVELING`` through
    an empty cell, otherwise the state set by the material there.
    """

    start: GridPosition
    end: GridPosition
    direction: float
    material: Optional[Material] = None
    state: BeamState = BeamState.TRAVELING

    @property
    def length(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])


@dataclass(frozen=True)
class Interaction:
    step: int
    position: GridPosition
    material: Material
    incident: float
    outgoing: Optional[float]
    state: BeamState
    secondary: Optional[float] = None
    took_secondary: bool = False


@dataclass(frozen=True)
class LaserPath:
    segments: Tuple[PathSegment, ...]
    exit: Optional[GridPosition]
    terminated: bool
    interactions: Tuple[Interaction, ...] = ()
    state: BeamState = BeamState.EXITED
    final_direction: Optional[float] = None

    @property
    def loop_detected(self) -> bool:
        return self.state is BeamState.LOOP_DETECTED

    @property
    def absorbed(self) -> bool:
        return self.state is BeamState.ABSORBED

    def cells(self) -> List[GridPosition]:
        if not self.segments:
            return []
        cells = [self.segments[0].start]
        cells.extend(segment.end for segment in self.segments)
        return cells

    def length(self) -> float:
        return sum(segment.length for segment in self.segments)


class BeamSimulator:
    """Traces a beam one cell at a time, applying each material it meets.

    The simulator never mutates the grid. Water diffusion draws from a
    generator seeded with the grid seed and the step index, so the same
    grid always produces the same path.
    """

    def __init__(self, max_steps: int = MAX_STEPS) -> None:
        if max_steps <= 0:
            raise ValueError("max_steps must be positive")
        self.max_steps = max_steps

    def simulate(
        self, grid: Grid, entry: GridPosition, *, secondary_at: Optional[int] = None
    ) -> LaserPath:
        return self.trace(grid, entry, entry_direction(entry, grid.size), secondary_at=secondary_at)

    def trace(
        self,
        grid: Grid,
        start: GridPosition,
        direction: float,
        *,
        secondary_at: Optional[int] = None,
    ) -> LaserPath:
        if not grid.inside(start):
            raise ValueError(f"Beam start {start} is outside the grid")

        position = start
        direction = normalize_angle(direction)
        visited: Set[Tuple[GridPosition, float]] = set()
        segments: List[PathSegment] = []
        interactions: List[Interaction] = []
        glass_hits = 0

        for step in range(self.max_steps):
            state_key = (position, round(direction, 6))
            if state_key in visited:
                return self._finish(segments, interactions, None, BeamState.LOOP_DETECTED, direction)
            visited.add(state_key)

            d_row, d_col = step_vector(direction)
            target = (position[0] + d_row, position[1] + d_col)
            if not grid.inside(target):
                return self._finish(segments, interactions, position, BeamState.EXITED, direction)

            material = grid.material_at(target)
            previous, position = position, target
            if material is None:
                segments.append(PathSegment(previous, target, direction))
                continue

            secondary: Optional[float] = None
            took_secondary = False
            if isinstance(material, Mirror):
                outgoing: Optional[float] = reflect(direction, material.angle)
                state = BeamState.REFLECTING
            elif isinstance(material, Metal):
                outgoing = normalize_angle(direction + 180.0)
                state = BeamState.REVERSING
            elif isinstance(material, Absorber):
                outgoing = None
                state = BeamState.ABSORBED
            elif isinstance(material, Glass):
                canonical, secondary, _ = glass_branches(material, direction)
                took_secondary = secondary_at is not None and glass_hits == secondary_at
                outgoing = secondary if took_secondary else canonical
                if took_secondary:
                    secondary = canonical
                glass_hits += 1
                state = BeamState.SPLITTING
            elif isinstance(material, Water):
                outgoing = normalize_angle(direction + water_offset(grid.seed, step, material.diffusion))
                state = BeamState.DIFFUSING
            else:
                raise TypeError(f"Unsupported material: {material!r}")

            segments.append(PathSegment(previous, target, direction, material, state))
            interactions.append(
                Interaction(step, position, material, direction, outgoing, state, secondary, took_secondary)
            )
            if outgoing is None:
                return self._finish(segments, interactions, None, BeamState.ABSORBED, None)
            direction = outgoing

        return self._finish(segments, interactions, None, BeamState.LOOP_DETECTED, direction)

    @staticmethod
    def _finish(
        segments: List[PathSegment],
        interactions: List[Interaction],
        exit_position: Optional[GridPosition],
        state: BeamState,
        direction: Optional[float],
    ) -> LaserPath:
        return LaserPath(
            segments=tuple(segments),
            exit=exit_position,
            terminated=state is not BeamState.EXITED,
            interactions=tuple(interactions),
            state=state,
            final_direction=direction,
        )
