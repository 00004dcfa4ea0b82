"""Entry/exit pair selection along the grid boundary."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .grid import Difficulty, GridPosition, boundary_positions, is_corner, manhattan_distance


@dataclass(frozen=True)
class SpacingConfig:
    min_distance: int
    preferred_distance: int


SPACING: Dict[Difficulty, SpacingConfig] = {
    Difficulty.EASY: SpacingConfig(min_distance=3, preferred_distance=4),
    Difficulty.MEDIUM: SpacingConfig(min_distance=4, preferred_distance=6),
    Difficulty.HARD: SpacingConfig(min_distance=5, preferred_distance=8),
}

CORNER_SCORE = 1.0
EDGE_SCORE = 0.8
CORNER_MULTIPLIER = {Difficulty.EASY: 1.2, Difficulty.MEDIUM: 1.3, Difficulty.HARD: 1.4}
EDGE_MULTIPLIER = {Difficulty.EASY: 1.1, Difficulty.MEDIUM: 1.15, Difficulty.HARD: 1.2}


@dataclass(frozen=True)
class EntryExitPair:
    entry: GridPosition
    exit: GridPosition
    distance: int
    score: float = 0.0


def grid_side(position: GridPosition, size: int) -> str:
    row, col = position
    if row == 0:
        return "top"
    if row == size - 1:
        return "bottom"
    if col == 0:
        return "left"
    return "right"


def _position_score(position: GridPosition, size: int, difficulty: Difficulty) -> float:
    if is_corner(position, size):
        return CORNER_SCORE * CORNER_MULTIPLIER[difficulty]
    return EDGE_SCORE * EDGE_MULTIPLIER[difficulty]


def _opposite_side_bonus(entry: GridPosition, exit: GridPosition, size: int) -> float:
    sides = {grid_side(entry, size), grid_side(exit, size)}
    if sides in ({"top", "bottom"}, {"left", "right"}):
        return 1.0
    if len(sides) == 2:
        return 0.5
    return 0.0


def score_pair(entry: GridPosition, exit: GridPosition, size: int, difficulty: Difficulty) -> float:
    spacing = SPACING[difficulty]
    distance = manhattan_distance(entry, exit)
    max_deviation = max(
        spacing.preferred_distance - spacing.min_distance,
        size * 2 - spacing.preferred_distance,
    )
    score = (1 - abs(distance - spacing.preferred_distance) / max_deviation) * 40
    score += (_position_score(entry, size, difficulty) + _position_score(exit, size, difficulty)) * 20
    score += math.hypot(entry[0] - exit[0], entry[1] - exit[1]) / distance * 10
    score += _opposite_side_bonus(entry, exit, size) * 10
    return round(score, 2)


def rank_entry_exit_pairs(
    difficulty: Difficulty, size: int, min_distance: int = 0
) -> List[EntryExitPair]:
    """All boundary pairs far enough apart, best strategic score first."""

    minimum = max(min_distance, SPACING[difficulty].min_distance)
    boundary = boundary_positions(size)
    pairs = []
    for entry in boundary:
        for exit in boundary:
            if entry == exit:
                continue
            distance = manhattan_distance(entry, exit)
            if distance < minimum:
                continue
            pairs.append(EntryExitPair(entry, exit, distance, score_pair(entry, exit, size, difficulty)))
    pairs.sort(key=lambda pair: (-pair.score, pair.entry, pair.exit))
    return pairs


class EntryExitCache:
    """Append-only store of pairs that already produced a valid puzzle."""

    def __init__(self) -> None:
        self._pairs: Dict[Tuple[Difficulty, int], List[EntryExitPair]] = {}
        self._lock = threading.Lock()

    def get(self, difficulty: Difficulty, size: int) -> List[EntryExitPair]:
        with self._lock:
            return list(self._pairs.get((difficulty, size), ()))

    def add(self, difficulty: Difficulty, size: int, pair: EntryExitPair) -> None:
        with self._lock:
            bucket = self._pairs.setdefault((difficulty, size), [])
            if all((known.entry, known.exit) != (pair.entry, pair.exit) for known in bucket):
                bucket.append(pair)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bucket) for bucket in self._pairs.values())
