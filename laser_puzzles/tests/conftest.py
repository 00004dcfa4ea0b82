"""Shared pytest fixtures for the puzzle engine tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Sequence

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from laser_puzzles.grid import Difficulty, Grid, GridPosition, Material
from laser_puzzles.puzzle import Puzzle, assemble_puzzle
from laser_puzzles.simulator import BeamSimulator


@pytest.fixture
def simulator() -> BeamSimulator:
    return BeamSimulator()


@pytest.fixture
def make_puzzle(simulator: BeamSimulator) -> Callable[..., Puzzle]:
    """Build a puzzle around a hand-placed layout, simulating its path."""

    def factory(
        materials: Sequence[Material],
        entry: GridPosition,
        solution: GridPosition,
        size: int = 6,
        difficulty: Difficulty = Difficulty.EASY,
        puzzle_id: str = "puzzle_test",
    ) -> Puzzle:
        grid = Grid.from_materials(size, materials, seed=puzzle_id)
        path = simulator.simulate(grid, entry)
        return assemble_puzzle(puzzle_id, difficulty, size, list(materials), entry, solution, path)

    return factory
