"""Hand-checked puzzles served when generation runs out of attempts."""

from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Tuple

from .grid import Absorber, Difficulty, Grid, GridPosition, Material, MaterialType, edge_neighbours
from .placement import MaterialPlacer
from .planner import MaterialRequirement, PathPlan, Priority, complexity_score, walk_legs
from .puzzle import Puzzle, assemble_puzzle
from .simulator import BeamSimulator


logger = logging.getLogger(__name__)

# entry, reflection points, exit
BACKUP_LAYOUTS: Dict[Difficulty, Tuple[GridPosition, Tuple[GridPosition, ...], GridPosition]] = {
    Difficulty.EASY: ((0, 1), ((3, 1), (3, 4), (1, 4)), (1, 5)),
    Difficulty.MEDIUM: ((0, 2), ((5, 2), (5, 5), (2, 5)), (2, 7)),
    Difficulty.HARD: ((0, 3), ((4, 3), (4, 6), (2, 6), (2, 8)), (9, 8)),
}


def backup_puzzle_id(difficulty: Difficulty, seed: str) -> str:
    return f"puzzle_{difficulty.value.lower()}_{seed}_backup"


def backup_plan(difficulty: Difficulty) -> PathPlan:
    entry, waypoints, exit = BACKUP_LAYOUTS[difficulty]
    points = [entry, *waypoints, exit]
    requirements = tuple(
        MaterialRequirement(point, MaterialType.MIRROR, Priority.CRITICAL, index)
        for index, point in enumerate(waypoints)
    )
    return PathPlan(
        entry=entry,
        exit=exit,
        difficulty=difficulty,
        grid_size=difficulty.grid_size,
        required_reflections=len(waypoints),
        key_reflection_points=tuple(waypoints),
        material_requirements=requirements,
        complexity_score=complexity_score(len(waypoints), {MaterialType.MIRROR}),
        path_cells=tuple(walk_legs(points)),
    )


def build_backup_puzzle(
    difficulty: Difficulty,
    seed: str,
    *,
    placer: Optional[MaterialPlacer] = None,
    simulator: Optional[BeamSimulator] = None,
) -> Puzzle:
    """Deterministic puzzle for ``difficulty``; only the id depends on ``seed``.

    Absorbers block the cells beside the entry so no neighbouring beam can
    be mistaken for the answer.
    """

    placer = placer or MaterialPlacer()
    simulator = simulator or BeamSimulator()
    plan = backup_plan(difficulty)
    size = plan.grid_size

    materials: List[Material] = placer.place_critical(plan, size)
    for position in edge_neighbours(plan.entry, size):
        if position not in plan.path_cells:
            materials.append(Absorber(position))
    materials = placer.optimize_material_density(
        materials, plan, size, random.Random(f"backup:{difficulty.value}")
    )

    puzzle_id = backup_puzzle_id(difficulty, seed)
    path = simulator.simulate(Grid.from_materials(size, materials, seed=puzzle_id), plan.entry)
    logger.debug("Built backup puzzle %s with %d materials", puzzle_id, len(materials))
    return assemble_puzzle(puzzle_id, difficulty, size, materials, plan.entry, plan.exit, path)
