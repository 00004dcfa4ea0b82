"""Turn a path plan into concrete materials on the grid."""

from __future__ import annotations

import random
from typing import Dict, List, Optional

from .errors import PlacementError
from .grid import (
    Difficulty,
    Direction,
    Glass,
    GridPosition,
    Material,
    MaterialType,
    Mirror,
    create_material,
    manhattan_distance,
    normalize_angle,
)
from .planner import MIN_WAYPOINT_SPACING, PathPlan, Priority


DEFAULT_TARGET_DENSITY: Dict[Difficulty, float] = {
    Difficulty.EASY: 0.70,
    Difficulty.MEDIUM: 0.80,
    Difficulty.HARD: 0.85,
}

FILLER_WEIGHTS: Dict[Difficulty, Dict[MaterialType, float]] = {
    Difficulty.EASY: {MaterialType.MIRROR: 0.7, MaterialType.ABSORBER: 0.3},
    Difficulty.MEDIUM: {
        MaterialType.MIRROR: 0.4,
        MaterialType.WATER: 0.2,
        MaterialType.GLASS: 0.2,
        MaterialType.ABSORBER: 0.2,
    },
    Difficulty.HARD: {
        MaterialType.MIRROR: 0.3,
        MaterialType.WATER: 0.2,
        MaterialType.GLASS: 0.2,
        MaterialType.METAL: 0.15,
        MaterialType.ABSORBER: 0.15,
    },
}

FILLER_MIRROR_ANGLES = tuple(float(angle) for angle in range(0, 180, 15))

# Turn glass leans on reflection so the planned branch is the canonical one.
CRITICAL_GLASS_REFLECTIVITY = 0.8
CRITICAL_GLASS_TRANSPARENCY = 0.2


def bisector_angle(incoming: Direction, outgoing: Direction) -> float:
    """Surface angle that reflects ``incoming`` into ``outgoing``."""

    return normalize_angle((incoming.degrees + outgoing.degrees) / 2.0) % 180.0


class MaterialPlacer:
    def __init__(self, target_densities: Optional[Dict[Difficulty, float]] = None) -> None:
        self.target_densities = dict(DEFAULT_TARGET_DENSITY)
        if target_densities:
            self.target_densities.update(target_densities)

    def place(
        self,
        plan: PathPlan,
        grid_size: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> List[Material]:
        size = grid_size or plan.grid_size
        if rng is None:
            rng = random.Random(f"{plan.entry}:{plan.exit}:{plan.difficulty.value}")
        critical = self.place_critical(plan, size)
        return self.optimize_material_density(critical, plan, size, rng)

    def place_critical(self, plan: PathPlan, grid_size: Optional[int] = None) -> List[Material]:
        """Materials the planned path depends on, oriented to the legs around them."""

        size = grid_size or plan.grid_size
        placed: List[Material] = []
        for requirement in plan.material_requirements:
            if requirement.priority is not Priority.CRITICAL:
                continue
            position = requirement.position
            if not (0 <= position[0] < size and 0 <= position[1] < size):
                raise PlacementError(f"Critical material at {position} is outside the grid")
            if position in (plan.entry, plan.exit):
                raise PlacementError(f"Critical material at {position} would cover the entry or exit")
            for other in placed:
                if manhattan_distance(position, other.position) < MIN_WAYPOINT_SPACING:
                    raise PlacementError(
                        f"Critical materials at {position} and {other.position} are too close"
                    )

            angle = None
            if requirement.reflection_index is not None:
                incoming, outgoing = plan.turn_directions(requirement.reflection_index)
                angle = bisector_angle(incoming, outgoing)

            if requirement.material_type is MaterialType.MIRROR:
                if angle is None:
                    raise PlacementError(f"Mirror at {position} has no reflection to serve")
                placed.append(Mirror(position, angle))
            elif requirement.material_type is MaterialType.GLASS:
                if angle is None:
                    raise PlacementError(f"Glass at {position} has no reflection to serve")
                placed.append(
                    Glass(position, angle, CRITICAL_GLASS_REFLECTIVITY, CRITICAL_GLASS_TRANSPARENCY)
                )
            else:
                placed.append(create_material(requirement.material_type, position))
        return placed

    def optimize_material_density(
        self,
        materials: List[Material],
        plan: PathPlan,
        grid_size: Optional[int] = None,
        rng: Optional[random.Random] = None,
        target_density: Optional[float] = None,
    ) -> List[Material]:
        """Fill or thin non-critical, off-path cells towards the target density."""

        size = grid_size or plan.grid_size
        if rng is None:
            rng = random.Random(f"{plan.entry}:{plan.exit}:{plan.difficulty.value}:fill")
        target = self.target_densities[plan.difficulty] if target_density is None else target_density
        path = set(plan.path_cells)
        critical = set(plan.critical_positions)

        layout: Dict[GridPosition, Material] = {}
        for material in materials:
            if material.position in path and material.position not in critical:
                continue
            if material.position in layout:
                raise PlacementError(f"Two materials share cell {material.position}")
            layout[material.position] = material

        free_cells = size * size - len(path)
        target_count = int(round(target * free_cells))
        off_path = [position for position in layout if position not in path]

        if len(off_path) > target_count:
            removable = sorted(position for position in off_path if position not in critical)
            excess = min(len(removable), len(off_path) - target_count)
            for position in rng.sample(removable, excess):
                del layout[position]
        else:
            candidates = [
                (row, col)
                for row in range(size)
                for col in range(size)
                if (row, col) not in path and (row, col) not in layout
            ]
            needed = min(target_count - len(off_path), len(candidates))
            for position in sorted(rng.sample(candidates, needed)):
                layout[position] = self._filler(position, plan.difficulty, rng)
        return list(layout.values())

    @staticmethod
    def _filler(position: GridPosition, difficulty: Difficulty, rng: random.Random) -> Material:
        weights = FILLER_WEIGHTS[difficulty]
        kinds = list(weights)
        material_type = rng.choices(kinds, weights=[weights[kind] for kind in kinds])[0]
        if material_type is MaterialType.MIRROR:
            return Mirror(position, rng.choice(FILLER_MIRROR_ANGLES))
        return create_material(material_type, position)
