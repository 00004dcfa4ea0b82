import random

import pytest

from laser_puzzles.errors import PlacementError
from laser_puzzles.grid import Difficulty, Direction, Glass, MaterialType, Mirror, material_density
from laser_puzzles.placement import DEFAULT_TARGET_DENSITY, MaterialPlacer, bisector_angle
from laser_puzzles.planner import MaterialRequirement, PathPlan, ReversePathPlanner, walk_legs
from laser_puzzles.simulator import reflect


@pytest.mark.parametrize(
    "incoming, outgoing",
    [
        (Direction.SOUTH, Direction.EAST),
        (Direction.SOUTH, Direction.WEST),
        (Direction.NORTH, Direction.EAST),
        (Direction.NORTH, Direction.WEST),
        (Direction.EAST, Direction.NORTH),
        (Direction.EAST, Direction.SOUTH),
        (Direction.WEST, Direction.NORTH),
        (Direction.WEST, Direction.SOUTH),
    ],
)
def test_bisector_angle_turns_incoming_into_outgoing(incoming, outgoing):
    angle = bisector_angle(incoming, outgoing)

    assert 0.0 <= angle < 180.0
    assert reflect(incoming.degrees, angle) == pytest.approx(outgoing.degrees)


def _plan(difficulty, seed="placement"):
    pair = {
        Difficulty.EASY: ((0, 1), (5, 4)),
        Difficulty.MEDIUM: ((0, 2), (7, 5)),
        Difficulty.HARD: ((0, 3), (9, 6)),
    }[difficulty]
    return ReversePathPlanner().plan(pair[0], pair[1], difficulty, random.Random(seed))


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_place_reaches_target_density_off_the_path(difficulty):
    plan = _plan(difficulty)

    materials = MaterialPlacer().place(plan, plan.grid_size, random.Random("fill"))

    positions = [material.position for material in materials]
    assert len(positions) == len(set(positions))
    assert plan.entry not in positions
    assert plan.exit not in positions
    critical = set(plan.critical_positions)
    assert all(position in critical for position in positions if position in plan.path_cells)
    density = material_density(plan.grid_size, materials, plan.path_cells)
    assert abs(density - DEFAULT_TARGET_DENSITY[difficulty]) <= 0.10


def test_critical_turns_get_bisector_mirrors():
    plan = _plan(Difficulty.EASY)

    materials = MaterialPlacer().place_critical(plan)

    for index, point in enumerate(plan.key_reflection_points):
        incoming, outgoing = plan.turn_directions(index)
        assert materials[index] == Mirror(point, bisector_angle(incoming, outgoing))


def test_critical_glass_favours_reflection():
    plan = PathPlan(
        entry=(0, 2),
        exit=(2, 5),
        difficulty=Difficulty.MEDIUM,
        grid_size=8,
        required_reflections=1,
        key_reflection_points=((2, 2),),
        material_requirements=(MaterialRequirement((2, 2), MaterialType.GLASS, reflection_index=0),),
        complexity_score=2,
        path_cells=tuple(walk_legs([(0, 2), (2, 2), (2, 5)])),
    )

    (glass,) = MaterialPlacer().place_critical(plan)

    assert isinstance(glass, Glass)
    assert glass.reflectivity > glass.transparency
    assert glass.angle == pytest.approx(45.0)


def test_placement_is_reproducible_for_a_seed():
    plan = _plan(Difficulty.MEDIUM)
    placer = MaterialPlacer()

    first = placer.place(plan, rng=random.Random("same"))
    second = placer.place(plan, rng=random.Random("same"))
    third = placer.place(plan, rng=random.Random("other"))

    assert first == second
    assert first != third


def test_density_optimisation_trims_surplus_fillers():
    plan = _plan(Difficulty.EASY)
    placer = MaterialPlacer()
    crowded = placer.place(plan, rng=random.Random("crowded"))

    trimmed = placer.optimize_material_density(crowded, plan, rng=random.Random("trim"), target_density=0.2)

    free_cells = plan.grid_size ** 2 - len(set(plan.path_cells))
    assert sum(1 for m in trimmed if m.position not in plan.path_cells) == round(0.2 * free_cells)
    assert set(plan.critical_positions) <= {material.position for material in trimmed}


def test_critical_material_on_the_entry_is_rejected():
    plan = PathPlan(
        entry=(0, 2),
        exit=(2, 5),
        difficulty=Difficulty.EASY,
        grid_size=6,
        required_reflections=1,
        key_reflection_points=((2, 2),),
        material_requirements=(MaterialRequirement((0, 2), MaterialType.ABSORBER),),
        complexity_score=2,
        path_cells=tuple(walk_legs([(0, 2), (2, 2), (2, 5)])),
    )

    with pytest.raises(PlacementError):
        MaterialPlacer().place_critical(plan)
