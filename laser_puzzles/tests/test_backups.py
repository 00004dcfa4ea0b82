import pytest

from laser_puzzles.backups import BACKUP_LAYOUTS, backup_plan, build_backup_puzzle
from laser_puzzles.grid import Difficulty
from laser_puzzles.placement import DEFAULT_TARGET_DENSITY
from laser_puzzles.validator import SolutionValidator


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_backup_puzzles_validate(difficulty):
    puzzle = build_backup_puzzle(difficulty, "2026-10-18")

    result = SolutionValidator().verify_unique_solution(puzzle)

    assert result.is_valid
    assert result.has_unique_solution
    assert result.confidence_score >= 70
    assert puzzle.id == f"puzzle_{difficulty.value.lower()}_2026-10-18_backup"
    assert puzzle.grid_size == difficulty.grid_size
    assert len(puzzle.hints) == 4


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_backup_puzzles_meet_density_and_keep_endpoints_clear(difficulty):
    puzzle = build_backup_puzzle(difficulty, "any")
    positions = [material.position for material in puzzle.materials]

    assert abs(puzzle.material_density - DEFAULT_TARGET_DENSITY[difficulty]) <= 0.10
    assert puzzle.entry not in positions
    assert puzzle.solution not in positions
    assert len(positions) == len(set(positions))


def test_backup_layout_ignores_the_seed():
    first = build_backup_puzzle(Difficulty.MEDIUM, "a")
    second = build_backup_puzzle(Difficulty.MEDIUM, "b")

    assert first.materials == second.materials
    assert first.solution == second.solution
    assert first.id != second.id


def test_backup_plans_follow_their_layouts():
    for difficulty, (entry, waypoints, exit) in BACKUP_LAYOUTS.items():
        plan = backup_plan(difficulty)
        assert plan.path_cells[0] == entry
        assert plan.path_cells[-1] == exit
        assert plan.key_reflection_points == waypoints
