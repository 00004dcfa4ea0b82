import pytest

from laser_puzzles.grid import (
    Absorber,
    Difficulty,
    Direction,
    Glass,
    Grid,
    Material,
    MaterialType,
    Mirror,
    Water,
    angular_difference,
    boundary_positions,
    create_material,
    edge_neighbours,
    entry_direction,
    exit_directions,
    is_corner,
    material_density,
    normalize_angle,
    step_vector,
)


@pytest.mark.parametrize(
    "angle, expected",
    [(0, 0.0), (-90, 270.0), (720, 0.0), (405, 45.0), (-1e-17, 0.0)],
)
def test_normalize_angle_wraps_into_range(angle, expected):
    assert normalize_angle(angle) == pytest.approx(expected)
    assert 0.0 <= normalize_angle(angle) < 360.0


def test_angular_difference_takes_short_way_round():
    assert angular_difference(350, 10) == pytest.approx(20)
    assert angular_difference(90, 270) == pytest.approx(180)


@pytest.mark.parametrize(
    "direction, expected",
    [
        (0, (0, 1)),
        (90, (1, 0)),
        (99, (1, 0)),
        (180, (0, -1)),
        (270, (-1, 0)),
        (45, (1, 1)),
        (22.5, (1, 1)),
        (355, (0, 1)),
    ],
)
def test_step_vector_picks_nearest_octant(direction, expected):
    assert step_vector(direction) == expected


def test_direction_between_axis_aligned_points():
    assert Direction.between((0, 2), (4, 2)) is Direction.SOUTH
    assert Direction.between((4, 2), (4, 0)) is Direction.WEST
    with pytest.raises(ValueError):
        Direction.between((0, 0), (1, 1))
    assert Direction.from_name("north").reverse() is Direction.SOUTH


@pytest.mark.parametrize(
    "position, expected",
    [((0, 3), 90.0), ((5, 3), 270.0), ((2, 0), 0.0), ((2, 5), 180.0), ((0, 0), 90.0), ((5, 5), 270.0)],
)
def test_entry_direction_points_inward(position, expected):
    assert entry_direction(position, 6) == expected


def test_entry_direction_rejects_interior_cells():
    with pytest.raises(ValueError):
        entry_direction((2, 2), 6)


def test_exit_directions_for_corner_offer_both_sides():
    assert exit_directions((0, 5), 6) == [Direction.NORTH, Direction.EAST]
    assert exit_directions((3, 0), 6) == [Direction.WEST]


def test_edge_neighbours_follow_the_entry_edge():
    assert edge_neighbours((0, 2), 6) == [(0, 1), (0, 3)]
    assert edge_neighbours((3, 0), 6) == [(2, 0), (4, 0)]
    assert edge_neighbours((0, 0), 6) == [(0, 1)]


def test_boundary_positions_cover_each_edge_cell_once():
    positions = boundary_positions(6)

    assert len(positions) == 20
    assert len(set(positions)) == 20
    assert all(is_corner(corner, 6) for corner in [(0, 0), (0, 5), (5, 0), (5, 5)])


def test_grid_rejects_unsupported_sizes_and_overlaps():
    with pytest.raises(ValueError):
        Grid(7)
    with pytest.raises(ValueError):
        Grid.from_materials(6, [Mirror((1, 1)), Absorber((1, 1))])
    with pytest.raises(ValueError):
        Grid.from_materials(6, [Absorber((6, 1))])


def test_grid_lookup_and_boundary_checks():
    grid = Grid.from_materials(8, [Water((3, 3))])

    assert isinstance(grid.material_at((3, 3)), Water)
    assert grid.material_at((0, 0)) is None
    assert grid.is_boundary((0, 4))
    assert not grid.is_boundary((3, 3))
    assert not grid.inside((8, 0))
    assert len(list(grid.cells())) == 64


def test_material_properties_match_their_kind():
    assert Mirror((0, 0)).properties.reflectivity == 1.0
    assert Water((0, 0)).properties.diffusion == 0.3
    assert Glass((0, 0)).properties.transparency == 0.5
    assert Absorber((0, 0)).properties.absorbs
    assert Mirror((0, 0)).kind is MaterialType.MIRROR


def test_bare_material_cannot_be_built():
    with pytest.raises(TypeError):
        Material((0, 0))


def test_create_material_normalises_angles():
    mirror = create_material(MaterialType.MIRROR, (1, 2), angle=-45)

    assert mirror == Mirror((1, 2), 315.0)
    assert create_material(MaterialType.METAL, [2, 2]).position == (2, 2)


def test_difficulty_lookup_is_case_insensitive():
    assert Difficulty.from_name("hard") is Difficulty.HARD
    assert Difficulty.HARD.grid_size == 10
    with pytest.raises(ValueError):
        Difficulty.from_name("Impossible")


def test_material_density_ignores_path_cells():
    materials = [Mirror((2, 2)), Absorber((4, 4)), Absorber((0, 0))]
    path = [(0, 2), (1, 2), (2, 2)]

    assert material_density(6, materials, path) == pytest.approx(2 / 33)
