"""Grid geometry and the closed set of optical materials."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Iterable, Iterator, List, Optional, Tuple


GridPosition = Tuple[int, int]

SUPPORTED_GRID_SIZES = (6, 8, 10)

# Octant index -> (row delta, col delta). Angles grow clockwise on screen.
_OCTANT_STEPS = (
    (0, 1),
    (1, 1),
    (1, 0),
    (1, -1),
    (0, -1),
    (-1, -1),
    (-1, 0),
    (-1, 1),
)


def normalize_angle(angle: float) -> float:
    value = float(angle) % 360.0
    if value >= 360.0:
        # -1e-17 % 360.0 rounds up to 360.0
        return 0.0
    return value


def angular_difference(first: float, second: float) -> float:
    """Smallest absolute angle between two directions, in degrees."""

    delta = abs(normalize_angle(first) - normalize_angle(second))
    return min(delta, 360.0 - delta)


def step_vector(direction: float) -> Tuple[int, int]:
    octant = int(math.floor(normalize_angle(direction) / 45.0 + 0.5)) % 8
    return _OCTANT_STEPS[octant]


def manhattan_distance(first: GridPosition, second: GridPosition) -> int:
    return abs(first[0] - second[0]) + abs(first[1] - second[1])


class Direction(Enum):
    """Cardinal beam directions expressed in degrees."""

    EAST = 0.0
    SOUTH = 90.0
    WEST = 180.0
    NORTH = 270.0

    @property
    def degrees(self) -> float:
        return self.value

    @property
    def vector(self) -> Tuple[int, int]:
        return step_vector(self.value)

    @property
    def is_vertical(self) -> bool:
        return self in (Direction.NORTH, Direction.SOUTH)

    @staticmethod
    def from_name(name: str) -> "Direction":
        name = name.upper()
        try:
            return Direction[name]
        except KeyError as exc:
            raise ValueError(f"Unknown direction: {name}") from exc

    @staticmethod
    def between(start: GridPosition, end: GridPosition) -> "Direction":
        """Direction of an axis-aligned move from ``start`` to ``end``."""

        d_row = end[0] - start[0]
        d_col = end[1] - start[1]
        if d_row and d_col or not (d_row or d_col):
            raise ValueError(f"{start} -> {end} is not an axis-aligned move")
        if d_row:
            return Direction.SOUTH if d_row > 0 else Direction.NORTH
        return Direction.EAST if d_col > 0 else Direction.WEST

    def reverse(self) -> "Direction":
        mapping = {
            Direction.NORTH: Direction.SOUTH,
            Direction.SOUTH: Direction.NORTH,
            Direction.EAST: Direction.WEST,
            Direction.WEST: Direction.EAST,
        }
        return mapping[self]


class Difficulty(Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @property
    def grid_size(self) -> int:
        return {Difficulty.EASY: 6, Difficulty.MEDIUM: 8, Difficulty.HARD: 10}[self]

    @staticmethod
    def from_name(name: str) -> "Difficulty":
        for difficulty in Difficulty:
            if difficulty.value.lower() == str(name).strip().lower():
                return difficulty
        raise ValueError(f"Unknown difficulty: {name}")


class MaterialType(Enum):
    MIRROR = "mirror"
    WATER = "water"
    GLASS = "glass"
    METAL = "metal"
    ABSORBER = "absorber"


@dataclass(frozen=True)
class MaterialProperties:
    reflectivity: float
    transparency: float
    diffusion: float = 0.0
    absorbs: bool = False


@dataclass(frozen=True)
class Material(ABC):
    """Base class for everything that can occupy a grid cell."""

    position: GridPosition

    kind: ClassVar[MaterialType]

    @property
    @abstractmethod
    def properties(self) -> MaterialProperties:
        ...


@dataclass(frozen=True)
class Mirror(Material):
    """Specular reflector; ``angle`` is the orientation of the surface."""

    angle: float = 45.0

    kind: ClassVar[MaterialType] = MaterialType.MIRROR

    @property
    def properties(self) -> MaterialProperties:
        return MaterialProperties(reflectivity=1.0, transparency=0.0)


@dataclass(frozen=True)
class Glass(Material):
    """Partially reflects and partially transmits the beam."""

    angle: float = 45.0
    reflectivity: float = 0.5
    transparency: float = 0.5

    kind: ClassVar[MaterialType] = MaterialType.GLASS

    @property
    def properties(self) -> MaterialProperties:
        return MaterialProperties(reflectivity=self.reflectivity, transparency=self.transparency)


@dataclass(frozen=True)
class Water(Material):
    """Bends the beam by a small bounded amount."""

    diffusion: float = 0.3

    kind: ClassVar[MaterialType] = MaterialType.WATER

    @property
    def properties(self) -> MaterialProperties:
        return MaterialProperties(reflectivity=0.8, transparency=0.0, diffusion=self.diffusion)


@dataclass(frozen=True)
class Metal(Material):
    """Sends the beam straight back."""

    kind: ClassVar[MaterialType] = MaterialType.METAL

    @property
    def properties(self) -> MaterialProperties:
        return MaterialProperties(reflectivity=1.0, transparency=0.0)


@dataclass(frozen=True)
class Absorber(Material):
    kind: ClassVar[MaterialType] = MaterialType.ABSORBER

    @property
    def properties(self) -> MaterialProperties:
        return MaterialProperties(reflectivity=0.0, transparency=0.0, absorbs=True)


def create_material(
    material_type: MaterialType,
    position: GridPosition,
    *,
    angle: Optional[float] = None,
    reflectivity: Optional[float] = None,
    transparency: Optional[float] = None,
    diffusion: Optional[float] = None,
) -> Material:
    position = (int(position[0]), int(position[1]))
    if material_type is MaterialType.MIRROR:
        return Mirror(position, normalize_angle(45.0 if angle is None else angle))
    elif material_type is MaterialType.GLASS:
        return Glass(
            position,
            normalize_angle(45.0 if angle is None else angle),
            0.5 if reflectivity is None else float(reflectivity),
            0.5 if transparency is None else float(transparency),
        )
    elif material_type is MaterialType.WATER:
        return Water(position, 0.3 if diffusion is None else float(diffusion))
    elif material_type is MaterialType.METAL:
        return Metal(position)
    elif material_type is MaterialType.ABSORBER:
        return Absorber(position)
    raise ValueError(f"Unsupported material type: {material_type}")


@dataclass
class Grid:
    """Square board with at most one material per cell."""

    size: int
    materials: Dict[GridPosition, Material] = field(default_factory=dict)
    seed: str = ""

    def __post_init__(self) -> None:
        if self.size not in SUPPORTED_GRID_SIZES:
            raise ValueError(f"Unsupported grid size: {self.size}")
        for position, material in self.materials.items():
            if position != material.position:
                raise ValueError(f"Material at {position} reports position {material.position}")
            if not self.inside(position):
                raise ValueError(f"Material outside the grid: {position}")

    @classmethod
    def from_materials(cls, size: int, materials: Iterable[Material], seed: str = "") -> "Grid":
        layout: Dict[GridPosition, Material] = {}
        for material in materials:
            if material.position in layout:
                raise ValueError(f"Two materials share cell {material.position}")
            layout[material.position] = material
        return cls(size=size, materials=layout, seed=seed)

    def inside(self, position: GridPosition) -> bool:
        row, col = position
        return 0 <= row < self.size and 0 <= col < self.size

    def is_boundary(self, position: GridPosition) -> bool:
        return is_boundary(position, self.size)

    def material_at(self, position: GridPosition) -> Optional[Material]:
        return self.materials.get(position)

    def cells(self) -> Iterator[GridPosition]:
        for row in range(self.size):
            for col in range(self.size):
                yield (row, col)


def is_boundary(position: GridPosition, size: int) -> bool:
    row, col = position
    if not (0 <= row < size and 0 <= col < size):
        return False
    return row in (0, size - 1) or col in (0, size - 1)


def is_corner(position: GridPosition, size: int) -> bool:
    row, col = position
    return row in (0, size - 1) and col in (0, size - 1)


def boundary_positions(size: int) -> List[GridPosition]:
    """Every boundary cell once: top row, bottom row, then left and right columns."""

    positions: List[GridPosition] = []
    for col in range(size):
        positions.append((0, col))
    for col in range(size):
        positions.append((size - 1, col))
    for row in range(1, size - 1):
        positions.append((row, 0))
        positions.append((row, size - 1))
    return positions


def entry_direction(position: GridPosition, size: int) -> float:
    """Inward direction for a beam entering at a boundary cell."""

    row, col = position
    if not is_boundary(position, size):
        raise ValueError(f"Entry {position} is not on the grid boundary")
    if row == 0:
        return Direction.SOUTH.degrees
    if row == size - 1:
        return Direction.NORTH.degrees
    if col == 0:
        return Direction.EAST.degrees
    return Direction.WEST.degrees


def exit_directions(position: GridPosition, size: int) -> List[Direction]:
    """Outward directions through which a beam can leave at ``position``."""

    row, col = position
    options: List[Direction] = []
    if row == 0:
        options.append(Direction.NORTH)
    if row == size - 1:
        options.append(Direction.SOUTH)
    if col == 0:
        options.append(Direction.WEST)
    if col == size - 1:
        options.append(Direction.EAST)
    return options


def edge_neighbours(position: GridPosition, size: int) -> List[GridPosition]:
    """Cells beside ``position`` perpendicular to its inward direction."""

    inward = step_vector(entry_direction(position, size))
    across = (inward[1], inward[0])
    neighbours = []
    for sign in (-1, 1):
        candidate = (position[0] + sign * across[0], position[1] + sign * across[1])
        if 0 <= candidate[0] < size and 0 <= candidate[1] < size:
            neighbours.append(candidate)
    return neighbours


def material_density(
    size: int, materials: Iterable[Material], path_cells: Iterable[GridPosition]
) -> float:
    """Share of non-path cells that hold a material."""

    path = set(path_cells)
    free_cells = size * size - len(path)
    if free_cells <= 0:
        return 0.0
    occupied = sum(1 for material in materials if material.position not in path)
    return occupied / free_cells
