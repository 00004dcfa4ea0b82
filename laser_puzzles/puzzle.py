"""Puzzle value objects, hint paths and JSON persistence."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .grid import (
    Difficulty,
    Grid,
    GridPosition,
    Material,
    MaterialType,
    create_material,
    material_density,
)
from .simulator import BeamState, LaserPath, PathSegment


HINT_PERCENTAGES = (25, 50, 75, 100)


@dataclass(frozen=True)
class HintPath:
    """A prefix of the solution path revealed as a hint."""

    hint_level: int
    segments: Tuple[PathSegment, ...]
    revealed_cells: Tuple[GridPosition, ...]
    percentage: int


@dataclass(frozen=True)
class Puzzle:
    id: str
    difficulty: Difficulty
    grid_size: int
    materials: Tuple[Material, ...]
    entry: GridPosition
    solution: GridPosition
    solution_path: LaserPath
    hints: Tuple[HintPath, ...] = ()
    material_density: float = 0.0

    def grid(self) -> Grid:
        return Grid.from_materials(self.grid_size, self.materials, seed=self.id)

    def material_at(self, position: GridPosition) -> Optional[Material]:
        for material in self.materials:
            if material.position == position:
                return material
        return None


def _revealed_cells(segments: Sequence[PathSegment]) -> Tuple[GridPosition, ...]:
    cells: List[GridPosition] = []
    if segments:
        cells.append(segments[0].start)
    for segment in segments:
        if segment.end not in cells:
            cells.append(segment.end)
    return tuple(cells)


def build_hints(path: LaserPath) -> Tuple[HintPath, ...]:
    """Four progressively longer prefixes covering 25/50/75/100% of the path."""

    total = path.length()
    hints = []
    for level, percentage in enumerate(HINT_PERCENTAGES, start=1):
        target = total * percentage / 100.0
        count = 0
        covered = 0.0
        while count < len(path.segments) and covered < target - 1e-9:
            covered += path.segments[count].length
            count += 1
        segments = tuple(path.segments[:count])
        hints.append(HintPath(level, segments, _revealed_cells(segments), percentage))
    return tuple(hints)


def assemble_puzzle(
    puzzle_id: str,
    difficulty: Difficulty,
    grid_size: int,
    materials: Sequence[Material],
    entry: GridPosition,
    solution: GridPosition,
    solution_path: LaserPath,
) -> Puzzle:
    return Puzzle(
        id=puzzle_id,
        difficulty=difficulty,
        grid_size=grid_size,
        materials=tuple(materials),
        entry=entry,
        solution=solution,
        solution_path=solution_path,
        hints=build_hints(solution_path),
        material_density=material_density(grid_size, materials, solution_path.cells()),
    )


def _position_payload(position: Optional[GridPosition]) -> Optional[List[int]]:
    if position is None:
        return None
    return [position[0], position[1]]


def _position(data: Optional[Sequence[int]]) -> Optional[GridPosition]:
    if data is None:
        return None
    return (int(data[0]), int(data[1]))


def material_payload(material: Material) -> Dict[str, object]:
    properties = material.properties
    payload: Dict[str, object] = {
        "type": material.kind.value,
        "position": _position_payload(material.position),
        "properties": {
            "reflectivity": properties.reflectivity,
            "transparency": properties.transparency,
            "diffusion": properties.diffusion,
            "absorbs": properties.absorbs,
        },
    }
    angle = getattr(material, "angle", None)
    if angle is not None:
        payload["angle"] = angle
    return payload


def material_from_payload(data: Dict) -> Material:
    properties = data.get("properties", {})
    material_type = MaterialType(data["type"])
    return create_material(
        material_type,
        _position(data["position"]),
        angle=data.get("angle"),
        reflectivity=properties.get("reflectivity") if material_type is MaterialType.GLASS else None,
        transparency=properties.get("transparency") if material_type is MaterialType.GLASS else None,
        diffusion=properties.get("diffusion") if material_type is MaterialType.WATER else None,
    )


def _segment_payload(segment: PathSegment) -> Dict[str, object]:
    return {
        "start": _position_payload(segment.start),
        "end": _position_payload(segment.end),
        "direction": segment.direction,
        "material": material_payload(segment.material) if segment.material else None,
        "state": segment.state.value,
    }


def _segment(data: Dict) -> PathSegment:
    material = data.get("material")
    return PathSegment(
        start=_position(data["start"]),
        end=_position(data["end"]),
        direction=float(data["direction"]),
        material=material_from_payload(material) if material else None,
        state=BeamState(data.get("state", BeamState.TRAVELING.value)),
    )


def path_payload(path: LaserPath) -> Dict[str, object]:
    return {
        "segments": [_segment_payload(segment) for segment in path.segments],
        "exit": _position_payload(path.exit),
        "terminated": path.terminated,
        "state": path.state.value,
        "final_direction": path.final_direction,
    }


def path_from_payload(data: Dict) -> LaserPath:
    final_direction = data.get("final_direction")
    return LaserPath(
        segments=tuple(_segment(segment) for segment in data.get("segments", [])),
        exit=_position(data.get("exit")),
        terminated=bool(data.get("terminated", False)),
        state=BeamState(data.get("state", BeamState.EXITED.value)),
        final_direction=float(final_direction) if final_direction is not None else None,
    )


def puzzle_to_payload(puzzle: Puzzle) -> Dict[str, object]:
    return {
        "id": puzzle.id,
        "difficulty": puzzle.difficulty.value,
        "grid_size": puzzle.grid_size,
        "entry": _position_payload(puzzle.entry),
        "solution": _position_payload(puzzle.solution),
        "material_density": puzzle.material_density,
        "materials": [material_payload(material) for material in puzzle.materials],
        "solution_path": path_payload(puzzle.solution_path),
        "hints": [
            {
                "hint_level": hint.hint_level,
                "percentage": hint.percentage,
                "revealed_cells": [_position_payload(cell) for cell in hint.revealed_cells],
                "segments": [_segment_payload(segment) for segment in hint.segments],
            }
            for hint in puzzle.hints
        ],
    }


def puzzle_from_payload(data: Dict) -> Puzzle:
    hints = tuple(
        HintPath(
            hint_level=int(hint["hint_level"]),
            segments=tuple(_segment(segment) for segment in hint.get("segments", [])),
            revealed_cells=tuple(_position(cell) for cell in hint.get("revealed_cells", [])),
            percentage=int(hint["percentage"]),
        )
        for hint in data.get("hints", [])
    )
    return Puzzle(
        id=data["id"],
        difficulty=Difficulty.from_name(data["difficulty"]),
        grid_size=int(data["grid_size"]),
        materials=tuple(material_from_payload(item) for item in data.get("materials", [])),
        entry=_position(data["entry"]),
        solution=_position(data["solution"]),
        solution_path=path_from_payload(data.get("solution_path", {})),
        hints=hints,
        material_density=float(data.get("material_density", 0.0)),
    )


def dump_puzzle(puzzle: Puzzle, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(puzzle_to_payload(puzzle), indent=2))
    return path


class PuzzleLoader:
    """Load puzzle files stored as JSON."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def load(self, name: str) -> Puzzle:
        path = self.root / f"{name}.json"
        if not path.exists():
            raise FileNotFoundError(path)
        return self.load_path(path)

    @staticmethod
    def load_path(path: Path) -> Puzzle:
        data = json.loads(Path(path).read_text())
        try:
            return puzzle_from_payload(data)
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed puzzle file {path}: {exc}") from exc

    def available(self) -> List[str]:
        return sorted(path.stem for path in self.root.glob("*.json"))
