"""Laser Puzzles package."""

from .generator import GenerationOrchestrator
from .grid import Difficulty, Grid
from .puzzle import Puzzle, PuzzleLoader
from .simulator import BeamSimulator
from .validator import SolutionValidator

__all__ = [
    "BeamSimulator",
    "Difficulty",
    "GenerationOrchestrator",
    "Grid",
    "Puzzle",
    "PuzzleLoader",
    "SolutionValidator",
]
