"""Attempt loop that turns a difficulty and a seed into a validated puzzle."""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Dict, List, Optional

from .backups import backup_plan, build_backup_puzzle
from .config import GenerationConfig
from .errors import GenerationError, GenerationExhausted, MultipleSolutions, NoSolution, error_for_result
from .grid import Difficulty, Grid, Material
from .metrics import GenerationMetadata, GenerationMetrics
from .placement import MaterialPlacer
from .planner import PathPlan, ReversePathPlanner
from .points import SPACING, EntryExitCache, EntryExitPair, rank_entry_exit_pairs
from .puzzle import Puzzle, assemble_puzzle
from .simulator import BeamSimulator
from .validator import SolutionValidator, ValidationResult


logger = logging.getLogger(__name__)

# Pairs are drawn at random from this many of the best-ranked candidates.
PAIR_POOL_SIZE = 10


def make_puzzle_id(difficulty: Difficulty, seed: str) -> str:
    return f"puzzle_{difficulty.value.lower()}_{seed}"


class GenerationOrchestrator:
    """Plans, places, validates and retries until a puzzle is accepted.

    Every collaborator can be injected; defaults are built from ``config``.
    When the attempt or time budget runs out the deterministic backup
    puzzle for the difficulty is returned instead.
    """

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        *,
        simulator: Optional[BeamSimulator] = None,
        planner: Optional[ReversePathPlanner] = None,
        placer: Optional[MaterialPlacer] = None,
        validator: Optional[SolutionValidator] = None,
        cache: Optional[EntryExitCache] = None,
        metrics: Optional[GenerationMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or GenerationConfig()
        self.simulator = simulator or BeamSimulator()
        self.planner = planner or ReversePathPlanner()
        self.placer = placer or MaterialPlacer(self.config.target_densities)
        self.validator = validator or SolutionValidator(self.simulator)
        self.cache = cache if cache is not None else EntryExitCache()
        self.metrics = metrics if metrics is not None else GenerationMetrics()
        self.clock = clock
        self.last_metadata: Optional[GenerationMetadata] = None

    def generate_guaranteed_puzzle(self, difficulty: Difficulty, seed: str) -> Puzzle:
        started = self.clock()
        puzzle_id = make_puzzle_id(difficulty, seed)
        size = difficulty.grid_size
        ranked = rank_entry_exit_pairs(difficulty, size, SPACING[difficulty].min_distance)
        budget_seconds = self.config.time_budget_ms / 1000.0

        attempts = 0
        plan: Optional[PathPlan] = None
        pair: Optional[EntryExitPair] = None
        last_error: Optional[GenerationError] = None
        for attempt in range(1, self.config.max_generation_attempts + 1):
            if self.clock() - started > budget_seconds:
                logger.warning(
                    "Time budget of %dms exhausted for %s after %d attempt(s)",
                    self.config.time_budget_ms,
                    puzzle_id,
                    attempts,
                )
                break
            attempts = attempt
            rng = random.Random(f"{puzzle_id}:{attempt}")
            try:
                if plan is None or not isinstance(last_error, MultipleSolutions):
                    pair = self._select_pair(difficulty, size, ranked, rng, attempt)
                    plan = self.planner.plan(pair.entry, pair.exit, difficulty, rng, size, seed=puzzle_id)
                materials = self.placer.place(plan, size, rng)
                puzzle = self._assemble(puzzle_id, plan, materials)
                result = self.validator.verify_unique_solution(puzzle)
                self._check_acceptance(result)
            except GenerationError as exc:
                last_error = exc
                logger.debug("Attempt %d for %s rejected: %s", attempt, puzzle_id, exc)
                continue

            self.cache.add(difficulty, size, pair)
            self._record(puzzle, plan.complexity_score, attempts, started, result, fallback=False)
            logger.info(
                "Generated %s in %d attempt(s) with confidence %.1f",
                puzzle_id,
                attempts,
                result.confidence_score,
            )
            return puzzle

        return self._fallback(difficulty, seed, attempts, started, last_error)

    def verify_unique_solution(self, puzzle: Puzzle) -> ValidationResult:
        return self.validator.verify_unique_solution(puzzle)

    def generate_daily_puzzles(self, seed: str) -> Dict[Difficulty, Puzzle]:
        return {difficulty: self.generate_guaranteed_puzzle(difficulty, seed) for difficulty in Difficulty}

    def _select_pair(
        self,
        difficulty: Difficulty,
        size: int,
        ranked: List[EntryExitPair],
        rng: random.Random,
        attempt: int,
    ) -> EntryExitPair:
        cached = self.cache.get(difficulty, size)
        if attempt == 1 and cached:
            return rng.choice(cached)
        return rng.choice(ranked[:PAIR_POOL_SIZE])

    def _assemble(self, puzzle_id: str, plan: PathPlan, materials: List[Material]) -> Puzzle:
        grid = Grid.from_materials(plan.grid_size, materials, seed=puzzle_id)
        path = self.simulator.simulate(grid, plan.entry)
        if path.exit != plan.exit:
            raise NoSolution(f"Beam exits at {path.exit} instead of the planned {plan.exit}")
        return assemble_puzzle(
            puzzle_id, plan.difficulty, plan.grid_size, materials, plan.entry, plan.exit, path
        )

    def _check_acceptance(self, result: ValidationResult) -> None:
        if (
            result.is_valid
            and result.has_unique_solution
            and result.confidence_score >= self.config.confidence_threshold
        ):
            return
        raise error_for_result(result, self.config.confidence_threshold)

    def _fallback(
        self,
        difficulty: Difficulty,
        seed: str,
        attempts: int,
        started: float,
        last_error: Optional[GenerationError],
    ) -> Puzzle:
        reason = str(last_error) if last_error else "attempt budget exhausted"
        if not self.config.enable_fallback:
            logger.error("Generation for %s %s failed and fallback is disabled", difficulty.value, seed)
            raise GenerationExhausted(f"No puzzle for {difficulty.value} {seed}: {reason}")

        puzzle = build_backup_puzzle(difficulty, seed, placer=self.placer, simulator=self.simulator)
        result = self.validator.verify_unique_solution(puzzle)
        if not (result.is_valid and result.has_unique_solution):
            logger.error("Backup puzzle %s failed validation", puzzle.id)
            raise GenerationExhausted(f"Backup puzzle {puzzle.id} failed validation after: {reason}")

        self._record(
            puzzle,
            backup_plan(difficulty).complexity_score,
            attempts,
            started,
            result,
            fallback=True,
            failure_reason=reason,
        )
        logger.info("Using backup puzzle %s after %d attempt(s): %s", puzzle.id, attempts, reason)
        return puzzle

    def _record(
        self,
        puzzle: Puzzle,
        complexity: int,
        attempts: int,
        started: float,
        result: ValidationResult,
        *,
        fallback: bool,
        failure_reason: Optional[str] = None,
    ) -> None:
        metadata = GenerationMetadata(
            puzzle_id=puzzle.id,
            difficulty=puzzle.difficulty,
            attempts=attempts,
            generation_time_ms=(self.clock() - started) * 1000.0,
            confidence_score=result.confidence_score,
            fallback_used=fallback,
            validation_passed=result.is_valid,
            path_complexity=complexity,
            material_density=puzzle.material_density,
            failure_reason=failure_reason,
        )
        self.metrics.record(metadata)
        self.last_metadata = metadata
