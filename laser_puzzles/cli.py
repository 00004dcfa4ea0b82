"""Command line entry point for generating and auditing puzzles."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from .config import GenerationConfig
from .errors import GenerationExhausted
from .generator import GenerationOrchestrator
from .grid import Difficulty
from .puzzle import Puzzle, PuzzleLoader, dump_puzzle
from .validator import SolutionValidator, ValidationResult


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Laser puzzle generator")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log output.")
    subcommands = parser.add_subparsers(dest="command", required=True)

    generate = subcommands.add_parser("generate", help="Generate one puzzle.")
    generate.add_argument("--difficulty", default="Easy", help="Easy, Medium or Hard.")
    generate.add_argument("--seed", required=True, help="Seed, usually the puzzle date.")
    generate.add_argument("--output", type=Path, help="Write the puzzle as JSON to this file.")
    generate.add_argument("--config", type=Path, help="JSON file with generation settings.")

    daily = subcommands.add_parser("daily", help="Generate the Easy, Medium and Hard puzzles.")
    daily.add_argument("--seed", required=True)
    daily.add_argument("--output-dir", type=Path, help="Directory for the JSON files.")
    daily.add_argument("--config", type=Path)

    audit = subcommands.add_parser("audit", help="Validate a stored puzzle file.")
    audit.add_argument("path", type=Path)
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_config(path: Optional[Path]) -> GenerationConfig:
    config = GenerationConfig.from_env()
    if path is not None:
        config = GenerationConfig.load(path, config)
    return config


def _print_puzzle(puzzle: Puzzle, result: ValidationResult) -> None:
    print(f"=== {puzzle.id} ===")
    print(f"Difficulty: {puzzle.difficulty.value} ({puzzle.grid_size}x{puzzle.grid_size})")
    print(f"Entry: {puzzle.entry}  Solution: {puzzle.solution}")
    print(f"Materials: {len(puzzle.materials)} (density {puzzle.material_density:.2f})")
    print(f"Path segments: {len(puzzle.solution_path.segments)}")
    print(f"Confidence: {result.confidence_score:.1f}")


def _run_generate(args: argparse.Namespace) -> int:
    orchestrator = GenerationOrchestrator(_load_config(args.config))
    puzzle = orchestrator.generate_guaranteed_puzzle(Difficulty.from_name(args.difficulty), args.seed)
    _print_puzzle(puzzle, orchestrator.verify_unique_solution(puzzle))
    if orchestrator.last_metadata and orchestrator.last_metadata.fallback_used:
        print("Backup puzzle used")
    if args.output:
        print(f"Written to {dump_puzzle(puzzle, args.output)}")
    return 0


def _run_daily(args: argparse.Namespace) -> int:
    orchestrator = GenerationOrchestrator(_load_config(args.config))
    puzzles = orchestrator.generate_daily_puzzles(args.seed)
    for puzzle in puzzles.values():
        _print_puzzle(puzzle, orchestrator.verify_unique_solution(puzzle))
        if args.output_dir:
            dump_puzzle(puzzle, args.output_dir / f"{puzzle.id}.json")
    summary = orchestrator.metrics.summary()
    print(f"Fallback rate: {summary['fallback_rate']:.0%}")
    return 0


def _run_audit(args: argparse.Namespace) -> int:
    puzzle = PuzzleLoader.load_path(args.path)
    result = SolutionValidator().verify_unique_solution(puzzle)
    _print_puzzle(puzzle, result)
    print(f"Valid: {result.is_valid}  Unique: {result.has_unique_solution}")
    for issue in result.issues:
        print(f"  [{issue.severity.value}] {issue.type.value}: {issue.description}")
    return 0 if result.is_valid else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    handlers = {"generate": _run_generate, "daily": _run_daily, "audit": _run_audit}
    try:
        return handlers[args.command](args)
    except GenerationExhausted as exc:
        logging.getLogger(__name__).error("%s", exc)
        return 2
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))
    return 2


if __name__ == "__main__":  # pragma: no cover - manual invocation entry point
    raise SystemExit(main())
