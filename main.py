"""Command line launcher for the laser puzzle generator."""

from __future__ import annotations

from laser_puzzles.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
