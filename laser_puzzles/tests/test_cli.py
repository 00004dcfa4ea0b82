import json
from dataclasses import replace
from pathlib import Path

import pytest

from laser_puzzles.cli import main
from laser_puzzles.grid import Absorber, Mirror
from laser_puzzles.puzzle import dump_puzzle


def test_generate_writes_json(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    output = tmp_path / "easy.json"

    exit_code = main(["generate", "--difficulty", "easy", "--seed", "cli", "--output", str(output)])

    captured = capsys.readouterr().out
    assert exit_code == 0
    assert "puzzle_easy_cli" in captured
    assert json.loads(output.read_text())["difficulty"] == "Easy"


def test_audit_accepts_generated_puzzle(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    output = tmp_path / "medium.json"
    main(["generate", "--difficulty", "Medium", "--seed", "audit", "--output", str(output)])
    capsys.readouterr()

    exit_code = main(["audit", str(output)])

    assert exit_code == 0
    assert "Valid: True" in capsys.readouterr().out


def test_audit_flags_broken_puzzle(make_puzzle, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    puzzle = make_puzzle([Absorber((1, 2)), Mirror((2, 2), 45)], entry=(0, 2), solution=(2, 5))
    path = dump_puzzle(puzzle, tmp_path / "broken.json")

    exit_code = main(["audit", str(path)])

    output = capsys.readouterr().out
    assert exit_code == 1
    assert "no_solution" in output


def test_daily_writes_one_file_per_difficulty(tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    exit_code = main(["daily", "--seed", "2026-10-18", "--output-dir", str(tmp_path)])

    assert exit_code == 0
    assert len(list(tmp_path.glob("*.json"))) == 3
    assert "Fallback rate" in capsys.readouterr().out


def test_missing_files_exit_with_usage_error(tmp_path: Path):
    with pytest.raises(SystemExit) as excinfo:
        main(["audit", str(tmp_path / "nothing.json")])

    assert excinfo.value.code == 2


def test_exhausted_generation_returns_error_code(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LASER_PUZZLES_MAX_ATTEMPTS", "0")
    monkeypatch.setenv("LASER_PUZZLES_ENABLE_FALLBACK", "off")

    assert main(["generate", "--seed", "none"]) == 2


def test_audit_reports_crowded_cells(make_puzzle, tmp_path: Path, capsys: pytest.CaptureFixture[str]):
    puzzle = make_puzzle([Mirror((2, 2), 45)], entry=(0, 2), solution=(2, 5))
    crowded = replace(puzzle, materials=(Mirror((2, 2), 45), Absorber((2, 2))))
    path = dump_puzzle(crowded, tmp_path / "crowded.json")

    exit_code = main(["audit", str(path)])

    assert exit_code == 1
    assert "placement_violation" in capsys.readouterr().out
