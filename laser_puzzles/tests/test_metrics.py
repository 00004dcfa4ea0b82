import pytest

from laser_puzzles.grid import Difficulty
from laser_puzzles.metrics import GenerationMetadata, GenerationMetrics


def _metadata(puzzle_id, difficulty, attempts, fallback, elapsed=10.0, confidence=90.0):
    return GenerationMetadata(
        puzzle_id=puzzle_id,
        difficulty=difficulty,
        attempts=attempts,
        generation_time_ms=elapsed,
        confidence_score=confidence,
        fallback_used=fallback,
        validation_passed=True,
        path_complexity=5,
        material_density=0.7,
    )


def test_empty_summary_is_zeroed():
    summary = GenerationMetrics().summary()

    assert summary["total"] == 0
    assert summary["by_difficulty"] == {}


def test_summary_aggregates_by_difficulty():
    metrics = GenerationMetrics()
    metrics.record(_metadata("a", Difficulty.EASY, 1, False, elapsed=20.0))
    metrics.record(_metadata("b", Difficulty.EASY, 3, False, elapsed=40.0))
    metrics.record(_metadata("c", Difficulty.HARD, 10, True, confidence=100.0))

    summary = metrics.summary()

    assert summary["total"] == 3
    assert summary["success_rate"] == pytest.approx(2 / 3)
    assert summary["fallback_rate"] == pytest.approx(1 / 3)
    assert summary["by_difficulty"]["Easy"]["average_attempts"] == pytest.approx(2.0)
    assert summary["by_difficulty"]["Easy"]["average_generation_time_ms"] == pytest.approx(30.0)
    assert summary["by_difficulty"]["Hard"]["fallbacks"] == 1
    assert [record.puzzle_id for record in metrics.recent_failures()] == ["c"]


def test_history_is_bounded():
    metrics = GenerationMetrics(history_limit=2)
    for index in range(5):
        metrics.record(_metadata(str(index), Difficulty.MEDIUM, 1, False))

    assert [record.puzzle_id for record in metrics.records()] == ["3", "4"]


def test_metadata_payload_uses_plain_values():
    payload = _metadata("a", Difficulty.MEDIUM, 2, False).to_payload()

    assert payload["difficulty"] == "Medium"
    assert payload["attempts"] == 2
