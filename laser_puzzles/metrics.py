"""Per-generation telemetry and running aggregates."""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

from .grid import Difficulty


@dataclass(frozen=True)
class GenerationMetadata:
    puzzle_id: str
    difficulty: Difficulty
    attempts: int
    generation_time_ms: float
    confidence_score: float
    fallback_used: bool
    validation_passed: bool
    path_complexity: int
    material_density: float
    failure_reason: Optional[str] = None

    def to_payload(self) -> Dict[str, object]:
        payload = asdict(self)
        payload["difficulty"] = self.difficulty.value
        return payload


class GenerationMetrics:
    """Collects :class:`GenerationMetadata` records from the orchestrator."""

    def __init__(self, history_limit: int = 500) -> None:
        self.history_limit = history_limit
        self._records: List[GenerationMetadata] = []
        self._lock = threading.Lock()

    def record(self, metadata: GenerationMetadata) -> None:
        with self._lock:
            self._records.append(metadata)
            if len(self._records) > self.history_limit:
                del self._records[: len(self._records) - self.history_limit]

    def records(self) -> List[GenerationMetadata]:
        with self._lock:
            return list(self._records)

    def recent_failures(self, limit: int = 10) -> List[GenerationMetadata]:
        failures = [record for record in self.records() if record.fallback_used]
        return failures[-limit:]

    def summary(self) -> Dict[str, object]:
        records = self.records()
        total = len(records)
        if not total:
            return {
                "total": 0,
                "success_rate": 0.0,
                "fallback_rate": 0.0,
                "average_generation_time_ms": 0.0,
                "average_confidence": 0.0,
                "average_attempts": 0.0,
                "by_difficulty": {},
            }

        fallbacks = sum(1 for record in records if record.fallback_used)
        grouped: Dict[Difficulty, List[GenerationMetadata]] = defaultdict(list)
        for record in records:
            grouped[record.difficulty].append(record)

        by_difficulty = {}
        for difficulty in Difficulty:
            group = grouped.get(difficulty)
            if not group:
                continue
            by_difficulty[difficulty.value] = {
                "total": len(group),
                "fallbacks": sum(1 for record in group if record.fallback_used),
                "average_attempts": sum(record.attempts for record in group) / len(group),
                "average_generation_time_ms": sum(record.generation_time_ms for record in group) / len(group),
            }

        return {
            "total": total,
            "success_rate": (total - fallbacks) / total,
            "fallback_rate": fallbacks / total,
            "average_generation_time_ms": sum(record.generation_time_ms for record in records) / total,
            "average_confidence": sum(record.confidence_score for record in records) / total,
            "average_attempts": sum(record.attempts for record in records) / total,
            "by_difficulty": by_difficulty,
        }
