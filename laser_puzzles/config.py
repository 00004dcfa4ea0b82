"""Generation settings resolved from defaults, JSON files and the environment."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

from .grid import Difficulty
from .placement import DEFAULT_TARGET_DENSITY


CONFIG_ENV_VAR = "LASER_PUZZLES_CONFIG"
MAX_ATTEMPTS_ENV_VAR = "LASER_PUZZLES_MAX_ATTEMPTS"
CONFIDENCE_ENV_VAR = "LASER_PUZZLES_CONFIDENCE_THRESHOLD"
TIME_BUDGET_ENV_VAR = "LASER_PUZZLES_TIME_BUDGET_MS"
FALLBACK_ENV_VAR = "LASER_PUZZLES_ENABLE_FALLBACK"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Expected a boolean, got {value!r}")


@dataclass(frozen=True)
class GenerationConfig:
    max_generation_attempts: int = 10
    confidence_threshold: float = 70.0
    time_budget_ms: int = 5000
    enable_fallback: bool = True
    target_densities: Dict[Difficulty, float] = field(
        default_factory=lambda: dict(DEFAULT_TARGET_DENSITY)
    )

    def __post_init__(self) -> None:
        if self.max_generation_attempts < 0:
            raise ValueError("max_generation_attempts must not be negative")
        if not 0.0 <= self.confidence_threshold <= 100.0:
            raise ValueError("confidence_threshold must lie between 0 and 100")
        if self.time_budget_ms <= 0:
            raise ValueError("time_budget_ms must be positive")
        for difficulty, density in self.target_densities.items():
            if not 0.0 <= density <= 1.0:
                raise ValueError(f"Target density for {difficulty.value} must lie between 0 and 1")

    def target_density(self, difficulty: Difficulty) -> float:
        return self.target_densities.get(difficulty, DEFAULT_TARGET_DENSITY[difficulty])

    @classmethod
    def from_mapping(cls, data: Mapping[str, object], base: Optional["GenerationConfig"] = None) -> "GenerationConfig":
        """Overlay the recognised keys of ``data`` on ``base`` (or the defaults)."""

        config = base or cls()
        changes: Dict[str, object] = {}
        try:
            if "max_generation_attempts" in data:
                changes["max_generation_attempts"] = int(data["max_generation_attempts"])
            if "confidence_threshold" in data:
                changes["confidence_threshold"] = float(data["confidence_threshold"])
            if "time_budget_ms" in data:
                changes["time_budget_ms"] = int(data["time_budget_ms"])
            if "enable_fallback" in data:
                changes["enable_fallback"] = _parse_bool(data["enable_fallback"])
            if "target_densities" in data:
                densities = dict(config.target_densities)
                for name, value in dict(data["target_densities"]).items():
                    densities[Difficulty.from_name(name)] = float(value)
                changes["target_densities"] = densities
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid generation config: {exc}") from exc
        return replace(config, **changes)

    @classmethod
    def load(cls, path: Path, base: Optional["GenerationConfig"] = None) -> "GenerationConfig":
        path = Path(path).expanduser()
        if not path.exists():
            raise FileNotFoundError(path)
        data = json.loads(path.read_text())
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
        return cls.from_mapping(data, base)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GenerationConfig":
        """Resolve settings from environment variables.

        Parameters
        ----------
        environ:
            Mapping to read instead of :data:`os.environ`. A JSON file named
            by ``LASER_PUZZLES_CONFIG`` is applied first; the individual
            variables override it.
        """

        environ = os.environ if environ is None else environ
        config = cls()
        config_path = environ.get(CONFIG_ENV_VAR)
        if config_path:
            config = cls.load(Path(config_path), config)

        overrides: Dict[str, object] = {}
        for env_var, key in (
            (MAX_ATTEMPTS_ENV_VAR, "max_generation_attempts"),
            (CONFIDENCE_ENV_VAR, "confidence_threshold"),
            (TIME_BUDGET_ENV_VAR, "time_budget_ms"),
            (FALLBACK_ENV_VAR, "enable_fallback"),
        ):
            value = environ.get(env_var)
            if value:
                overrides[key] = value
        return cls.from_mapping(overrides, config)
