from __future__ import annotations

import os
import random
from dataclasses import dataclass, field
from typing import Optional

from flask import current_app, has_app_context

from .directions import MIN_SIZE
from .errors import InvalidLevelSize


def lerp(a: float, b: float, t: float) -> float:
    """Clamped linear interpolation."""
    t = max(0.0, min(1.0, t))
    return a + (b - a) * t


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class DifficultyParams:
    """Tuning table derived once per generation run from a 1..10 rating."""

    rating: int
    t: float
    misleading_path_probability: float
    max_path_length: int
    path_straightness_bias: float
    direct_path_bias: float
    min_valid_paths: int
    max_valid_paths: int
    min_path_length: int
    min_turns: int

    @classmethod
    def from_rating(cls, rating: int, width: int, height: int) -> "DifficultyParams":
        rating = int(clamp(rating, 1, 10))
        t = (rating - 1) / 9.0
        span = width + height
        if rating == 10:
            straightness = 0.20
        elif rating == 9:
            straightness = 0.30
        else:
            straightness = lerp(0.95, 0.40, t)
        return cls(
            rating=rating,
            t=t,
            misleading_path_probability=lerp(0.1, 0.8, t),
            max_path_length=round(lerp(span, span * 2.5, t)),
            path_straightness_bias=straightness,
            direct_path_bias=lerp(0.95, 0.75, t),
            min_valid_paths=1,
            max_valid_paths=round(lerp(10, 1, t)),
            min_path_length=round(lerp(span, span * 2, t)),
            min_turns=round(lerp(3, 15, t)),
        )

    def scaled(self, a: float, b: float) -> float:
        return lerp(a, b, self.t)

    def scaled_int(self, a: float, b: float) -> int:
        return round(lerp(a, b, self.t))


_ENV_INT = {
    "PIPEWORKS_MAX_ATTEMPTS": "max_attempts",
    "PIPEWORKS_SEARCH_BUDGET": "search_budget",
    "PIPEWORKS_MAX_SOLUTION_PATHS": "max_solution_paths",
}
_ENV_BOOL = {
    "PIPEWORKS_ENABLE_GENERATION_METRICS": "enable_metrics",
}


@dataclass
class LevelConfig:
    width: int = 8
    height: int = 8
    difficulty: int = 5
    seed: Optional[int] = None
    max_attempts: int = 5
    search_budget: int = 50_000
    max_solution_paths: int = 256
    enable_metrics: bool = True
    params: DifficultyParams = field(init=False, repr=False)

    def __post_init__(self):
        if self.width < MIN_SIZE or self.height < MIN_SIZE:
            raise InvalidLevelSize(self.width, self.height)
        self.difficulty = int(clamp(self.difficulty, 1, 10))
        # 0 is a valid deterministic seed; None => random
        if self.seed is None:
            self.seed = random.randint(1, 1_000_000)
        for env_key, attr in _ENV_INT.items():
            raw = os.environ.get(env_key)
            if raw:
                try:
                    setattr(self, attr, int(raw))
                except ValueError:
                    pass
        for env_key, attr in _ENV_BOOL.items():
            if env_key in os.environ:
                val = os.environ.get(env_key, "").lower()
                setattr(self, attr, val not in {"0", "false", "no", ""})
        # Flask app config overrides (highest precedence)
        if has_app_context():
            cfg = current_app.config
            for key, attr in list(_ENV_INT.items()) + list(_ENV_BOOL.items()):
                if cfg.get(key) is None:
                    continue
                value = cfg.get(key)
                if attr == "enable_metrics":
                    setattr(self, attr, bool(value))
                    continue
                try:
                    setattr(self, attr, int(value))
                except (TypeError, ValueError):
                    pass
        self.max_attempts = max(1, self.max_attempts)
        self.params = DifficultyParams.from_rating(self.difficulty, self.width, self.height)


__all__ = ["LevelConfig", "DifficultyParams", "lerp", "clamp"]
