"""Pipeline orchestration for level generation.

`Level` is the public entry point: construct one and it plans, realizes and
verifies a board, retrying a bounded number of times before dropping to the
guaranteed-solvable fallback layout. Components are called explicitly in
order; nothing is broadcast.
"""
from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Set

from pipeworks.logging_utils import get_logger

from .config import LevelConfig
from .directions import Cell, direction_between
from .errors import UnsolvableGrid
from .fill import best_fill, explore_fill, simulate_flow
from .metrics import init_metrics
from .planner import LevelPlan, plan_level
from .realize import LevelGrid, build_fallback_level, realize_plan, scramble_rotations
from .solver import SolutionPathInfo, find_all_solution_paths, find_solution_path
from .tiles import first_rotation_exposing

log = get_logger("pipeworks.level.pipeline")


@dataclass
class Level:
    seed: Optional[int] = None
    width: int = 8
    height: int = 8
    difficulty: int = 5
    config: Optional[LevelConfig] = field(default=None, repr=False)

    def __post_init__(self):
        if self.config is None:
            self.config = LevelConfig(
                width=self.width, height=self.height, difficulty=self.difficulty, seed=self.seed
            )
        # config owns clamping and seed selection
        self.seed = self.config.seed
        self.width = self.config.width
        self.height = self.config.height
        self.difficulty = self.config.difficulty
        self.enable_metrics = self.config.enable_metrics
        self.metrics: Dict[str, Any] = init_metrics() if self.enable_metrics else {}
        self.plan: Optional[LevelPlan] = None
        self.board: Optional[LevelGrid] = None
        self.main_solution: Optional[SolutionPathInfo] = None
        self.max_fillable_tiles = 0
        self.fallback_used = False
        self.initial_rotations: Dict[Cell, int] = {}
        self._run_pipeline()

    @property
    def start(self) -> Cell:
        return self.board.start

    @property
    def end(self) -> Cell:
        return self.board.end

    @property
    def openings(self):
        return self.board.base_openings()

    def _run_pipeline(self):
        """Plan/realize/verify attempts, then fallback, then the max-fill target.

        With metrics enabled, `phase_ms` accumulates wall time per phase across
        attempts and `runtime_ms` covers the whole run.
        """
        if self.enable_metrics:
            started = time.perf_counter()
            phase_times: Dict[str, int] = {}

            def _phase(label, fn, *a, **k):
                ps = time.perf_counter(); r = fn(*a, **k); pe = time.perf_counter()
                phase_times[label] = phase_times.get(label, 0) + int((pe - ps) * 1000)
                return r
        else:
            def _phase(label, fn, *a, **k):
                return fn(*a, **k)

        cfg = self.config
        rng = random.Random(cfg.seed)
        for attempt in range(1, cfg.max_attempts + 1):
            if self.enable_metrics:
                self.metrics['attempts'] = attempt
            result = _phase('plan', plan_level, cfg, rng)
            if not result.ok:
                log.info(event="planning_failed", seed=cfg.seed, attempt=attempt, stage=result.stage, reason=result.reason)
                if self.enable_metrics:
                    self.metrics['planning_failures'] += 1
                continue
            board = _phase('realize', realize_plan, result.plan)
            solution = _phase(
                'solve', find_solution_path, board.grid, board.base_openings(), board.start, board.end, cfg.search_budget
            )
            if solution is None:
                log.info(event="level_unsolvable", seed=cfg.seed, attempt=attempt, reason=UnsolvableGrid().reason)
                if self.enable_metrics:
                    self.metrics['unsolvable_attempts'] += 1
                continue
            self.plan = result.plan
            self.board = board
            self.main_solution = solution
            break

        if self.board is None:
            log.warn(event="fallback_level", seed=cfg.seed, attempts=cfg.max_attempts, width=self.width, height=self.height)
            self.fallback_used = True
            self.board = _phase('fallback', build_fallback_level, self.width, self.height)
            self.main_solution = find_solution_path(
                self.board.grid, self.board.base_openings(), self.board.start, self.board.end, cfg.search_budget
            )

        board = self.board
        openings = board.base_openings()
        outcome = _phase(
            'enumerate_solutions',
            find_all_solution_paths,
            board.grid,
            openings,
            board.start,
            board.end,
            max_results=cfg.max_solution_paths,
            budget=cfg.search_budget,
        )
        best, best_path, fill_truncated = _phase('max_fill', best_fill, board.grid, openings, outcome.paths)
        self.max_fillable_tiles = best
        if best_path is not None:
            self.main_solution = best_path
        self.initial_rotations = scramble_rotations(board, rng)

        if self.enable_metrics:
            m = self.metrics
            if self.plan is not None:
                for key, value in self.plan.stats.items():
                    if key in m:
                        m[key] = value
            else:
                m['critical_path_length'] = len(board.critical_path)
            m['fallback_used'] = self.fallback_used
            m['solution_paths'] = len(outcome.paths)
            m['search_truncated'] = outcome.truncated
            m['fill_truncated'] = fill_truncated
            m['max_fillable_tiles'] = best
            m['runtime_ms'] = int((time.perf_counter() - started) * 1000)
            m['phase_ms'] = phase_times
        log.info(
            event="level_generated",
            seed=cfg.seed,
            size=f"{self.width}x{self.height}",
            difficulty=self.difficulty,
            fallback=self.fallback_used,
            max_fill=best,
        )

    # -- play ------------------------------------------------------------
    def flow(self, rotations: Mapping[Cell, int]) -> Set[Cell]:
        return simulate_flow(self.board.grid, self.openings, rotations, self.start)

    def is_complete(self, rotations: Mapping[Cell, int]) -> bool:
        wet = self.flow(rotations)
        return self.end in wet and len(wet) >= self.max_fillable_tiles

    def rotate(self, rotations: Mapping[Cell, int], cell: Cell) -> Dict[Cell, int]:
        """One quarter turn of `cell`; returns a new rotation map."""
        if cell not in self.board.tiles:
            raise KeyError(cell)
        updated = dict(rotations)
        updated[cell] = (updated.get(cell, 0) + 1) % 4
        return updated

    def solution_rotations(self) -> Dict[Cell, int]:
        """A full rotation map that floods `max_fillable_tiles` cells."""
        rotations = dict(self.initial_rotations)
        if self.main_solution is None:
            return rotations
        _count, fixed, _truncated = explore_fill(self.board.grid, self.openings, self.main_solution)
        rotations.update(fixed)
        path = self.main_solution.path_positions
        if len(path) >= 2:
            facing = direction_between(self.end, path[-2])
            end_rotation = first_rotation_exposing(self.openings.get(self.end, frozenset()), facing)
            if end_rotation is not None:
                rotations[self.end] = end_rotation
        return rotations

    def to_dict(self, rotations: Optional[Mapping[Cell, int]] = None) -> Dict[str, Any]:
        rotations = self.initial_rotations if rotations is None else rotations
        data = self.board.with_rotations(dict(rotations)).to_dict()
        data.update(
            seed=self.seed,
            difficulty=self.difficulty,
            max_fillable_tiles=self.max_fillable_tiles,
            fallback=self.fallback_used,
        )
        return data


__all__ = ["Level"]
