"""Level planning: decide every cell's required openings before any tile exists.

Stages run in a fixed order (see `LevelPlanner.run`). Each one reads and
mutates the shared planning grid (cell -> list of required directions). A
stage that cannot continue returns a `PlanningFailure` instead of raising so
the orchestrator owns the retry policy.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from pipeworks.logging_utils import get_logger

from . import tiles as T
from .config import LevelConfig, clamp, lerp
from .difficulty import ValidationReport, adjust, validate
from .directions import (
    DIRECTIONS,
    Cell,
    Grid,
    direction_between,
    distance,
    is_opposite_pair,
    neighbor,
    opposite,
)
from .errors import PlanningFailure
from .paths import Path, PathBuilder, count_turns

log = get_logger("pipeworks.level.planner")

PlanningGrid = Dict[Cell, List[int]]

MAX_ADJUSTMENTS = 3
PLACEMENT_ATTEMPTS = 50


class TilePlan(NamedTuple):
    cell: Cell
    archetype: str
    directions: Tuple[int, ...]
    on_critical_path: bool = False
    key_tile: bool = False


@dataclass
class LevelPlan:
    grid: Grid
    start: Cell
    end: Cell
    critical_path: Path
    key_tiles: List[Cell]
    detours: List[Cell]
    planning_grid: PlanningGrid
    tiles: List[TilePlan]
    validation: Optional[ValidationReport] = None
    stats: Dict[str, int] = field(default_factory=dict)

    def tile_at(self, cell: Cell) -> Optional[TilePlan]:
        for tp in self.tiles:
            if tp.cell == cell:
                return tp
        return None


class PlanningSuccess(NamedTuple):
    plan: LevelPlan

    @property
    def ok(self) -> bool:
        return True


PlanningResult = Union[PlanningSuccess, PlanningFailure]


def gather_directions(prev: Cell, cur: Cell, nxt: Cell) -> List[int]:
    """Directions from `cur` toward its predecessor and successor."""
    dirs = set()
    if prev[1] > cur[1] or nxt[1] > cur[1]:
        dirs.add(1)
    if prev[0] > cur[0] or nxt[0] > cur[0]:
        dirs.add(2)
    if prev[1] < cur[1] or nxt[1] < cur[1]:
        dirs.add(3)
    if prev[0] < cur[0] or nxt[0] < cur[0]:
        dirs.add(4)
    return sorted(dirs)


def choose_archetype(dirs: Sequence[int], rating: int, rng: random.Random) -> str:
    n = len(dirs)
    if n == 0:
        return T.EMPTY
    if n == 1:
        return T.STRAIGHT
    if n == 2:
        return T.STRAIGHT if is_opposite_pair(dirs[0], dirs[1]) else T.CORNER
    if n == 3:
        return T.T_JUNCTION
    if n == 4:
        # Harder levels hide some crossings behind T pieces
        if rating > 5 and rng.random() < 0.7:
            return T.T_JUNCTION
        return T.CROSS
    return T.EMPTY


def _quadrant_cell(quadrant: int, w: int, h: int, rng: random.Random) -> Cell:
    if quadrant == 0:  # top-left
        return (rng.randrange(0, w // 2), rng.randrange(h // 2, h))
    if quadrant == 1:  # top-right
        return (rng.randrange(w // 2, w), rng.randrange(h // 2, h))
    if quadrant == 2:  # bottom-left
        return (rng.randrange(0, w // 2), rng.randrange(0, h // 2))
    return (rng.randrange(w // 2, w), rng.randrange(0, h // 2))


class LevelPlanner:
    def __init__(self, config: LevelConfig, rng: Optional[random.Random] = None):
        self.config = config
        self.params = config.params
        self.grid = Grid(config.width, config.height)
        self.rng = rng or random.Random(config.seed)
        self.planning: PlanningGrid = {}
        self.start: Cell = (0, 0)
        self.end: Cell = (0, 0)
        self.critical_path: Path = ()
        self.key_tiles: List[Cell] = []
        self.detours: List[Cell] = []
        self.paths: List[Path] = []
        self.stats: Dict[str, int] = {
            'key_tiles': 0,
            'deceptive_paths': 0,
            'dead_ends': 0,
            'key_tiles_emptied': 0,
            'key_tiles_reduced': 0,
            'difficulty_adjustments': 0,
        }

    # -- stage 1 ---------------------------------------------------------
    def place_start_end(self) -> Tuple[Cell, Cell]:
        w, h = self.grid.width, self.grid.height
        rng = self.rng
        min_dist = self.params.scaled(0.5, 0.8) * self.grid.diagonal
        for _ in range(PLACEMENT_ATTEMPTS):
            sq = rng.randrange(4)
            eq = rng.choice([q for q in range(4) if q != sq])
            start = _quadrant_cell(sq, w, h, rng)
            end = _quadrant_cell(eq, w, h, rng)
            if distance(start, end) >= min_dist:
                return start, end
        log.debug(event="start_end_fallback", min_dist=round(min_dist, 2))
        # opposite corners: bottom-left start, top-right end
        return (0, 0), (w - 1, h - 1)

    # -- stage 3 ---------------------------------------------------------
    def identify_key_tiles(self, path: Path) -> List[Cell]:
        p = self.params
        count = p.scaled_int(2, 8)
        if p.rating >= 9 and len(path) > 15:
            count = max(count, round(lerp(5, 10, (p.rating - 8) / 2.0)))
        count = max(0, min(count, len(path) - 2))
        if len(path) <= 4 or count == 0:
            return []
        indices: List[int] = []
        attempts = count * 5
        while len(indices) < count and attempts > 0:
            idx = self.rng.randrange(2, len(path) - 2)
            if not any(abs(existing - idx) <= 2 for existing in indices):
                indices.append(idx)
            attempts -= 1
        return [path[i] for i in indices]

    # -- stage 4 ---------------------------------------------------------
    def random_fake_target(self, source: Cell, avoid: Sequence[Cell]) -> Cell:
        p = self.params
        w, h = self.grid.width, self.grid.height
        min_dist = p.scaled_int(3, 5)
        max_dist = p.scaled_int(w // 3, w // 2)
        target = source
        for _ in range(20):
            target = (
                clamp(source[0] + self.rng.randint(-max_dist, max_dist), 1, w - 2),
                clamp(source[1] + self.rng.randint(-max_dist, max_dist), 1, h - 2),
            )
            if target not in avoid and distance(source, target) >= min_dist:
                break
        return target

    def _fake_target_near_end(self) -> Cell:
        w, h = self.grid.width, self.grid.height
        ex, ey = self.end
        rng = self.rng
        target = (clamp(ex + rng.randint(-2, 2), 1, w - 2), clamp(ey + rng.randint(-2, 2), 1, h - 2))
        if target == self.end or distance(target, self.end) < 2:
            target = (
                clamp(ex + (-3 if rng.random() < 0.5 else 3), 1, w - 2),
                clamp(ey + (-3 if rng.random() < 0.5 else 3), 1, h - 2),
            )
        return target

    def generate_deceptive_paths(self, builder: PathBuilder, main: Path) -> List[Path]:
        p = self.params
        rng = self.rng
        count = max(0, min(p.scaled_int(2, 15), len(main) - 2))
        free = list(range(1, len(main) - 1))
        out: List[Path] = []
        for _ in range(count):
            idx = free.pop(rng.randrange(len(free)))
            branch_start = main[idx]
            if p.rating > 5 and rng.random() < 0.7:
                target = self._fake_target_near_end()
            else:
                target = self.random_fake_target(branch_start, main)
            fake = builder.build_deceptive_path(branch_start, target)
            if len(fake) <= 4:
                continue
            out.append(fake)
            if p.rating > 6 and rng.random() < p.misleading_path_probability:
                for _s in range(p.scaled_int(1, 4)):
                    sub_start = fake[rng.randrange(1, len(fake) - 2)]
                    sub = builder.build_deceptive_path(sub_start, self.random_fake_target(sub_start, fake))
                    if len(sub) > 3:
                        out.append(sub)
        return out

    # -- stage 5 ---------------------------------------------------------
    def plan_paths(self, paths: Sequence[Path]) -> None:
        for path in paths:
            for i in range(1, len(path) - 1):
                cur = path[i]
                dirs = self.planning.setdefault(cur, [])
                for d in gather_directions(path[i - 1], cur, path[i + 1]):
                    if d not in dirs:
                        dirs.append(d)

    # -- stage 6 ---------------------------------------------------------
    def plan_dead_ends(self) -> int:
        p = self.params
        rng = self.rng
        target = p.scaled_int(5, 30)
        attempts = target * 5
        anchors = [c for c, dirs in self.planning.items() if c not in (self.start, self.end) and len(dirs) >= 2]
        placed = 0
        while anchors and placed < target and attempts > 0:
            attempts -= 1
            anchor = anchors[rng.randrange(len(anchors))]
            dirs = self.planning[anchor]
            unused = [d for d in DIRECTIONS if d not in dirs]
            if not unused:
                continue
            d = unused[rng.randrange(len(unused))]
            stub = neighbor(anchor, d)
            if not self.grid.in_bounds(stub) or stub in self.planning:
                continue
            dirs.append(d)
            self.planning[stub] = [opposite(d)]
            placed += 1
            if p.rating > 7 and rng.random() < 0.3:
                anchors.append(stub)
        return placed

    # -- stage 7 ---------------------------------------------------------
    def _gap_profile(self) -> Tuple[float, float, float]:
        r = self.params.rating
        if r == 10:
            return 0.8, 0.9, 1.0
        if r == 9:
            return 0.6, 0.75, 0.9
        if r == 8:
            return 0.5, 0.6, 0.8
        return 0.3, 0.4, 0.7

    def _reduce_to_pair(self, dirs: List[int]) -> List[int]:
        for i, a in enumerate(dirs):
            for b in dirs[i + 1:]:
                if is_opposite_pair(a, b):
                    return [a, b]
        shuffled = list(dirs)
        self.rng.shuffle(shuffled)
        for i, a in enumerate(shuffled):
            for b in shuffled[i + 1:]:
                if not is_opposite_pair(a, b):
                    return [a, b]
        return dirs[:2]

    def create_key_tile_gaps(self) -> Tuple[int, int]:
        keys = self.key_tiles
        if not keys:
            return 0, 0
        factor, empty_chance, reduce_chance = self._gap_profile()
        max_removed = max(0, min(len(keys) - 1, math.ceil(len(keys) * factor)))
        emptied = reduced = 0
        for cell in keys:
            dirs = self.planning.get(cell)
            if dirs is None:
                continue
            if emptied < max_removed and dirs and self.rng.random() < empty_chance:
                self.planning[cell] = []
                emptied += 1
                continue
            if len(dirs) > 1 and self.rng.random() < reduce_chance:
                if len(dirs) > 2:
                    self.planning[cell] = self._reduce_to_pair(dirs)
                    reduced += 1
        return emptied, reduced

    # -- stage 8 ---------------------------------------------------------
    def _fill_profile(self) -> Tuple[float, Tuple[float, float, float, float]]:
        r = self.params.rating
        if r == 10:
            empty = 0.05
        elif r == 9:
            empty = 0.10
        else:
            empty = lerp(0.6, 0.15, (r - 1) / 8.0)
        if r >= 9:
            shape = (0.20, 0.25, 0.30, 0.25)
        elif r >= 7:
            shape = (0.30, 0.30, 0.25, 0.15)
        else:
            shape = (0.45, 0.35, 0.15, 0.05)
        return empty, shape

    def _random_shape(self, roll: float, empty: float, shape) -> List[int]:
        rng = self.rng
        rest = 1.0 - empty
        straight, corner, tee, _cross = (f * rest for f in shape)
        if roll < empty:
            return []
        if roll < empty + straight:
            return [1, 3] if rng.random() < 0.5 else [2, 4]
        if roll < empty + straight + corner:
            first = rng.randint(1, 4)
            second = rng.randint(1, 4)
            while second == first or is_opposite_pair(first, second):
                second = rng.randint(1, 4)
            return [first, second]
        if roll < empty + straight + corner + tee:
            excluded = rng.randint(1, 4)
            return [d for d in DIRECTIONS if d != excluded]
        return [1, 2, 3, 4]

    def plan_remaining_tiles(self) -> None:
        empty, shape = self._fill_profile()
        critical = self.critical_path
        for cell in self.grid.cells():
            if cell in self.planning or cell in (self.start, self.end):
                continue
            chance = empty
            if critical and min(distance(cell, c) for c in critical) <= 2:
                chance *= 0.2
            self.planning[cell] = self._random_shape(self.rng.random(), chance, shape)

    # -- stage 9 ---------------------------------------------------------
    def validate_and_adjust(self) -> ValidationReport:
        args = (self.planning, self.start, self.end, self.grid, self.params)
        report = validate(*args, self.critical_path, self.detours)
        rounds = 0
        while not report.ok and rounds < MAX_ADJUSTMENTS:
            rounds += 1
            adjust(self.planning, report, self.grid, self.critical_path, self.detours, self.rng, self.start, self.end)
            report = validate(*args, self.critical_path, self.detours)
        self.stats['difficulty_adjustments'] = rounds
        return report

    # -- stage 10 --------------------------------------------------------
    def to_tile_plan(self) -> List[TilePlan]:
        critical = set(self.critical_path)
        keys = set(self.key_tiles)
        out = []
        for cell in self.grid.cells():
            if cell == self.start:
                out.append(TilePlan(cell, T.START, (), True, False))
                continue
            if cell == self.end:
                out.append(TilePlan(cell, T.END, (), True, False))
                continue
            dirs = tuple(self.planning.get(cell, ()))
            archetype = choose_archetype(dirs, self.params.rating, self.rng)
            out.append(TilePlan(cell, archetype, dirs, cell in critical, cell in keys))
        return out

    def _inconsistency(self) -> Optional[str]:
        for cell in self.planning:
            if not self.grid.in_bounds(cell):
                return f"planned cell {cell} outside grid"
        missing = [c for c in self.grid.cells() if c not in self.planning and c not in (self.start, self.end)]
        if missing:
            return f"{len(missing)} cells left unplanned"
        return None

    def run(self) -> PlanningResult:
        p = self.params
        self.start, self.end = self.place_start_end()
        if not (self.grid.in_bounds(self.start) and self.grid.in_bounds(self.end)) or self.start == self.end:
            return PlanningFailure("invalid start/end placement", "placement")
        self.planning = {self.start: [], self.end: []}

        builder = PathBuilder(self.grid, p, self.rng, true_end=self.end)
        main = builder.build_path(self.start, self.end)
        if len(main) < 2 or direction_between(main[0], main[1]) is None:
            return PlanningFailure("critical path degenerate", "critical_path")
        self.critical_path = main

        self.key_tiles = self.identify_key_tiles(main)
        deceptive = self.generate_deceptive_paths(builder, main)
        self.paths = [main] + deceptive
        self.plan_paths(self.paths)

        dead_ends = emptied = reduced = 0
        if p.rating > 3:
            dead_ends = self.plan_dead_ends()
            emptied, reduced = self.create_key_tile_gaps()

        self.plan_remaining_tiles()
        problem = self._inconsistency()
        if problem:
            return PlanningFailure(problem, "fill")

        report = self.validate_and_adjust()
        self.stats.update(
            key_tiles=len(self.key_tiles),
            deceptive_paths=len(deceptive),
            dead_ends=dead_ends,
            key_tiles_emptied=emptied,
            key_tiles_reduced=reduced,
            critical_path_length=len(main),
            critical_path_turns=count_turns(main),
            valid_path_estimate=report.valid_paths,
            difficulty_valid=report.ok,
        )
        plan = LevelPlan(
            grid=self.grid,
            start=self.start,
            end=self.end,
            critical_path=main,
            key_tiles=list(self.key_tiles),
            detours=list(self.detours),
            planning_grid=self.planning,
            tiles=self.to_tile_plan(),
            validation=report,
            stats=dict(self.stats),
        )
        log.debug(event="level_planned", tiles=len(plan.tiles), critical=len(main), valid=report.ok)
        return PlanningSuccess(plan)


def plan_level(config: LevelConfig, rng: Optional[random.Random] = None) -> PlanningResult:
    return LevelPlanner(config, rng).run()


__all__ = [
    "TilePlan",
    "LevelPlan",
    "LevelPlanner",
    "PlanningSuccess",
    "PlanningResult",
    "gather_directions",
    "choose_archetype",
    "plan_level",
]
