"""Difficulty validation and corrective adjustment of a planning grid.

The path count is an estimate over planned directions only (no rotations):
the number of shortest routes from start to end where each step needs the
two cells to name each other. Start and end rotate freely, so they connect
to any neighbour that opens toward them.
"""
from __future__ import annotations

import random
from collections import deque
from typing import Dict, List, NamedTuple, Sequence

from pipeworks.logging_utils import get_logger

from .config import DifficultyParams, clamp
from .directions import DIRECTIONS, Cell, Grid, neighbor, opposite
from .paths import count_turns

log = get_logger("pipeworks.level.difficulty")

PlanningGrid = Dict[Cell, List[int]]


class ValidationReport(NamedTuple):
    valid_paths: int
    critical_length: int
    turns: int
    min_length: int
    min_turns: int
    min_paths: int
    max_paths: int

    @property
    def too_few_paths(self) -> bool:
        return self.valid_paths < self.min_paths

    @property
    def too_many_paths(self) -> bool:
        return self.valid_paths > self.max_paths

    @property
    def ok(self) -> bool:
        return (
            not self.too_few_paths
            and not self.too_many_paths
            and self.critical_length >= self.min_length
            and self.turns >= self.min_turns
        )


def _links(planning: PlanningGrid, cell: Cell, start: Cell, end: Cell, grid: Grid):
    dirs = DIRECTIONS if cell in (start, end) else planning.get(cell, ())
    for d in dirs:
        nb = neighbor(cell, d)
        if not grid.in_bounds(nb) or nb not in planning:
            continue
        if nb in (start, end) or opposite(d) in planning[nb]:
            yield nb


def count_valid_paths(planning: PlanningGrid, start: Cell, end: Cell, grid: Grid, cap: int) -> int:
    """Shortest-route count from start to end, capped at `cap`."""
    depth = {start: 0}
    ways = {start: 1}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        if current == end:
            continue
        for nb in _links(planning, current, start, end, grid):
            if nb not in depth:
                depth[nb] = depth[current] + 1
                ways[nb] = ways[current]
                queue.append(nb)
            elif depth[nb] == depth[current] + 1:
                ways[nb] = min(cap, ways[nb] + ways[current])
    return min(ways.get(end, 0), cap)


def validate(
    planning: PlanningGrid,
    start: Cell,
    end: Cell,
    grid: Grid,
    params: DifficultyParams,
    critical_path: Sequence[Cell],
    detours: Sequence[Cell] = (),
) -> ValidationReport:
    report = ValidationReport(
        valid_paths=count_valid_paths(planning, start, end, grid, params.max_valid_paths + 1),
        critical_length=len(critical_path) + len(detours),
        turns=count_turns(critical_path),
        min_length=params.min_path_length,
        min_turns=params.min_turns,
        min_paths=params.min_valid_paths,
        max_paths=params.max_valid_paths,
    )
    log.debug(
        event="difficulty_validation",
        paths=report.valid_paths,
        length=report.critical_length,
        turns=report.turns,
        ok=report.ok,
    )
    return report


def adjust(
    planning: PlanningGrid,
    report: ValidationReport,
    grid: Grid,
    critical_path: Sequence[Cell],
    detours: List[Cell],
    rng: random.Random,
    start: Cell,
    end: Cell,
) -> str:
    """Apply one corrective step; returns the action taken ('' when none applied)."""
    if report.too_few_paths or report.critical_length < report.min_length:
        if len(critical_path) < 3:
            return ""
        anchor = critical_path[rng.randrange(1, len(critical_path) - 1)]
        detour = (
            clamp(anchor[0] + rng.randint(-2, 2), 0, grid.width - 1),
            clamp(anchor[1] + rng.randint(-2, 2), 0, grid.height - 1),
        )
        if detour in critical_path or detour in detours:
            return ""
        planning[detour] = [1, 3]
        detours.append(detour)
        log.debug(event="difficulty_adjusted", action="detour", cell=detour)
        return "detour"
    if report.too_many_paths:
        protected = set(critical_path) | {start, end}
        candidates = [c for c in planning if c not in protected][:5]
        stripped = 0
        for cell in candidates:
            dirs = planning[cell]
            if len(dirs) <= 2:
                continue
            # never cut a link into the critical path
            removable = [d for d in dirs if neighbor(cell, d) not in protected]
            if not removable:
                continue
            d = removable[rng.randrange(len(removable))]
            dirs.remove(d)
            nb = neighbor(cell, d)
            if nb in planning and opposite(d) in planning[nb]:
                planning[nb].remove(opposite(d))
            stripped += 1
        log.debug(event="difficulty_adjusted", action="strip", cells=stripped)
        return "strip" if stripped else ""
    return ""


__all__ = ["ValidationReport", "count_valid_paths", "validate", "adjust"]
