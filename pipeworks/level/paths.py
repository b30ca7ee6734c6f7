"""Randomized route construction for critical and deceptive paths."""
from __future__ import annotations

import random
from typing import List, Optional, Sequence, Tuple

from pipeworks.logging_utils import get_logger

from .config import DifficultyParams, clamp
from .directions import DIRECTIONS, Cell, Grid, direction_between, distance, neighbor

log = get_logger("pipeworks.level.paths")

Path = Tuple[Cell, ...]


def _step_toward(current: Cell, target: Cell, rng: random.Random) -> Cell:
    dx = clamp(target[0] - current[0], -1, 1)
    dy = clamp(target[1] - current[1], -1, 1)
    if dx != 0 and dy != 0:
        if rng.random() < 0.5:
            dy = 0
        else:
            dx = 0
    return (current[0] + dx, current[1] + dy)


def l_path(start: Cell, end: Cell, grid: Grid) -> Path:
    """Deterministic all-X-then-all-Y route; `(start, end)` when it cannot land on end."""
    path = [start]
    cx, cy = start
    while cx != end[0]:
        cx += 1 if cx < end[0] else -1
        if grid.in_bounds((cx, cy)) and (cx, cy) not in path:
            path.append((cx, cy))
    while cy != end[1]:
        cy += 1 if cy < end[1] else -1
        if grid.in_bounds((cx, cy)) and (cx, cy) not in path:
            path.append((cx, cy))
    if path[-1] != end:
        return (start, end)
    return tuple(path)


def count_turns(path: Sequence[Cell]) -> int:
    if len(path) < 3:
        return 0
    turns = 0
    for i in range(1, len(path) - 1):
        prev_dir = (path[i][0] - path[i - 1][0], path[i][1] - path[i - 1][1])
        next_dir = (path[i + 1][0] - path[i][0], path[i + 1][1] - path[i][1])
        if prev_dir != next_dir and prev_dir != (-next_dir[0], -next_dir[1]):
            turns += 1
    return turns


def is_valid_path(path: Sequence[Cell], grid: Optional[Grid] = None) -> bool:
    """Loop-free, rook-adjacent and (optionally) inside the grid."""
    if not path:
        return False
    if len(set(path)) != len(path):
        return False
    if grid is not None and not all(grid.in_bounds(c) for c in path):
        return False
    return all(direction_between(a, b) is not None for a, b in zip(path, path[1:]))


class PathBuilder:
    def __init__(self, grid: Grid, params: DifficultyParams, rng: random.Random, true_end: Optional[Cell] = None):
        self.grid = grid
        self.params = params
        self.rng = rng
        self.true_end = true_end

    def build_path(self, start: Cell, end: Cell) -> Path:
        rng = self.rng
        path: List[Cell] = [start]
        visited = {start}
        current = start
        budget = self.grid.area * 2
        bias = self.params.direct_path_bias
        while current != end and budget > 0:
            if rng.random() < bias:
                nxt = _step_toward(current, end, rng)
            else:
                nxt = neighbor(current, DIRECTIONS[rng.randrange(4)])
            if self.grid.in_bounds(nxt) and nxt not in visited:
                path.append(nxt)
                visited.add(nxt)
                current = nxt
            budget -= 1
        if current != end:
            log.debug(event="path_walk_failed", start=start, end=end, fallback="l_path")
            return l_path(start, end, self.grid)
        return tuple(path)

    def build_deceptive_path(self, start: Cell, target: Cell) -> Path:
        """Walk toward `target` but give up near it so the branch never closes."""
        rng = self.rng
        p = self.params
        winding = p.scaled(0.3, 0.95)
        min_length = p.scaled_int(5, 15)
        end = self.true_end or target
        path: List[Cell] = [start]
        visited = {start}
        current = start
        for _ in range(p.max_path_length):
            if rng.random() < p.path_straightness_bias:
                nxt = _step_toward(current, target, rng)
            else:
                options = list(DIRECTIONS)
                if p.rating > 7:
                    # mimic the critical path: keep the two moves heading toward the real end
                    keyed = [(distance(neighbor(current, d), end) + rng.random() * winding, d) for d in options]
                    options = [d for _k, d in sorted(keyed)][:2]
                nxt = neighbor(current, options[rng.randrange(len(options))])
            if self.grid.in_bounds(nxt) and nxt not in visited:
                path.append(nxt)
                visited.add(nxt)
                current = nxt
                if distance(current, target) <= 2 and rng.random() < 0.8 and p.rating > 5:
                    break
            elif len(path) > min_length and rng.random() < 0.3:
                break
        return tuple(path)


__all__ = ["Path", "PathBuilder", "l_path", "count_turns", "is_valid_path"]
