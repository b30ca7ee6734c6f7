"""Water flow: how much pipework carries water once a solution is committed.

`explore_fill_from_path` is the generation-time estimate (greedy first-fit
rotation for each newly reached neighbour); `simulate_flow` is the live
check against the rotations a player actually has on the board.
"""
from __future__ import annotations

from collections import deque
from typing import Dict, Iterable, Mapping, Optional, Set, Tuple

from pipeworks.logging_utils import get_logger

from .directions import DIRECTIONS, Cell, Grid, neighbor, opposite
from .solver import DEFAULT_BUDGET, Openings, SolutionPathInfo, find_all_solution_paths
from .tiles import first_rotation_exposing, rotate_directions

log = get_logger("pipeworks.level.fill")


def explore_fill(
    grid: Grid, openings: Openings, solution: SolutionPathInfo
) -> Tuple[int, Dict[Cell, int], bool]:
    """Flood outward from a committed solution.

    Returns ``(filled_count, fixed_rotations, truncated)``.
    """
    fixed: Dict[Cell, int] = dict(solution.rotations)
    filled: Set[Cell] = set(solution.path_positions)
    if solution.path_positions:
        start = solution.path_positions[0]
        if start not in fixed and openings.get(start):
            fixed[start] = 0
    # only cells with a committed rotation can push water further
    frontier = deque(c for c in solution.path_positions if c in fixed)
    cap = grid.area * 5
    iterations = 0
    truncated = False
    while frontier:
        if iterations >= cap:
            truncated = True
            break
        iterations += 1
        cell = frontier.popleft()
        for d in DIRECTIONS:
            if d not in rotate_directions(openings.get(cell, frozenset()), fixed[cell]):
                continue
            nb = neighbor(cell, d)
            if nb in filled or not grid.in_bounds(nb):
                continue
            base = openings.get(nb, frozenset())
            if not base:
                continue
            rotation = first_rotation_exposing(base, opposite(d))
            if rotation is None:
                continue
            fixed[nb] = rotation
            filled.add(nb)
            frontier.append(nb)
    if truncated:
        log.warn(event="fill_truncated", filled=len(filled), cap=cap)
    return len(filled), fixed, truncated


def explore_fill_from_path(grid: Grid, openings: Openings, solution: SolutionPathInfo) -> int:
    return explore_fill(grid, openings, solution)[0]


def best_fill(grid: Grid, openings: Openings, paths: Iterable[SolutionPathInfo]) -> Tuple[int, Optional[SolutionPathInfo], bool]:
    """Largest fill over `paths`; a later path must be strictly better to win."""
    best, best_path, any_truncated = 0, None, False
    for info in paths:
        count, _fixed, truncated = explore_fill(grid, openings, info)
        any_truncated = any_truncated or truncated
        if count > best:
            best, best_path = count, info
    return best, best_path, any_truncated


def calculate_max_fillable_tiles(
    grid: Grid,
    openings: Openings,
    start: Cell,
    end: Cell,
    max_results: Optional[int] = None,
    budget: Optional[int] = DEFAULT_BUDGET,
) -> Tuple[int, Optional[SolutionPathInfo]]:
    outcome = find_all_solution_paths(grid, openings, start, end, max_results=max_results, budget=budget)
    best, best_path, _truncated = best_fill(grid, openings, outcome.paths)
    return best, best_path


def simulate_flow(grid: Grid, openings: Openings, rotations: Mapping[Cell, int], start: Cell) -> Set[Cell]:
    """Cells holding water for the given live rotations.

    Water crosses an edge only when both tiles open toward each other.
    """
    def live(cell: Cell):
        return rotate_directions(openings.get(cell, frozenset()), rotations.get(cell, 0))

    wet = {start}
    queue = deque([start])
    while queue:
        cell = queue.popleft()
        for d in live(cell):
            nb = neighbor(cell, d)
            if nb in wet or not grid.in_bounds(nb):
                continue
            if opposite(d) in live(nb):
                wet.add(nb)
                queue.append(nb)
    return wet


__all__ = [
    "explore_fill",
    "explore_fill_from_path",
    "best_fill",
    "calculate_max_fillable_tiles",
    "simulate_flow",
]
