"""Rotation-aware search for Start->End connections.

Both entry points share one depth-first search driven by an explicit stack.
A stack entry carries an immutable path prefix and rotation assignment, so
abandoning a branch never needs an undo step.

Rules applied at every cell:
  * an empty cell never extends a path (the End cell is reached for free);
  * each distinct rotation of the cell must open toward the direction the
    path arrived from (the start cell has no such requirement);
  * an outgoing opening leads to an in-bounds neighbour that is not already
    on the path and that can rotate to face back.

Rotations with an opening set identical to an earlier rotation (straights,
crosses) are skipped, so one physical route is reported once per distinct
tile orientation rather than once per symmetric duplicate.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List, Mapping, NamedTuple, Optional, Tuple

from pipeworks.logging_utils import get_logger

from .directions import DIRECTIONS, Cell, Grid, neighbor, opposite
from .errors import SEARCH_BUDGET_EXCEEDED
from .tiles import distinct_rotations, rotate_directions

log = get_logger("pipeworks.level.solver")

Openings = Mapping[Cell, FrozenSet[int]]

DEFAULT_BUDGET = 50_000


class SolutionPathInfo(NamedTuple):
    path_positions: Tuple[Cell, ...]
    rotations: Dict[Cell, int]

    def __len__(self):
        return len(self.path_positions)

    def to_dict(self):
        return {
            "path": [list(c) for c in self.path_positions],
            "rotations": [[x, y, r] for (x, y), r in self.rotations.items()],
        }


class SearchOutcome(NamedTuple):
    paths: List[SolutionPathInfo]
    truncated: bool
    expanded: int


class _Branch(NamedTuple):
    cell: Cell
    incoming: int  # 0 for the start cell
    path: Tuple[Cell, ...]
    rotations: Tuple[Tuple[Cell, int], ...]


class _RotationTable:
    """Per-cell distinct rotated opening sets, computed on first use."""

    def __init__(self, openings: Openings):
        self.openings = openings
        self._rotations: Dict[Cell, List[Tuple[int, FrozenSet[int]]]] = {}

    def rotations(self, cell: Cell) -> List[Tuple[int, FrozenSet[int]]]:
        cached = self._rotations.get(cell)
        if cached is None:
            base = self.openings.get(cell, frozenset())
            cached = [(r, rotate_directions(base, r)) for r in distinct_rotations(base)]
            self._rotations[cell] = cached
        return cached

    def can_expose(self, cell: Cell, direction: int) -> bool:
        return any(direction in rotated for _r, rotated in self.rotations(cell))


def _children(branch: _Branch, grid: Grid, table: _RotationTable, end: Cell) -> List[_Branch]:
    out = []
    for rotation, rotated in table.rotations(branch.cell):
        if branch.incoming and branch.incoming not in rotated:
            continue
        rotations = branch.rotations + ((branch.cell, rotation),)
        for d in DIRECTIONS:
            if d not in rotated:
                continue
            nb = neighbor(branch.cell, d)
            if not grid.in_bounds(nb) or nb in branch.path:
                continue
            back = opposite(d)
            if nb != end and not table.can_expose(nb, back):
                continue
            out.append(_Branch(nb, back, branch.path + (nb,), rotations))
    return out


def search_solution_paths(
    grid: Grid,
    openings: Openings,
    start: Cell,
    end: Cell,
    max_results: Optional[int] = None,
    budget: Optional[int] = DEFAULT_BUDGET,
    first_only: bool = False,
) -> SearchOutcome:
    """Enumerate Start->End paths depth-first.

    Stops after `max_results` paths or `budget` expanded branches, whichever
    comes first; hitting either limit before the stack drains marks the
    outcome as truncated (the caller decides whether that matters).
    `first_only` stops at the first path without counting that as truncation.
    """
    table = _RotationTable(openings)
    found: List[SolutionPathInfo] = []
    stack = [_Branch(start, 0, (start,), ())]
    expanded = 0
    truncated = False
    while stack:
        if budget is not None and expanded >= budget:
            truncated = True
            break
        branch = stack.pop()
        expanded += 1
        if branch.cell == end:
            found.append(SolutionPathInfo(branch.path, dict(branch.rotations)))
            if first_only:
                break
            if max_results is not None and len(found) >= max_results:
                truncated = bool(stack)
                break
            continue
        if not openings.get(branch.cell):
            continue
        # reversed so N/E/S/W and rotation 0..3 are explored in order
        stack.extend(reversed(_children(branch, grid, table, end)))
    if truncated:
        log.warn(event="search_truncated", kind=SEARCH_BUDGET_EXCEEDED, found=len(found), expanded=expanded, budget=budget)
    return SearchOutcome(found, truncated, expanded)


def find_solution_path(
    grid: Grid, openings: Openings, start: Cell, end: Cell, budget: Optional[int] = DEFAULT_BUDGET
) -> Optional[SolutionPathInfo]:
    outcome = search_solution_paths(grid, openings, start, end, budget=budget, first_only=True)
    return outcome.paths[0] if outcome.paths else None


def exists_solution_path(
    grid: Grid, openings: Openings, start: Cell, end: Cell, budget: Optional[int] = DEFAULT_BUDGET
) -> bool:
    return find_solution_path(grid, openings, start, end, budget) is not None


def find_all_solution_paths(
    grid: Grid,
    openings: Openings,
    start: Cell,
    end: Cell,
    max_results: Optional[int] = None,
    budget: Optional[int] = DEFAULT_BUDGET,
) -> SearchOutcome:
    return search_solution_paths(grid, openings, start, end, max_results=max_results, budget=budget)


def verify_solution(grid: Grid, openings: Openings, solution: SolutionPathInfo, end: Cell) -> bool:
    """Check that a solution's rotations really chain every consecutive pair."""
    cells = solution.path_positions
    if not cells or cells[-1] != end:
        return False
    for a, b in zip(cells, cells[1:]):
        if not grid.in_bounds(b) or a not in solution.rotations:
            return False
        out_dir = next((d for d in DIRECTIONS if neighbor(a, d) == b), None)
        if out_dir is None or out_dir not in rotate_directions(openings.get(a, frozenset()), solution.rotations[a]):
            return False
        if b != end and opposite(out_dir) not in rotate_directions(openings.get(b, frozenset()), solution.rotations.get(b, 0)):
            return False
    return True


__all__ = [
    "SolutionPathInfo",
    "SearchOutcome",
    "search_solution_paths",
    "find_solution_path",
    "exists_solution_path",
    "find_all_solution_paths",
    "verify_solution",
]
