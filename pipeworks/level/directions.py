"""Grid model and direction algebra.

Directions are the integers 1..4 (N, E, S, W). North is +y, east is +x.
Every other module reasons about openings purely as sets of these codes.
"""
from __future__ import annotations

import math
from typing import Iterator, NamedTuple, Optional, Tuple

NORTH = 1
EAST = 2
SOUTH = 3
WEST = 4
DIRECTIONS = (NORTH, EAST, SOUTH, WEST)

_OFFSETS = {
    NORTH: (0, 1),
    EAST: (1, 0),
    SOUTH: (0, -1),
    WEST: (-1, 0),
}

Cell = Tuple[int, int]

MIN_SIZE = 4


def opposite(direction: int) -> int:
    return ((direction + 1) % 4) + 1


def rotate_direction(direction: int, steps: int) -> int:
    """Rotate one direction clockwise by `steps` quarter turns."""
    return ((direction - 1 + steps) % 4) + 1


def neighbor(cell: Cell, direction: int) -> Cell:
    dx, dy = _OFFSETS[direction]
    return (cell[0] + dx, cell[1] + dy)


def direction_between(a: Cell, b: Cell) -> Optional[int]:
    """Direction of the rook-adjacent cell `b` as seen from `a` (None if not adjacent)."""
    delta = (b[0] - a[0], b[1] - a[1])
    for d, off in _OFFSETS.items():
        if off == delta:
            return d
    return None


def distance(a: Cell, b: Cell) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def is_opposite_pair(a: int, b: int) -> bool:
    return abs(a - b) == 2


class Grid(NamedTuple):
    width: int
    height: int

    def in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.width and 0 <= y < self.height

    def cells(self) -> Iterator[Cell]:
        """Row-major iteration (y outer) matching the planner's fill order."""
        for y in range(self.height):
            for x in range(self.width):
                yield (x, y)

    @property
    def diagonal(self) -> float:
        return math.hypot(self.width, self.height)

    @property
    def area(self) -> int:
        return self.width * self.height


__all__ = [
    "NORTH",
    "EAST",
    "SOUTH",
    "WEST",
    "DIRECTIONS",
    "MIN_SIZE",
    "Cell",
    "Grid",
    "opposite",
    "rotate_direction",
    "neighbor",
    "direction_between",
    "distance",
    "is_opposite_pair",
]
