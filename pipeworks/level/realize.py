"""Turn a tile plan into concrete, rotatable tiles.

Also home to the guaranteed-solvable fallback layout and the start-of-play
rotation scramble.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Sequence

from pipeworks.logging_utils import get_logger

from . import tiles as T
from .directions import EAST, SOUTH, Cell, Grid, direction_between
from .planner import LevelPlan, choose_archetype, gather_directions
from .tiles import TileBlueprint, rotate_directions

log = get_logger("pipeworks.level.realize")


def choose_rotation(archetype: str, desired: Iterable[int]) -> int:
    """Rotation whose openings equal `desired`; else one sharing any of them; else 0."""
    desired = frozenset(desired)
    if not desired:
        return 0
    base = T.base_openings(archetype)
    for r in range(4):
        if rotate_directions(base, r) == desired:
            return r
    for r in range(4):
        if rotate_directions(base, r) & desired:
            log.debug(event="partial_rotation_match", archetype=archetype, desired=sorted(desired), rotation=r)
            return r
    return 0


@dataclass
class LevelGrid:
    width: int
    height: int
    start: Cell
    end: Cell
    tiles: Dict[Cell, TileBlueprint] = field(default_factory=dict)
    critical_path: Sequence[Cell] = ()
    key_tiles: Sequence[Cell] = ()

    @property
    def grid(self) -> Grid:
        return Grid(self.width, self.height)

    def tile(self, cell: Cell) -> TileBlueprint:
        return self.tiles.get(cell) or TileBlueprint.of(T.EMPTY)

    def base_openings(self) -> Dict[Cell, FrozenSet[int]]:
        return {cell: tile.base for cell, tile in self.tiles.items()}

    def rotations(self) -> Dict[Cell, int]:
        return {cell: tile.rotation for cell, tile in self.tiles.items()}

    def with_rotations(self, rotations: Dict[Cell, int]) -> "LevelGrid":
        tiles = {cell: tile.with_rotation(rotations.get(cell, tile.rotation)) for cell, tile in self.tiles.items()}
        return LevelGrid(self.width, self.height, self.start, self.end, tiles, self.critical_path, self.key_tiles)

    def to_dict(self):
        return {
            "width": self.width,
            "height": self.height,
            "start": list(self.start),
            "end": list(self.end),
            "tiles": [
                {"x": x, "y": y, **self.tiles[(x, y)].to_dict()}
                for (x, y) in self.grid.cells()
                if (x, y) in self.tiles
            ],
        }


def realize_plan(plan: LevelPlan) -> LevelGrid:
    tiles: Dict[Cell, TileBlueprint] = {}
    for tp in plan.tiles:
        if tp.archetype in (T.START, T.END):
            tiles[tp.cell] = TileBlueprint.of(tp.archetype, 0)
            continue
        tiles[tp.cell] = TileBlueprint.of(tp.archetype, choose_rotation(tp.archetype, tp.directions))
    return LevelGrid(
        plan.grid.width,
        plan.grid.height,
        plan.start,
        plan.end,
        tiles,
        critical_path=tuple(plan.critical_path),
        key_tiles=tuple(plan.key_tiles),
    )


def scramble_rotations(level: LevelGrid, rng: random.Random) -> Dict[Cell, int]:
    """Random starting rotation for every tile (row-major so seeds reproduce)."""
    return {cell: rng.randrange(4) for cell in level.grid.cells() if cell in level.tiles}


def fallback_path(width: int, height: int) -> List[Cell]:
    start = (1, 1)
    end = (width - 2, height - 2)
    path = [start]
    x, y = start
    while x < end[0]:
        x += 1
        path.append((x, y))
    while y < end[1]:
        y += 1
        path.append((x, y))
    return path


def build_fallback_level(width: int, height: int) -> LevelGrid:
    """Minimal L-shaped level: start at (1,1), right along the row, then up to the end."""
    path = fallback_path(width, height)
    start, end = path[0], path[-1]
    tiles: Dict[Cell, TileBlueprint] = {cell: TileBlueprint.of(T.EMPTY) for cell in Grid(width, height).cells()}

    # start opens N by default: rotation 1 faces E
    tiles[start] = TileBlueprint.of(T.START, 1 if direction_between(start, path[1]) == EAST else 0)
    # end opens S by default: rotation 1 faces W
    tiles[end] = TileBlueprint.of(T.END, 0 if direction_between(end, path[-2]) == SOUTH else 1)

    for i in range(1, len(path) - 1):
        dirs = gather_directions(path[i - 1], path[i], path[i + 1])
        archetype = choose_archetype(dirs, 1, random.Random(0))
        tiles[path[i]] = TileBlueprint.of(archetype, choose_rotation(archetype, dirs))
    log.debug(event="fallback_layout", width=width, height=height, length=len(path))
    return LevelGrid(width, height, start, end, tiles, critical_path=tuple(path))


__all__ = [
    "LevelGrid",
    "choose_rotation",
    "realize_plan",
    "scramble_rotations",
    "fallback_path",
    "build_fallback_level",
]
