"""Tile archetype registry and immutable tile blueprints.

A blueprint keeps the archetype's unrotated openings and a rotation counter;
rotated openings are always derived, never written back.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, List, Optional

from pipeworks.logging_utils import get_logger

from .directions import rotate_direction
from .errors import MISSING_ARCHETYPE

log = get_logger("pipeworks.level.tiles")

EMPTY = "empty"
STRAIGHT = "straight"
CORNER = "corner"
T_JUNCTION = "t"
CROSS = "cross"
START = "start"
END = "end"

ARCHETYPES = {
    EMPTY: frozenset(),
    STRAIGHT: frozenset({1, 3}),
    CORNER: frozenset({1, 2}),
    T_JUNCTION: frozenset({1, 2, 3}),
    CROSS: frozenset({1, 2, 3, 4}),
    START: frozenset({1}),
    END: frozenset({3}),
}

# Glyph codes used by the CLI renderer and API payloads
ARCHETYPE_CODES = {
    EMPTY: 0,
    STRAIGHT: 1,
    CORNER: 2,
    T_JUNCTION: 3,
    CROSS: 4,
    START: 5,
    END: 6,
}


def base_openings(archetype: str) -> FrozenSet[int]:
    try:
        return ARCHETYPES[archetype]
    except KeyError:
        log.warn(event="missing_archetype", kind=MISSING_ARCHETYPE, archetype=archetype)
        return frozenset()


def rotate_directions(directions: Iterable[int], rotation: int) -> FrozenSet[int]:
    return frozenset(rotate_direction(d, rotation) for d in directions)


def distinct_rotations(directions: FrozenSet[int]) -> List[int]:
    """Rotations 0..3 whose opening sets differ from every earlier rotation's."""
    seen = set()
    out = []
    for r in range(4):
        rotated = rotate_directions(directions, r)
        if rotated in seen:
            continue
        seen.add(rotated)
        out.append(r)
    return out


def can_expose(directions: FrozenSet[int], required: int) -> bool:
    """True when some rotation of `directions` opens toward `required`."""
    if not directions:
        return False
    return any(required in rotate_directions(directions, r) for r in range(4))


def first_rotation_exposing(directions: FrozenSet[int], required: int) -> Optional[int]:
    for r in range(4):
        if required in rotate_directions(directions, r):
            return r
    return None


@dataclass(frozen=True)
class TileBlueprint:
    archetype: str
    base: FrozenSet[int]
    rotation: int = 0

    @classmethod
    def of(cls, archetype: str, rotation: int = 0) -> "TileBlueprint":
        return cls(archetype, base_openings(archetype), rotation % 4)

    @property
    def openings(self) -> FrozenSet[int]:
        return rotate_directions(self.base, self.rotation)

    @property
    def is_empty(self) -> bool:
        return not self.base

    def rotated(self, steps: int = 1) -> "TileBlueprint":
        return replace(self, rotation=(self.rotation + steps) % 4)

    def with_rotation(self, rotation: int) -> "TileBlueprint":
        return replace(self, rotation=rotation % 4)

    def to_dict(self):
        return {
            "archetype": self.archetype,
            "code": ARCHETYPE_CODES.get(self.archetype, 0),
            "base": sorted(self.base),
            "rotation": self.rotation,
            "openings": sorted(self.openings),
        }


__all__ = [
    "EMPTY",
    "STRAIGHT",
    "CORNER",
    "T_JUNCTION",
    "CROSS",
    "START",
    "END",
    "ARCHETYPES",
    "ARCHETYPE_CODES",
    "TileBlueprint",
    "base_openings",
    "rotate_directions",
    "distinct_rotations",
    "can_expose",
    "first_rotation_exposing",
]
