"""Plain-text board rendering for the CLI and debug logs."""
from __future__ import annotations

from typing import Callable, Collection, Mapping, Optional

from . import tiles as T
from .directions import Cell
from .realize import LevelGrid

GLYPHS = {
    frozenset(): "·",
    frozenset({1}): "╵",
    frozenset({2}): "╶",
    frozenset({3}): "╷",
    frozenset({4}): "╴",
    frozenset({1, 3}): "│",
    frozenset({2, 4}): "─",
    frozenset({1, 2}): "└",
    frozenset({2, 3}): "┌",
    frozenset({3, 4}): "┐",
    frozenset({1, 4}): "┘",
    frozenset({1, 2, 3}): "├",
    frozenset({2, 3, 4}): "┬",
    frozenset({1, 3, 4}): "┤",
    frozenset({1, 2, 4}): "┴",
    frozenset({1, 2, 3, 4}): "┼",
}


def glyph(openings) -> str:
    return GLYPHS.get(frozenset(openings), "?")


def render_ascii(
    board: LevelGrid,
    rotations: Optional[Mapping[Cell, int]] = None,
    wet: Collection[Cell] = (),
    paint: Optional[Callable[[str], str]] = None,
) -> str:
    """Render north-up (highest y first). `paint` decorates wet cells."""
    rotations = board.rotations() if rotations is None else rotations
    lines = []
    for y in range(board.height - 1, -1, -1):
        row = []
        for x in range(board.width):
            cell = (x, y)
            tile = board.tile(cell)
            if tile.archetype == T.START:
                ch = "S"
            elif tile.archetype == T.END:
                ch = "E"
            else:
                ch = glyph(tile.with_rotation(rotations.get(cell, tile.rotation)).openings)
            if paint is not None and cell in wet:
                ch = paint(ch)
            row.append(ch)
        lines.append(" ".join(row))
    return "\n".join(lines)


__all__ = ["GLYPHS", "glyph", "render_ascii"]
