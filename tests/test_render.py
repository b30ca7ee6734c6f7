from pipeworks.level import tiles as T
from pipeworks.level.realize import build_fallback_level
from pipeworks.level.render import GLYPHS, glyph, render_ascii


def test_glyph_table_covers_every_opening_set():
    assert len(GLYPHS) == 16
    assert glyph({1, 3}) == "│"
    assert glyph(frozenset({2, 4})) == "─"
    assert glyph(()) == "·"


def test_render_north_up():
    board = build_fallback_level(5, 4)
    lines = render_ascii(board).splitlines()
    assert len(lines) == 4
    assert all(len(line.split(" ")) == 5 for line in lines)
    # start (1,1) sits on the second row from the bottom; end (3,2) one row above
    assert lines[2].split(" ")[1] == "S"
    assert lines[1].split(" ")[3] == "E"
    assert lines[0] == " ".join(["·"] * 5)


def test_render_uses_given_rotations_and_paint():
    board = build_fallback_level(5, 4)
    straight = (2, 1)
    assert board.tile(straight).archetype == T.STRAIGHT
    rotations = board.rotations()
    rotations[straight] = (rotations[straight] + 1) % 4
    text = render_ascii(board, rotations, wet={straight}, paint=lambda ch: f"[{ch}]")
    row = text.splitlines()[2].split(" ")
    assert row[2] == "[│]"
    assert "[" not in row[1]
