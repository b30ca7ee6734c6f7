import random

import pytest

from pipeworks.level.config import DifficultyParams
from pipeworks.level.directions import Grid
from pipeworks.level.paths import PathBuilder, count_turns, is_valid_path, l_path


def _builder(difficulty=5, size=(8, 8), seed=7):
    grid = Grid(*size)
    return PathBuilder(grid, DifficultyParams.from_rating(difficulty, *size), random.Random(seed))


@pytest.mark.parametrize("difficulty", [1, 5, 10])
@pytest.mark.parametrize("seed", range(8))
def test_build_path_endpoints_and_adjacency(difficulty, seed):
    builder = _builder(difficulty, seed=seed)
    rng = random.Random(seed * 31 + difficulty)
    start = (rng.randrange(8), rng.randrange(8))
    end = start
    while end == start:
        end = (rng.randrange(8), rng.randrange(8))
    path = builder.build_path(start, end)
    assert path[0] == start
    assert path[-1] == end
    assert is_valid_path(path, builder.grid)


def test_l_path_goes_x_then_y():
    path = l_path((0, 0), (2, 2), Grid(4, 4))
    assert path == ((0, 0), (1, 0), (2, 0), (2, 1), (2, 2))
    assert count_turns(path) == 1


def test_l_path_gives_up_outside_grid():
    assert l_path((0, 0), (5, 0), Grid(4, 4)) == ((0, 0), (5, 0))


def test_count_turns_straight_and_zigzag():
    assert count_turns([(0, 0), (1, 0), (2, 0)]) == 0
    assert count_turns([(0, 0), (1, 0), (1, 1), (2, 1), (2, 2)]) == 3
    assert count_turns([(0, 0)]) == 0


def test_is_valid_path_rejects_loops_and_jumps():
    assert not is_valid_path([])
    assert not is_valid_path([(0, 0), (1, 0), (0, 0)])
    assert not is_valid_path([(0, 0), (2, 0)])
    assert not is_valid_path([(0, 0), (-1, 0)], Grid(4, 4))


@pytest.mark.parametrize("difficulty", [2, 6, 8, 10])
def test_deceptive_path_is_simple_and_in_bounds(difficulty):
    builder = _builder(difficulty, size=(10, 10), seed=difficulty)
    builder.true_end = (9, 9)
    for _ in range(10):
        path = builder.build_deceptive_path((2, 2), (8, 1))
        assert path[0] == (2, 2)
        assert is_valid_path(path, builder.grid)
        assert len(path) <= builder.params.max_path_length + 1
