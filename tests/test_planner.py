import random

import pytest

from pipeworks.level import planner as planner_mod
from pipeworks.level import tiles as T
from pipeworks.level.config import LevelConfig
from pipeworks.level.directions import Grid, distance, is_opposite_pair
from pipeworks.level.errors import PlanningFailure
from pipeworks.level.paths import is_valid_path
from pipeworks.level.planner import LevelPlanner, choose_archetype, gather_directions, plan_level


@pytest.mark.parametrize("difficulty", [1, 4, 7, 9, 10])
@pytest.mark.parametrize("seed", [3, 17, 2024])
def test_plan_covers_every_cell_once(difficulty, seed):
    cfg = LevelConfig(width=8, height=7, difficulty=difficulty, seed=seed)
    result = plan_level(cfg)
    assert result.ok
    plan = result.plan
    cells = [tp.cell for tp in plan.tiles]
    assert len(cells) == 8 * 7
    assert set(cells) == set(Grid(8, 7).cells())
    assert plan.tile_at(plan.start).archetype == T.START
    assert plan.tile_at(plan.end).archetype == T.END
    assert plan.critical_path[0] == plan.start
    assert plan.critical_path[-1] == plan.end
    assert is_valid_path(plan.critical_path, plan.grid)
    for tp in plan.tiles:
        assert tp.archetype in T.ARCHETYPES
        assert tp.on_critical_path == (tp.cell in plan.critical_path)


def test_plan_is_deterministic_for_seed():
    a = plan_level(LevelConfig(width=9, height=9, difficulty=8, seed=99)).plan
    b = plan_level(LevelConfig(width=9, height=9, difficulty=8, seed=99)).plan
    assert a.tiles == b.tiles
    assert a.critical_path == b.critical_path
    assert a.stats == b.stats


def _quadrant(cell, grid):
    return (cell[0] >= grid.width // 2, cell[1] >= grid.height // 2)


@pytest.mark.parametrize("difficulty", [1, 5, 10])
@pytest.mark.parametrize("size", [(10, 10), (12, 7)])
def test_start_end_in_different_quadrants_and_far_apart(difficulty, size):
    cfg = LevelConfig(width=size[0], height=size[1], difficulty=difficulty, seed=5)
    planner = LevelPlanner(cfg)
    grid = planner.grid
    min_dist = cfg.params.scaled(0.5, 0.8) * grid.diagonal
    corners = ((0, 0), (grid.width - 1, grid.height - 1))
    for _ in range(20):
        start, end = planner.place_start_end()
        assert grid.in_bounds(start) and grid.in_bounds(end)
        assert _quadrant(start, grid) != _quadrant(end, grid)
        assert distance(start, end) >= min_dist or (start, end) == corners


def test_start_end_falls_back_to_opposite_corners(monkeypatch):
    monkeypatch.setattr(planner_mod, "PLACEMENT_ATTEMPTS", 0)
    planner = LevelPlanner(LevelConfig(width=8, height=6, difficulty=10, seed=1))
    assert planner.place_start_end() == ((0, 0), (7, 5))


def test_key_tiles_are_spaced_interior_cells():
    cfg = LevelConfig(width=12, height=12, difficulty=10, seed=8)
    planner = LevelPlanner(cfg)
    path = tuple((x, 0) for x in range(12)) + tuple((11, y) for y in range(1, 12))
    keys = planner.identify_key_tiles(path)
    assert keys
    indices = sorted(path.index(k) for k in keys)
    assert all(2 <= i < len(path) - 2 for i in indices)
    assert all(b - a > 2 for a, b in zip(indices, indices[1:]))


def test_short_path_has_no_key_tiles():
    planner = LevelPlanner(LevelConfig(width=4, height=4, difficulty=10, seed=1))
    assert planner.identify_key_tiles(((0, 0), (1, 0), (2, 0), (3, 0))) == []


def test_fake_target_avoids_path():
    planner = LevelPlanner(LevelConfig(width=12, height=12, difficulty=3, seed=4))
    avoid = [(x, 5) for x in range(12)]
    hits = sum(planner.random_fake_target((5, 5), avoid) in avoid for _ in range(50))
    assert hits < 50


def test_gather_directions_unions_neighbours():
    assert gather_directions((0, 1), (1, 1), (2, 1)) == [2, 4]
    assert gather_directions((1, 0), (1, 1), (2, 1)) == [2, 3]
    assert gather_directions((1, 2), (1, 1), (1, 0)) == [1, 3]


def test_choose_archetype_by_direction_count():
    rng = random.Random(0)
    assert choose_archetype([], 5, rng) == T.EMPTY
    assert choose_archetype([1], 5, rng) == T.STRAIGHT
    assert choose_archetype([1, 3], 5, rng) == T.STRAIGHT
    assert choose_archetype([1, 2], 5, rng) == T.CORNER
    assert choose_archetype([1, 2, 4], 5, rng) == T.T_JUNCTION
    assert choose_archetype([1, 2, 3, 4], 1, rng) == T.CROSS
    hard = {choose_archetype([1, 2, 3, 4], 9, rng) for _ in range(50)}
    assert hard == {T.T_JUNCTION, T.CROSS}


def test_dead_ends_branch_into_unplanned_cells():
    planner = LevelPlanner(LevelConfig(width=10, height=10, difficulty=8, seed=12))
    planner.start, planner.end = (0, 0), (9, 9)
    path = tuple((x, 0) for x in range(10)) + tuple((9, y) for y in range(1, 10))
    planner.planning = {planner.start: [], planner.end: []}
    planner.plan_paths([path])
    before = set(planner.planning)
    placed = planner.plan_dead_ends()
    assert placed > 0
    stubs = set(planner.planning) - before
    assert len(stubs) >= placed
    for stub in stubs:
        assert planner.grid.in_bounds(stub)
        assert 1 <= len(planner.planning[stub]) <= 4


def test_key_tile_gaps_respect_cap():
    planner = LevelPlanner(LevelConfig(width=10, height=10, difficulty=10, seed=2))
    planner.key_tiles = [(2, 0), (5, 0), (8, 0)]
    planner.planning = {cell: [1, 2, 3] for cell in planner.key_tiles}
    emptied, reduced = planner.create_key_tile_gaps()
    # at most n - 1 may be emptied
    assert emptied <= 2
    remaining = [planner.planning[c] for c in planner.key_tiles if planner.planning[c]]
    assert remaining
    for dirs in remaining:
        assert len(dirs) == 2
    assert emptied + reduced == 3


def test_remaining_fill_near_critical_path_is_mostly_solid():
    cfg = LevelConfig(width=10, height=10, difficulty=1, seed=21)
    planner = LevelPlanner(cfg)
    planner.start, planner.end = (0, 0), (9, 0)
    planner.critical_path = tuple((x, 0) for x in range(10))
    planner.planning = {c: [2, 4] for c in planner.critical_path}
    planner.plan_remaining_tiles()
    assert len(planner.planning) == 100
    near = [c for c in planner.grid.cells() if c[1] == 1]
    far = [c for c in planner.grid.cells() if c[1] >= 5]
    near_empty = sum(1 for c in near if not planner.planning[c]) / len(near)
    far_empty = sum(1 for c in far if not planner.planning[c]) / len(far)
    assert near_empty < far_empty
    assert all(distance(c, (c[0], 0)) == 1 for c in near)


def test_empty_chance_is_cut_within_distance_two(monkeypatch):
    cfg = LevelConfig(width=6, height=6, difficulty=1, seed=4)
    planner = LevelPlanner(cfg)
    planner.start, planner.end = (0, 0), (5, 0)
    planner.critical_path = tuple((x, 0) for x in range(6))
    planner.planning = {c: [2, 4] for c in planner.critical_path}
    chances = []
    monkeypatch.setattr(planner, "_random_shape", lambda roll, empty, shape: chances.append(empty) or [])
    planner.plan_remaining_tiles()
    base, _shape = planner._fill_profile()
    by_row = {}
    for cell, chance in zip([c for c in planner.grid.cells() if c[1] > 0], chances):
        by_row.setdefault(cell[1], set()).add(chance)
    assert by_row[1] == by_row[2] == {base * 0.2}
    assert by_row[3] == {base}


def test_planning_failure_is_a_value():
    failure = PlanningFailure("critical path degenerate", "critical_path")
    assert not failure.ok
    assert failure.kind == "planning_failure"


def test_key_tile_reduction_prefers_straight_pair():
    planner = LevelPlanner(LevelConfig(width=8, height=8, difficulty=9, seed=6))
    for dirs in ([1, 2, 3], [2, 3, 4], [1, 2, 4], [1, 2, 3, 4]):
        pair = planner._reduce_to_pair(dirs)
        assert len(pair) == 2
        assert is_opposite_pair(*pair)
