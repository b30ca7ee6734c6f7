import random

from pipeworks.level.config import DifficultyParams, LevelConfig, lerp
from pipeworks.level.difficulty import ValidationReport, adjust, count_valid_paths, validate
from pipeworks.level.directions import Grid


def test_lerp_is_clamped():
    assert lerp(0, 10, 0.5) == 5
    assert lerp(0, 10, 2.0) == 10
    assert lerp(0, 10, -1) == 0


def test_thresholds_scale_with_difficulty():
    easy = DifficultyParams.from_rating(1, 8, 8)
    hard = DifficultyParams.from_rating(10, 8, 8)
    assert hard.min_path_length >= easy.min_path_length
    assert hard.min_turns >= easy.min_turns
    assert hard.max_valid_paths <= easy.max_valid_paths
    assert easy.min_path_length == 16 and hard.min_path_length == 32
    assert easy.min_turns == 3 and hard.min_turns == 15
    assert hard.path_straightness_bias == 0.20
    assert DifficultyParams.from_rating(9, 8, 8).path_straightness_bias == 0.30


def test_rating_is_clamped():
    assert DifficultyParams.from_rating(42, 8, 8).rating == 10
    assert LevelConfig(difficulty=-3, seed=1).difficulty == 1


def test_count_valid_paths_counts_shortest_routes():
    grid = Grid(4, 4)
    # 2x2 ring between start (0,0) and end (1,1): two shortest routes
    planning = {
        (0, 0): [],
        (1, 1): [],
        (1, 0): [4, 1],
        (0, 1): [3, 2],
    }
    assert count_valid_paths(planning, (0, 0), (1, 1), grid, cap=10) == 2
    assert count_valid_paths(planning, (0, 0), (1, 1), grid, cap=1) == 1


def test_count_valid_paths_needs_mutual_links():
    grid = Grid(4, 4)
    planning = {(0, 0): [], (2, 0): [], (1, 0): [1, 3]}
    assert count_valid_paths(planning, (0, 0), (2, 0), grid, cap=10) == 0


def test_validate_flags_too_many_paths():
    grid = Grid(5, 5)
    params = DifficultyParams.from_rating(10, 5, 5)
    planning = {cell: [1, 2, 3, 4] for cell in grid.cells()}
    report = validate(planning, (0, 0), (1, 1), grid, params, [(0, 0), (1, 0), (1, 1)])
    assert report.valid_paths == 2
    assert report.too_many_paths
    assert not report.ok


def test_strip_adjustment_spares_critical_links():
    grid = Grid(5, 5)
    critical = [(0, 0), (1, 0), (1, 1)]
    planning = {cell: [1, 2, 3, 4] for cell in grid.cells()}
    report = ValidationReport(
        valid_paths=5, critical_length=20, turns=20, min_length=3, min_turns=1, min_paths=1, max_paths=1
    )
    action = adjust(planning, report, grid, critical, [], random.Random(1), (0, 0), (1, 1))
    assert action == "strip"
    for cell in critical:
        assert planning[cell] == [1, 2, 3, 4]
    assert sum(len(dirs) for dirs in planning.values()) < 4 * 25


def test_detour_adjustment_records_cell():
    grid = Grid(6, 6)
    params = DifficultyParams.from_rating(10, 6, 6)
    critical = [(0, 0), (1, 0), (2, 0), (3, 0)]
    planning = {cell: [] for cell in grid.cells()}
    report = validate(planning, (0, 0), (3, 0), grid, params, critical)
    assert report.too_few_paths
    detours = []
    rng = random.Random(3)
    actions = [adjust(planning, report, grid, critical, detours, rng, (0, 0), (3, 0)) for _ in range(40)]
    assert "detour" in actions
    for cell in detours:
        assert planning[cell] == [1, 3]
        assert cell not in critical
