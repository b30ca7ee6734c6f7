"""Public level package interface.

Generation, solvability and water-flow helpers for pipe-rotation boards.
"""

from .config import DifficultyParams, LevelConfig  # noqa: F401
from .directions import DIRECTIONS, EAST, NORTH, SOUTH, WEST, Grid, opposite  # noqa: F401
from .errors import InvalidLevelSize, PlanningFailure, UnsolvableGrid  # noqa: F401
from .fill import calculate_max_fillable_tiles, explore_fill_from_path, simulate_flow  # noqa: F401
from .pipeline import Level  # noqa: F401
from .planner import LevelPlan, TilePlan, plan_level  # noqa: F401
from .realize import LevelGrid, build_fallback_level, realize_plan, scramble_rotations  # noqa: F401
from .render import render_ascii  # noqa: F401
from .solver import (  # noqa: F401
    SolutionPathInfo,
    exists_solution_path,
    find_all_solution_paths,
    find_solution_path,
)
from .tiles import TileBlueprint  # noqa: F401

__all__ = [
    "Level",
    "LevelConfig",
    "DifficultyParams",
    "Grid",
    "DIRECTIONS",
    "NORTH",
    "EAST",
    "SOUTH",
    "WEST",
    "opposite",
    "InvalidLevelSize",
    "PlanningFailure",
    "UnsolvableGrid",
    "LevelPlan",
    "TilePlan",
    "plan_level",
    "LevelGrid",
    "realize_plan",
    "build_fallback_level",
    "scramble_rotations",
    "TileBlueprint",
    "SolutionPathInfo",
    "find_solution_path",
    "exists_solution_path",
    "find_all_solution_paths",
    "explore_fill_from_path",
    "calculate_max_fillable_tiles",
    "simulate_flow",
    "render_ascii",
]
