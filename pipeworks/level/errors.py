"""Failure kinds for level generation.

Only `InvalidLevelSize` is raised to callers. The other kinds travel as result
values so the orchestrator can pick a retry policy.
"""
from __future__ import annotations

from typing import NamedTuple

PLANNING_FAILURE = "planning_failure"
UNSOLVABLE_GRID = "unsolvable_grid"
SEARCH_BUDGET_EXCEEDED = "search_budget_exceeded"
MISSING_ARCHETYPE = "missing_archetype_mapping"


class InvalidLevelSize(ValueError):
    def __init__(self, width: int, height: int, max_size: int | None = None):
        if max_size is None:
            msg = f"grid must be at least 4x4 (got {width}x{height})"
        else:
            msg = f"grid must be at most {max_size}x{max_size} (got {width}x{height})"
        super().__init__(msg)
        self.width = width
        self.height = height
        self.max_size = max_size


class PlanningFailure(NamedTuple):
    reason: str
    stage: str = ""

    kind = PLANNING_FAILURE

    @property
    def ok(self) -> bool:
        return False


class UnsolvableGrid(NamedTuple):
    reason: str = "no rotation assignment connects start to end"

    kind = UNSOLVABLE_GRID

    @property
    def ok(self) -> bool:
        return False


__all__ = [
    "PLANNING_FAILURE",
    "UNSOLVABLE_GRID",
    "SEARCH_BUDGET_EXCEEDED",
    "MISSING_ARCHETYPE",
    "InvalidLevelSize",
    "PlanningFailure",
    "UnsolvableGrid",
]
