# Model package init
from .level_instance import LevelInstance  # noqa: F401 re-export
from .progress import ProgressStore, SaveEntry  # noqa: F401 re-export

__all__ = [
    "LevelInstance",
    "ProgressStore",
    "SaveEntry",
]
