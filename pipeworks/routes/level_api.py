"""
project: Pipeworks
module: level_api.py
License: MIT

Level generation and play API routes.

A `LevelInstance` row stores the generation inputs and the player's live
rotations; the board itself is rebuilt deterministically from the inputs and
kept in a small in-process cache.
"""

import hashlib
import os
import random
import threading

from flask import Blueprint, current_app, jsonify, request

from pipeworks import db
from pipeworks.level import InvalidLevelSize, Level
from pipeworks.logging_utils import get_logger
from pipeworks.models.level_instance import LevelInstance

log = get_logger("pipeworks.routes.level")

SQLITE_MAX_INT = 9223372036854775807

_level_cache = {}
_level_cache_lock = threading.Lock()
_LEVEL_CACHE_MAX = 16  # small LRU-ish manual cap


def get_cached_level(seed: int, width: int, height: int, difficulty: int) -> Level:
    if os.environ.get("PIPEWORKS_DISABLE_CACHE") == "1":
        return Level(seed=seed, width=width, height=height, difficulty=difficulty)
    key = (seed, width, height, difficulty)
    with _level_cache_lock:
        level = _level_cache.get(key)
        if level is not None:
            # refresh recency
            _level_cache.pop(key)
            _level_cache[key] = level
            return level
    level = Level(seed=seed, width=width, height=height, difficulty=difficulty)
    with _level_cache_lock:
        _level_cache[key] = level
        if len(_level_cache) > _LEVEL_CACHE_MAX:
            first_key = next(iter(_level_cache.keys()))
            if first_key != key:
                _level_cache.pop(first_key, None)
    return level


def clear_level_cache():
    with _level_cache_lock:
        _level_cache.clear()


def _coerce_seed(payload_seed):
    """Convert provided seed (int or str) into bounded 64-bit signed int."""
    if payload_seed is None:
        return random.randint(1, 1_000_000)
    if isinstance(payload_seed, bool):
        raise ValueError("seed must be an integer or string")
    if isinstance(payload_seed, int):
        return payload_seed % SQLITE_MAX_INT
    if isinstance(payload_seed, str):
        s = payload_seed.strip()
        if not s:
            return random.randint(1, 1_000_000)
        if s.isdigit():
            return int(s) % SQLITE_MAX_INT
        h = hashlib.sha256(s.encode('utf-8')).digest()
        return int.from_bytes(h[:8], 'big') % SQLITE_MAX_INT
    raise ValueError("seed must be an integer or string")


def _int_field(data, name, default=None):
    raw = data.get(name, default)
    if raw is None:
        raise ValueError(f"{name} is required")
    if isinstance(raw, bool):
        raise ValueError(f"{name} must be an integer")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer")


def _level_for(instance: LevelInstance) -> Level:
    return get_cached_level(instance.seed, instance.width, instance.height, instance.difficulty)


def _state(instance: LevelInstance, level: Level):
    rotations = instance.rotation_map()
    wet = level.flow(rotations)
    data = level.to_dict(rotations)
    data.update(
        id=instance.id,
        level_index=instance.level_index,
        water=[[x, y] for (x, y) in sorted(wet, key=lambda c: (c[1], c[0]))],
        water_count=len(wet),
        completed=bool(instance.completed),
        moves=instance.moves,
        metrics=level.metrics,
    )
    return data


def _missing(level_id):
    return jsonify({"error": f"level {level_id} not found"}), 404


bp_level = Blueprint('level_api', __name__)


@bp_level.route('/api/level/generate', methods=['POST'])
def generate_level():
    """Create a level instance.

    Body JSON (all optional):
      { "width": <int>, "height": <int>, "difficulty": 1..10, "seed": <int|str|null>, "level_index": <int> }
    Missing sizes fall back to PIPEWORKS_DEFAULT_WIDTH/HEIGHT; either side above
    PIPEWORKS_MAX_SIZE is rejected with 400.
    """
    data = request.get_json(silent=True) or {}
    cfg = current_app.config
    try:
        width = _int_field(data, 'width', cfg.get('PIPEWORKS_DEFAULT_WIDTH', 8))
        height = _int_field(data, 'height', cfg.get('PIPEWORKS_DEFAULT_HEIGHT', 8))
        difficulty = _int_field(data, 'difficulty', 5)
        max_size = int(cfg.get('PIPEWORKS_MAX_SIZE', 32))
        if width > max_size or height > max_size:
            raise InvalidLevelSize(width, height, max_size)
        seed = _coerce_seed(data.get('seed'))
        level = get_cached_level(seed, width, height, difficulty)
    except InvalidLevelSize as e:
        return jsonify({"error": str(e)}), 400
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    level_index = data.get('level_index')
    instance = LevelInstance(
        seed=level.seed,
        width=level.width,
        height=level.height,
        difficulty=level.difficulty,
        level_index=level_index if isinstance(level_index, int) else None,
        max_fillable=level.max_fillable_tiles,
    )
    instance.set_rotation_map(level.initial_rotations)
    instance.completed = level.is_complete(level.initial_rotations)
    db.session.add(instance)
    db.session.commit()
    log.info(event="level_instance_created", id=instance.id, seed=level.seed, difficulty=level.difficulty)
    return jsonify(_state(instance, level))


@bp_level.route('/api/level/<int:level_id>', methods=['GET'])
def get_level(level_id):
    instance = db.session.get(LevelInstance, level_id)
    if instance is None:
        return _missing(level_id)
    return jsonify(_state(instance, _level_for(instance)))


@bp_level.route('/api/level/<int:level_id>/rotate', methods=['POST'])
def rotate_tile(level_id):
    """Rotate one tile a quarter turn.

    Body JSON: { "x": <int>, "y": <int> }
    Response: full level state, with `completed` true once the board floods
    at least `max_fillable_tiles` cells including the end tile.
    """
    instance = db.session.get(LevelInstance, level_id)
    if instance is None:
        return _missing(level_id)
    data = request.get_json(silent=True) or {}
    try:
        cell = (_int_field(data, 'x'), _int_field(data, 'y'))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    level = _level_for(instance)
    if not level.board.grid.in_bounds(cell):
        return jsonify({"error": f"cell {list(cell)} outside {level.width}x{level.height} grid"}), 400
    rotations = level.rotate(instance.rotation_map(), cell)
    instance.set_rotation_map(rotations)
    instance.moves = (instance.moves or 0) + 1
    if not instance.completed and level.is_complete(rotations):
        instance.completed = True
        log.info(event="level_solved", id=instance.id, moves=instance.moves)
    db.session.commit()
    return jsonify(_state(instance, level))


@bp_level.route('/api/level/<int:level_id>/solution', methods=['GET'])
def get_solution(level_id):
    """Best solution path plus a full rotation map that reaches max fill."""
    instance = db.session.get(LevelInstance, level_id)
    if instance is None:
        return _missing(level_id)
    level = _level_for(instance)
    solution = level.main_solution
    rotations = level.solution_rotations()
    return jsonify(
        {
            "id": instance.id,
            "path": [list(c) for c in solution.path_positions] if solution else [],
            "rotations": [[x, y, r] for (x, y), r in sorted(rotations.items(), key=lambda kv: (kv[0][1], kv[0][0]))],
            "max_fillable_tiles": level.max_fillable_tiles,
        }
    )
