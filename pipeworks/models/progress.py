"""Player progression persisted as key/value rows.

Only the current level index is stored; everything about a level is derived
from its index by `level_settings`.
"""
import datetime
import hashlib
import json

from flask import current_app

from pipeworks import db
from pipeworks.logging_utils import get_logger

log = get_logger("pipeworks.progress")

LEVEL_KEY = "level"
DEFAULT_LEVEL_COUNT = 30


class SaveEntry(db.Model):
    """Key/value save storage. Values are JSON-encoded text."""

    __tablename__ = 'save_entries'
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(80), unique=True, nullable=False)
    value = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.datetime.utcnow, onupdate=datetime.datetime.utcnow)

    def __repr__(self):
        return f'<SaveEntry {self.key}={self.value}>'


class ProgressStore:
    @staticmethod
    def exists(key: str) -> bool:
        return SaveEntry.query.filter_by(key=key).first() is not None

    @staticmethod
    def load(key: str, default=None):
        row = SaveEntry.query.filter_by(key=key).first()
        if row is None:
            return default
        try:
            return json.loads(row.value)
        except ValueError:
            return row.value

    @staticmethod
    def save(key: str, value):
        row = SaveEntry.query.filter_by(key=key).first()
        encoded = json.dumps(value)
        if not row:
            row = SaveEntry(key=key, value=encoded)
            db.session.add(row)
        else:
            row.value = encoded
        db.session.commit()

    @staticmethod
    def delete(key: str) -> bool:
        row = SaveEntry.query.filter_by(key=key).first()
        if row is None:
            return False
        db.session.delete(row)
        db.session.commit()
        return True


def level_count() -> int:
    try:
        return max(1, int(current_app.config.get("PIPEWORKS_LEVEL_COUNT", DEFAULT_LEVEL_COUNT)))
    except (TypeError, ValueError):
        return DEFAULT_LEVEL_COUNT


def current_level() -> int:
    """Stored level index, initialising the save to 1 on first use."""
    if not ProgressStore.exists(LEVEL_KEY):
        ProgressStore.save(LEVEL_KEY, 1)
        return 1
    try:
        return int(ProgressStore.load(LEVEL_KEY, 1))
    except (TypeError, ValueError):
        log.warn(event="corrupt_progress", key=LEVEL_KEY)
        ProgressStore.save(LEVEL_KEY, 1)
        return 1


def complete_level() -> int:
    """Advance to the next level, wrapping back to 1 after the last one."""
    nxt = current_level() + 1
    if nxt > level_count():
        nxt = 1
    ProgressStore.save(LEVEL_KEY, nxt)
    log.info(event="level_completed", next_level=nxt)
    return nxt


def reset_progress() -> int:
    ProgressStore.save(LEVEL_KEY, 1)
    return 1


def level_seed(index: int) -> int:
    h = hashlib.sha256(f"pipeworks-level-{index}".encode('utf-8')).digest()
    return int.from_bytes(h[:4], 'big')


def level_settings(index: int, count: int | None = None) -> dict:
    """Generation inputs for a campaign level.

    Difficulty climbs linearly from 1 on the first level to 10 on the last.
    """
    count = count or level_count()
    index = max(1, min(int(index), count))
    if count > 1:
        difficulty = 1 + round(9 * (index - 1) / (count - 1))
    else:
        difficulty = 1
    cfg = current_app.config
    return {
        'level': index,
        'seed': level_seed(index),
        'difficulty': difficulty,
        'width': int(cfg.get("PIPEWORKS_DEFAULT_WIDTH", 8)),
        'height': int(cfg.get("PIPEWORKS_DEFAULT_HEIGHT", 8)),
    }
