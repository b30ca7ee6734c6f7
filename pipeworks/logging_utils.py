"""Structured event logging for generation traces and the API.

Each call emits one line: `key=value` pairs by default, or a compact JSON
object when PIPEWORKS_LOG_JSON is set. Threshold comes from
PIPEWORKS_LOG_LEVEL (debug | info | warn | error).

    from pipeworks.logging_utils import get_logger
    log = get_logger("pipeworks.level.solver")
    log.warn(event="search_truncated", found=3, expanded=50000)

Lines go to stdout (errors to stderr) unless `redirect()` is active, which
the CLI uses to keep stdout clean for machine-readable output.
"""

from __future__ import annotations

import json
import os
import sys
import time
from contextlib import contextmanager

LEVELS = {"debug": 10, "info": 20, "warn": 30, "error": 40}
CURRENT_LEVEL = LEVELS.get(os.getenv("PIPEWORKS_LOG_LEVEL", "info").lower(), 20)
JSON_MODE = os.getenv("PIPEWORKS_LOG_JSON", "0").lower() in ("1", "true", "yes", "on")

# None => resolve sys.stdout/sys.stderr at emit time
STREAM = None


def _plain(v):
    if isinstance(v, (tuple, list, set, frozenset)):
        return [_plain(x) for x in v]
    return v


def _record(level: str, fields: dict) -> dict:
    rec = {"level": level, "ts": int(time.time())}
    rec.update((k, v) for k, v in fields.items() if v is not None)
    return rec


def _as_json(rec: dict) -> str:
    try:
        return json.dumps({k: _plain(v) for k, v in rec.items()}, separators=(",", ":"))
    except (TypeError, ValueError):
        return json.dumps({"level": rec["level"], "ts": rec["ts"], "error": "json_encode_failed"})


def _as_pairs(rec: dict) -> str:
    out = []
    for k, v in rec.items():
        text = v if isinstance(v, (int, float)) else str(v).replace(" ", "")
        out.append(f"{k}={text}")
    return " ".join(out)


@contextmanager
def redirect(stream):
    """Send every log line to `stream` for the duration of the block."""
    global STREAM
    previous, STREAM = STREAM, stream
    try:
        yield stream
    finally:
        STREAM = previous


class _Logger:
    def __init__(self, name: str | None = None):
        self.name = name or "pipeworks"

    def _emit(self, level: str, fields: dict):
        if LEVELS[level] < CURRENT_LEVEL:
            return
        fields.setdefault("logger", self.name)
        rec = _record(level, fields)
        line = _as_json(rec) if JSON_MODE else _as_pairs(rec)
        stream = STREAM or (sys.stderr if level == "error" else sys.stdout)
        print(line, file=stream)

    def debug(self, **fields):
        self._emit("debug", fields)

    def info(self, **fields):
        self._emit("info", fields)

    def warn(self, **fields):
        self._emit("warn", fields)

    def error(self, **fields):
        self._emit("error", fields)


_LOGGERS: dict = {}


def get_logger(name: str) -> _Logger:
    return _LOGGERS.setdefault(name, _Logger(name))


log = get_logger("pipeworks")
