"""
project: Pipeworks
module: __init__.py
License: MIT

Flask application factory and core extensions setup.

Wires together the Flask app and SQLAlchemy. Configuration is sourced from
environment variables (optionally via a `.env` file) with development
defaults. A local `instance/` directory holds the SQLite database and logs.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy

# Load .env if present so `SECRET_KEY`, `DATABASE_URL`, etc. can be supplied
# without exporting shell variables during development.
load_dotenv()

app = Flask(__name__, instance_relative_config=True)

try:
    os.makedirs(app.instance_path, exist_ok=True)
except OSError:
    pass

secret_key = os.getenv("SECRET_KEY", "dev-secret-change-me")
database_url = os.getenv("DATABASE_URL")

# During pytest runs, isolate to a separate test database
if not database_url:
    is_pytest = bool(os.getenv("PYTEST_CURRENT_TEST"))
    db_filename = "pipeworks_test.db" if is_pytest else "pipeworks.db"
    db_path = Path(app.instance_path) / db_filename
    database_url = f"sqlite:///{db_path.as_posix()}"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


app.config.update(
    SECRET_KEY=secret_key,
    SQLALCHEMY_DATABASE_URI=database_url,
    SQLALCHEMY_TRACK_MODIFICATIONS=False,
    JSON_SORT_KEYS=False,
    PIPEWORKS_LEVEL_COUNT=_env_int("PIPEWORKS_LEVEL_COUNT", 30),
    PIPEWORKS_DEFAULT_WIDTH=_env_int("PIPEWORKS_DEFAULT_WIDTH", 8),
    PIPEWORKS_DEFAULT_HEIGHT=_env_int("PIPEWORKS_DEFAULT_HEIGHT", 8),
    PIPEWORKS_MAX_SIZE=_env_int("PIPEWORKS_MAX_SIZE", 32),
)

engine_opts = {}
if database_url.startswith("sqlite:///"):
    engine_opts["connect_args"] = {
        "timeout": 10,  # busy timeout (seconds) for sqlite
        "check_same_thread": False,
    }
db = SQLAlchemy(app, session_options={"expire_on_commit": False}, engine_options=engine_opts)


# Register HTTP blueprints (import after app/db created)
from pipeworks.routes.level_api import bp_level  # noqa: E402
from pipeworks.routes.progress_api import bp_progress  # noqa: E402

app.register_blueprint(bp_level)
app.register_blueprint(bp_progress)


def create_app():
    """Return the Flask app instance with all tables created."""
    from pipeworks import models  # noqa: F401

    with app.app_context():
        db.create_all()
    return app


@app.errorhandler(404)
def not_found(e):
    return jsonify({"error": "not found"}), 404


@app.errorhandler(500)
def internal_error(e):
    from pipeworks.logging_utils import log

    log.error(event="unhandled_exception", error=str(e))
    return jsonify({"error": "internal server error"}), 500
