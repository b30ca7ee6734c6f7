import os
import sys

import pytest

# Ensure repository root importable early
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Must be set before the app module reads its config
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from pipeworks import create_app, db  # noqa: E402
from pipeworks.routes.level_api import clear_level_cache  # noqa: E402


@pytest.fixture(scope="session")
def test_app():
    app = create_app()
    app.config.update({"TESTING": True})
    return app


@pytest.fixture(autouse=True)
def _push_app_context(test_app):
    ctx = test_app.app_context()
    ctx.push()
    try:
        yield
    finally:
        db.session.rollback()
        ctx.pop()


@pytest.fixture()
def client(test_app):
    return test_app.test_client()


@pytest.fixture()
def fresh_db(test_app):
    """Empty tables for tests that count rows or depend on save state."""
    db.drop_all()
    db.create_all()
    clear_level_cache()
    yield db


def pytest_configure(config):  # register custom marker
    config.addinivalue_line("markers", "performance: generation timing guards")
