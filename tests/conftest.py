"""
Shared pytest fixtures for the QA Testing Hub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - requirements: the seeded reference requirements REQ-0001..REQ-0006
    - file_app: separate app on a file-backed SQLite store (threaded tests)
"""

import pytest

from qa_hub import create_app
from qa_hub.config import TestingConfig
from qa_hub.models import db as _db


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def requirements():
    """Seed the starter reference data and return the requirement ids."""
    from qa_hub.services.reference_service import SEED_REQUIREMENTS, seed_reference_data
    seed_reference_data()
    return [row[0] for row in SEED_REQUIREMENTS]


@pytest.fixture()
def file_app(tmp_path, monkeypatch):
    """App on a file-backed SQLite store, for tests that need real concurrent connections."""
    monkeypatch.setattr(TestingConfig, "SQLALCHEMY_DATABASE_URI", f"sqlite:///{tmp_path / 'hub.db'}")
    monkeypatch.setattr(TestingConfig, "SQLALCHEMY_ENGINE_OPTIONS", {
        "connect_args": {"check_same_thread": False, "timeout": 30},
    })
    application = create_app("testing")
    yield application
    with application.app_context():
        _db.session.remove()
        _db.engine.dispose()
