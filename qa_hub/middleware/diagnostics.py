"""
Startup self-check, logged once per process (skipped under tests).

Checks that the database answers, that every table the models declare is
present, and which backend the rate limiter will count against.
"""

import logging
import sys

from flask import Flask
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError

from qa_hub.models import db

logger = logging.getLogger(__name__)


def _database_kind(uri: str) -> str:
    for marker, name in (("postgresql", "PostgreSQL"), ("sqlite", "SQLite")):
        if uri.startswith(marker):
            return name
    return uri.split(":", 1)[0] or "unknown"


def _check_database() -> str | None:
    try:
        db.session.execute(db.text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        return f"database unreachable: {exc}"
    return None


def _missing_tables() -> list[str]:
    present = set(sa_inspect(db.engine).get_table_names())
    return sorted(t for t in db.metadata.tables if t not in present)


def run_startup_diagnostics(app: Flask):
    """Log a one-line startup summary plus a warning per problem found."""
    if app.config.get("TESTING"):
        return

    with app.app_context():
        problems = []
        db_error = _check_database()
        if db_error:
            problems.append(db_error)
            missing = []
        else:
            missing = _missing_tables()
            if missing:
                problems.append(f"tables missing: {', '.join(missing)}")

        storage = app.config.get("RATELIMIT_STORAGE_URI", "memory://")
        logger.info(
            "QA Testing Hub %s starting: python=%d.%d database=%s tables=%d/%d limiter=%s",
            app.config.get("APP_VERSION", "?"),
            sys.version_info.major, sys.version_info.minor,
            _database_kind(str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))),
            len(db.metadata.tables) - len(missing), len(db.metadata.tables),
            storage.split("://", 1)[0],
        )
        for problem in problems:
            logger.warning("Startup check failed: %s", problem)
