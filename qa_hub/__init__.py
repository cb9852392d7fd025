"""
QA Testing Hub application factory.

    from qa_hub import create_app
    app = create_app()           # APP_ENV, or "development"
    app = create_app("testing")
"""

import logging
import os

import click
from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import event
from sqlalchemy.engine import Engine

from qa_hub.config import config
from qa_hub.models import db
from qa_hub.middleware.logging_config import configure_logging
from qa_hub.middleware.timing import init_request_timing
from qa_hub.middleware.diagnostics import run_startup_diagnostics
from qa_hub.middleware.rate_limiter import init_rate_limits

logger = logging.getLogger(__name__)

migrate = Migrate()
# Limits are attached per blueprint in init_rate_limits()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)

_JSON_METHODS = ("POST", "PUT", "PATCH")


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_conn, connection_record):
    # SQLite ignores ON DELETE CASCADE unless the pragma is on for each connection
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _ensure_sqlite_dir(uri: str):
    if not uri.startswith("sqlite:///") or uri.endswith(":memory:"):
        return
    parent = os.path.dirname(uri[len("sqlite:///"):])
    if parent:
        os.makedirs(parent, exist_ok=True)


def _init_extensions(app):
    _ensure_sqlite_dir(app.config["SQLALCHEMY_DATABASE_URI"])
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    origins = [o.strip() for o in app.config.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    if not origins or origins == ["*"]:
        CORS(app)
    else:
        CORS(app, origins=origins)


def _install_request_guards(app):
    @app.before_request
    def _guard_api_body():
        limit = app.config.get("MAX_CONTENT_LENGTH")
        if limit and (request.content_length or 0) > limit:
            abort(413, description="Request body too large")
        if request.method not in _JSON_METHODS or not request.path.startswith("/api/"):
            return None
        if request.data and "json" not in (request.content_type or ""):
            abort(415, description="Content-Type must be application/json")
        return None


def _create_schema(app):
    # Model modules register their tables on db.metadata when imported
    from qa_hub.models import reference, reporting, requirement, sequence, testing  # noqa: F401

    with app.app_context():
        db.create_all()


def _register_blueprints(app):
    from qa_hub.blueprints import register_error_handlers
    from qa_hub.blueprints.dashboard_bp import dashboard_bp
    from qa_hub.blueprints.health_bp import health_bp
    from qa_hub.blueprints.reference_bp import reference_bp
    from qa_hub.blueprints.reporting_bp import reporting_bp
    from qa_hub.blueprints.testing_bp import testing_bp
    from qa_hub.blueprints.traceability_bp import traceability_bp

    for bp in (testing_bp, traceability_bp, reporting_bp, dashboard_bp, reference_bp, health_bp):
        app.register_blueprint(bp)
    register_error_handlers(app)


def _register_cli(app):
    @app.cli.command("seed-reference-data")
    def seed_reference_data_cmd():
        """Load the starter requirements, team members and environments."""
        from qa_hub.services.reference_service import seed_reference_data

        added = seed_reference_data()
        click.echo(
            f"Seeded {added['requirements']} requirements, "
            f"{added['team_members']} team members, "
            f"{added['environments']} environments."
        )


def create_app(config_name=None):
    """
    Build the Flask app for ``config_name`` (development, testing or
    production; APP_ENV when omitted).

    Logging is configured before anything else so extension setup and
    schema creation are logged in the chosen format.
    """
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    configure_logging(app)
    _init_extensions(app)
    init_request_timing(app)
    _install_request_guards(app)
    _create_schema(app)
    _register_blueprints(app)
    init_rate_limits(app, limiter)
    _register_cli(app)
    run_startup_diagnostics(app)

    logger.debug("App created with %s config", config_name)
    return app
