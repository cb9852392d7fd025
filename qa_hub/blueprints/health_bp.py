"""
Health probes.

    GET /api/health        200 whenever the process is serving
    GET /api/health/live   database (and Redis, when configured) round-trips;
                           503 when the database does not answer
"""

import logging
import time
from datetime import datetime, timezone

import redis
from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from qa_hub.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/health")


def _timed(probe) -> dict:
    started = time.perf_counter()
    probe()
    return {"status": "ok", "latency_ms": round((time.perf_counter() - started) * 1000, 1)}


def _database_check() -> dict:
    try:
        return _timed(lambda: db.session.execute(db.text("SELECT 1")))
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Liveness: database check failed: %s", exc)
        return {"status": "error", "detail": str(exc)}


def _redis_check(storage_uri: str) -> dict:
    # Only the rate limiter uses Redis, so a failure here is reported but not fatal
    if not storage_uri.startswith("redis"):
        return {"status": "skipped", "detail": "no REDIS_URL configured"}
    try:
        return _timed(redis.from_url(storage_uri, socket_timeout=2).ping)
    except redis.RedisError as exc:
        logger.warning("Liveness: redis check failed: %s", exc)
        return {"status": "error", "detail": str(exc)}


@health_bp.route("", methods=["GET"])
def health():
    return jsonify({
        "success": True,
        "message": "QA Testing Hub API is running",
        "version": current_app.config.get("APP_VERSION", "1.0.0"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {
        "database": _database_check(),
        "redis": _redis_check(current_app.config.get("RATELIMIT_STORAGE_URI", "memory://")),
        "app": {"name": "QA Testing Hub", "debug": current_app.debug, "testing": current_app.testing},
    }
    healthy = checks["database"]["status"] == "ok"

    body = {"success": healthy, "data": {"status": "healthy" if healthy else "degraded", "checks": checks}}
    if not healthy:
        body["error"] = "Database unavailable"
    return jsonify(body), 200 if healthy else 503
