"""
Per-blueprint request limits, keyed on the caller's IP.

    reporting                        REPORT_RATE_LIMIT (default 20/minute)
    testing, traceability, reference 60/minute
    dashboard                        200/minute, polled by the UI
    health                           exempt

Nothing is limited when TESTING is set.
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def _limits_by_blueprint(app) -> dict[str, str]:
    return {
        "reporting": app.config.get("REPORT_RATE_LIMIT", "20/minute"),
        "testing": WRITE_LIMIT,
        "traceability": WRITE_LIMIT,
        "reference": WRITE_LIMIT,
        "dashboard": READ_LIMIT,
    }


def init_rate_limits(app, limiter):
    """Attach the limits above to ``limiter`` for the registered blueprints."""
    if app.config.get("TESTING"):
        logger.debug("Rate limits skipped under TESTING")
        return

    applied = {}
    for name, limit in _limits_by_blueprint(app).items():
        blueprint = app.blueprints.get(name)
        if blueprint is not None:
            limiter.limit(limit)(blueprint)
            applied[name] = limit

    if "health" in app.blueprints:
        limiter.exempt(app.blueprints["health"])

    logger.info("Rate limits applied: %s", ", ".join(f"{k}={v}" for k, v in applied.items()))
