"""
Per-request timing and access logging for the /api surface.

Every response carries
    X-Request-ID            caller-supplied id, or a generated 12-hex id
    X-Request-Duration-Ms   wall time spent in the app

API requests are logged at DEBUG, slow ones (over SLOW_REQUEST_MS) at
WARNING and 5xx answers at ERROR. Health probes are not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000

_UNLOGGED_PREFIX = "/api/health"


def _level_for(status: int, duration_ms: float) -> tuple[int, str]:
    if status >= 500:
        return logging.ERROR, "Server error"
    if duration_ms > SLOW_REQUEST_MS:
        return logging.WARNING, "Slow request"
    return logging.DEBUG, "Request"


def init_request_timing(app: Flask):
    """Stamp request ids and durations; log API traffic."""

    @app.before_request
    def _stamp_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        g.started_at = time.perf_counter()

    @app.after_request
    def _finish_request(response):
        started_at = g.pop("started_at", None)
        if started_at is None:
            return response

        elapsed_ms = (time.perf_counter() - started_at) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed_ms:.1f}"

        path = request.path
        if path.startswith("/api/") and not path.startswith(_UNLOGGED_PREFIX):
            level, label = _level_for(response.status_code, elapsed_ms)
            logger.log(
                level, "%s: %s %s -> %d", label, request.method, path, response.status_code,
                extra={
                    "status": response.status_code,
                    "duration_ms": round(elapsed_ms, 1),
                    "remote_addr": request.remote_addr,
                },
            )
        return response
