"""
QA Testing Hub
Blueprint helpers: response envelope, request parsing and error mapping.

Every endpoint answers with the same envelope:

    success → {"success": true,  "data": ..., "message"?: ...}
    failure → {"success": false, "error": ..., "code": ..., "details"?: ...}
"""

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from qa_hub.core.exceptions import (
    ConflictError, NotFoundError, ReferentialError, StoreError, ValidationError,
)
from qa_hub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def ok(data=None, message=None, status=200):
    """Success envelope."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def json_body() -> dict:
    """Return the request's JSON object; anything else is a ValidationError."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", details={"body": "expected object"})
    return data


def limit_arg(default, max_limit=200):
    """Read ``?limit=`` clamped to [1, max_limit]; falls back to ``default``."""
    try:
        limit = int(request.args.get("limit", default))
    except (ValueError, TypeError):
        return default
    return max(1, min(limit, max_limit))


# ── Error handlers ────────────────────────────────────────────────────────────


def register_error_handlers(app):
    """Map core exceptions and HTTP errors to the failure envelope, app-wide."""

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        code = E.VALIDATION_REQUIRED if error.missing_fields else E.VALIDATION_INVALID
        return api_error(code, str(error), details=error.details)

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ReferentialError)
    def _handle_referential(error: ReferentialError):
        return api_error(
            E.VALIDATION_CONSTRAINT, str(error),
            details={"resource": error.resource, "missing_ids": error.missing_ids},
        )

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @app.errorhandler(StoreError)
    def _handle_store(error: StoreError):
        # traceback already logged where the transaction was rolled back
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(404)
    def _handle_404(error):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def _handle_405(error):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(413)
    def _handle_413(error):
        return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")

    @app.errorhandler(415)
    def _handle_415(error):
        return api_error(E.UNSUPPORTED_MEDIA, "Content-Type must be application/json")

    @app.errorhandler(429)
    def _handle_429(error):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"limit": str(error.description)})

    @app.errorhandler(HTTPException)
    def _handle_http(error: HTTPException):
        return api_error(E.VALIDATION_INVALID, error.description or error.name, status=error.code)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        logger.exception("Unexpected error endpoint=%s", request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
