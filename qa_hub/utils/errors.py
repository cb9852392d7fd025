"""Failure envelope shared by every /api endpoint.

    {"success": false, "error": "<message>", "code": "ERR_*", "details"?: {...}}

Clients branch on ``success``; ``code`` is stable across releases while
``error`` is display text.

    from qa_hub.utils.errors import E, api_error

    return api_error(E.NOT_FOUND, "TestCase TC-0009 not found")
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Machine-readable error codes."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"      # required field absent or blank
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"        # value outside its allowed set / bad format
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"  # reference to a row that does not exist
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    PAYLOAD_TOO_LARGE = "ERR_PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA = "ERR_UNSUPPORTED_MEDIA"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


STATUS_FOR_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.NOT_FOUND: 404,
    E.METHOD_NOT_ALLOWED: 405,
    E.CONFLICT_DUPLICATE: 409,
    E.PAYLOAD_TOO_LARGE: 413,
    E.UNSUPPORTED_MEDIA: 415,
    E.VALIDATION_CONSTRAINT: 422,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build ``(response, status)`` for a failure.

    ``status`` defaults to the code's entry in STATUS_FOR_CODE (400 for
    unknown codes). ``details`` is omitted from the body when empty.
    """
    body = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_FOR_CODE.get(code, 400)
