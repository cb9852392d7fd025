"""
Application-wide exception hierarchy.

Services raise these types; the HTTP layer maps each one to a status code
and an error envelope in a single place (``qa_hub.blueprints``), so no
route needs its own try/except around service calls.

Usage:
    from qa_hub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="TestCase", resource_id="TC-0001")
    raise ValidationError("Missing required fields: title", details={"missing": ["title"]})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist.

    Args:
        resource: Human-readable entity name (e.g. "TestCase", "TestPlan").
        resource_id: The external id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" {resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is missing or holds a value outside its allowed set.

    Maps to HTTP 400. The caller is expected to correct and resubmit.

    Args:
        message: Human-readable explanation of what failed.
        details: Field-level breakdown, e.g. ``{"missing": ["title"]}`` or
                 ``{"priority": "must be one of: Critical, High, Low, Medium"}``.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)

    @property
    def missing_fields(self) -> list[str]:
        return list(self.details.get("missing", []))


class ReferentialError(Exception):
    """Raised when a write references a row that does not exist.

    Maps to HTTP 422.

    Args:
        resource: The referenced entity kind (e.g. "Requirement").
        missing_ids: The ids that could not be resolved.
    """

    def __init__(self, resource: str, missing_ids) -> None:
        self.resource = resource
        self.missing_ids = sorted(missing_ids)
        if self.missing_ids:
            super().__init__(
                f"Referenced {resource} does not exist: {', '.join(self.missing_ids)}"
            )
        else:
            # raised from a database foreign key check; the offending id is unknown
            super().__init__(f"{resource} write references a row that does not exist")


class ConflictError(Exception):
    """Raised when a write would duplicate a unique key.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        if value is None:
            super().__init__(f"{resource} write collides with an existing {field}")
        else:
            super().__init__(f"{resource} with {field}={value!r} already exists")


class StoreError(Exception):
    """Raised when the database rejects or fails an operation.

    Fatal to the current operation; the transaction has already been rolled
    back when this surfaces. Maps to HTTP 500 with a generic message.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Database error during {operation}")
