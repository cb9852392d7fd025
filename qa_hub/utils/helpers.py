"""Shared service-layer helpers.

parse_date:        lenient date parsing (returns None on bad input)
parse_int:         optional integer coercion raising ValidationError
require_fields:    required-field check raising ValidationError
check_choice:      enumerated-value check raising ValidationError
text_field:        optional stripped string input raising ValidationError
atomic:            one transaction per command, DB failures mapped to core exceptions
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from qa_hub.core.exceptions import ConflictError, ReferentialError, StoreError, ValidationError
from qa_hub.models import db

logger = logging.getLogger(__name__)


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SS (→ .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_int(value, field):
    """Coerce an optional integer input; blank means None."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (ValueError, TypeError) as exc:
        raise ValidationError(
            f"{field} must be an integer", details={field: "must be an integer"},
        ) from exc


def _is_blank(value):
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def require_fields(data: dict, fields) -> None:
    """Raise ValidationError naming every required field that is blank or absent."""
    missing = [f for f in fields if _is_blank(data.get(f))]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


def check_choice(value, field: str, allowed) -> None:
    """Raise ValidationError when ``value`` is set and not in ``allowed``."""
    if value is None:
        return
    if value not in allowed:
        choices = ", ".join(sorted(allowed))
        raise ValidationError(
            f"Invalid {field}: {value!r}",
            details={field: f"must be one of: {choices}"},
        )


def text_field(data: dict, field: str, default: str = "") -> str:
    """Stripped string value of ``field``; ``default`` when absent or blank."""
    value = data.get(field)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={field: "must be a string"})
    return value.strip() or default


# ── Transaction boundary ─────────────────────────────────────────────────────

# SQLSTATE classes reported by PostgreSQL drivers; SQLite only has the message
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


def _violation(exc: IntegrityError) -> str:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    text = str(orig).upper()
    if code == _UNIQUE_VIOLATION or "UNIQUE" in text:
        return "unique"
    if code == _FOREIGN_KEY_VIOLATION or "FOREIGN KEY" in text:
        return "foreign_key"
    return "other"


@contextmanager
def atomic(resource: str, operation: str):
    """Run a command in one transaction: commit on success, roll back on any error.

    IntegrityError, unique key        → ConflictError
    IntegrityError, foreign key       → ReferentialError
    IntegrityError, anything else     → StoreError (NOT NULL, CHECK)
    SQLAlchemyError                   → StoreError (connection / lock / unexpected)
    anything else                     → re-raised unchanged after rollback

    Usage::

        with atomic("TestCase", "create test case"):
            db.session.add(case)
            db.session.add_all(steps)
    """
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        kind = _violation(exc)
        logger.warning("Integrity error (%s) during %s: %s", kind, operation, exc.orig)
        if kind == "unique":
            raise ConflictError(resource, "unique key") from exc
        if kind == "foreign_key":
            raise ReferentialError(resource, []) from exc
        raise StoreError(operation) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error during %s", operation)
        raise StoreError(operation) from exc
    except Exception:
        db.session.rollback()
        raise
