"""Human-readable identifier allocation.

Every externally visible id has the shape ``<PREFIX>-<number>`` with the
number zero-padded to four digits (``TC-0001``, ``PLAN-0042``). Numbers come
from the per-kind counter in ``id_sequences``:

    UPDATE id_sequences SET last_value = last_value + 1 WHERE kind = :kind

runs inside the caller's transaction, so the row stays locked until that
transaction commits or rolls back. Concurrent writers of the same kind queue
on the row and each gets its own number; a rolled-back writer releases its
number, and deleted rows never give theirs back.

Ids supplied by the caller (requirements only) are registered with
``reserve_id`` so later generated ids land above them.
"""
import logging

from sqlalchemy import case, select, update

from qa_hub.models import db
from qa_hub.models.sequence import SEQUENCE_SOURCES, IdSequence, highest_suffix

logger = logging.getLogger(__name__)

ID_KINDS = tuple(SEQUENCE_SOURCES)


def _bump(kind: str, value) -> int:
    stmt = (
        update(IdSequence)
        .where(IdSequence.kind == kind)
        .values(last_value=value)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount


def _start_sequence(kind: str) -> None:
    # Counter row missing (schema created before the kind existed)
    table_name, column_name = SEQUENCE_SOURCES[kind]
    column = db.metadata.tables[table_name].c[column_name]
    values = db.session.execute(select(column).where(column.like(f"{kind}-%"))).scalars()
    db.session.add(IdSequence(kind=kind, last_value=highest_suffix(kind, values)))
    db.session.flush()
    logger.info("Started id sequence for %s", kind)


def _advance(kind: str, value) -> None:
    if not _bump(kind, value):
        _start_sequence(kind)
        _bump(kind, value)


def new_id(kind: str) -> str:
    """Allocate the next id for ``kind`` in the current transaction.

    Example: new_id("DEF") -> "DEF-0042"

    Raises:
        ValueError: if ``kind`` is not a known prefix.
    """
    if kind not in SEQUENCE_SOURCES:
        raise ValueError(f"Unknown id kind: {kind!r}")

    _advance(kind, IdSequence.last_value + 1)
    number = db.session.execute(
        select(IdSequence.last_value).where(IdSequence.kind == kind)
    ).scalar_one()
    return f"{kind}-{number:04d}"


def reserve_id(value: str) -> None:
    """Move the counter for ``value``'s prefix up to its number, if any.

    Values without a known prefix or a numeric suffix (``REQ-PCI-01``) are
    ignored.
    """
    kind, _, suffix = value.partition("-")
    if kind not in SEQUENCE_SOURCES or not suffix.isdigit():
        return
    number = int(suffix)
    _advance(kind, case((IdSequence.last_value < number, number), else_=IdSequence.last_value))
