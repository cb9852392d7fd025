"""
QA Testing Hub
Per-kind id counters.

One row per id prefix holds the last number handed out. Allocation bumps
the row with an arithmetic UPDATE inside the writer's transaction, so two
writers of the same kind serialize on the row instead of picking the same
number.

Rows are created whenever the schema is created (``db.create_all``). A
store that already holds data starts each counter at the highest numeric
suffix found in the owning table.
"""

from sqlalchemy import event, insert, select

from qa_hub.models import db

# prefix → (table, external id column)
SEQUENCE_SOURCES = {
    "TC": ("test_cases", "test_case_id"),
    "PLAN": ("test_plans", "plan_id"),
    "EXE": ("test_executions", "execution_id"),
    "DEF": ("defects", "defect_id"),
    "RPT": ("reports", "report_id"),
    "REQ": ("requirements", "requirement_id"),
}


class IdSequence(db.Model):
    """Last allocated number for one id prefix."""

    __tablename__ = "id_sequences"

    kind = db.Column(db.String(10), primary_key=True)
    last_value = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<IdSequence {self.kind}={self.last_value}>"


def highest_suffix(kind: str, values) -> int:
    """Largest numeric suffix among ``<kind>-<n>`` values; 0 when none."""
    prefix = f"{kind}-"
    numbers = [
        int(v[len(prefix):])
        for v in values
        if v and v.startswith(prefix) and v[len(prefix):].isdigit()
    ]
    return max(numbers, default=0)


@event.listens_for(db.metadata, "after_create")
def _initialise_sequences(metadata, connection, **kw):
    table = IdSequence.__table__
    present = set(connection.execute(select(table.c.kind)).scalars())
    for kind, (table_name, column_name) in SEQUENCE_SOURCES.items():
        if kind in present or table_name not in metadata.tables:
            continue
        column = metadata.tables[table_name].c[column_name]
        values = connection.execute(select(column).where(column.like(f"{kind}-%"))).scalars()
        connection.execute(insert(table).values(kind=kind, last_value=highest_suffix(kind, values)))
