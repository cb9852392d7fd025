"""
Dashboard & analytics service.

Read-only compositions for the landing page:
    - stats():             headline KPI counts
    - recent_defects(n):   newest defects
    - active_plans(n):     newest plans in Planning / In Progress / Completed
    - execution_trends():  per-day executed / passed / failed
    - defect_trends():     per-day, per-severity defect counts
"""

import logging
from datetime import date

from sqlalchemy import case, func

from qa_hub.models import db
from qa_hub.models.testing import (
    DEFECT_CLOSED_STATUSES, PLAN_STATUSES, Defect, TestCase, TestExecution, TestPlan,
)

logger = logging.getLogger(__name__)


def stats() -> dict:
    """Headline KPIs.

    testCoverage = passed executions / total test cases × 100 (1 decimal),
    0 when the catalog is empty.
    """
    total_cases = TestCase.query.count()
    passed = TestExecution.query.filter(TestExecution.status == "Passed").count()
    active_defects = Defect.query.filter(Defect.status.notin_(DEFECT_CLOSED_STATUSES)).count()
    return {
        "totalTestCases": total_cases,
        "passedTests": passed,
        "activeDefects": active_defects,
        "testCoverage": round(passed / total_cases * 100, 1) if total_cases else 0,
    }


def recent_defects(limit: int = 10) -> list[dict]:
    q = Defect.query.order_by(Defect.created_at.desc(), Defect.id.desc()).limit(limit)
    return [d.to_dict() for d in q.all()]


def active_plans(limit: int = 10) -> list[dict]:
    q = (
        TestPlan.query
        .filter(TestPlan.status.in_(PLAN_STATUSES))
        .order_by(TestPlan.created_at.desc(), TestPlan.id.desc())
        .limit(limit)
    )
    return [p.to_dict() for p in q.all()]


def _day(value):
    # SQLite returns DATE() as text, PostgreSQL as a date
    return value.isoformat() if isinstance(value, date) else value


def execution_trends(limit: int = 30) -> list[dict]:
    """Per-day execution counts, newest day first."""
    day = func.date(TestExecution.execution_date)
    rows = (
        db.session.query(
            day.label("day"),
            func.count(TestExecution.id),
            func.sum(case((TestExecution.status == "Passed", 1), else_=0)),
            func.sum(case((TestExecution.status == "Failed", 1), else_=0)),
        )
        .group_by(day)
        .order_by(day.desc())
        .limit(limit)
        .all()
    )
    return [
        {"date": _day(d), "total": total, "passed": int(passed or 0), "failed": int(failed or 0)}
        for d, total, passed, failed in rows
    ]


def defect_trends(limit: int = 30) -> list[dict]:
    """Per-day, per-severity defect counts, newest day first."""
    day = func.date(Defect.created_at)
    rows = (
        db.session.query(day.label("day"), Defect.severity, func.count(Defect.id))
        .group_by(day, Defect.severity)
        .order_by(day.desc(), Defect.severity)
        .limit(limit)
        .all()
    )
    return [{"date": _day(d), "severity": sev, "count": cnt} for d, sev, cnt in rows]
