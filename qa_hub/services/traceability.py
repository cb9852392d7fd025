"""
Requirements traceability matrix (RTM).

Every requirement appears in the matrix, including those no test case
covers yet; the query is an outer join from requirements through the link
table to test cases, so an uncovered requirement comes back with an empty
covering set and coverage_count 0 (a coverage gap).

    requirements ──LEFT JOIN──▶ test_case_requirements ──LEFT JOIN──▶ test_cases
"""

import logging

from qa_hub.models import db
from qa_hub.models.requirement import Requirement
from qa_hub.models.testing import TestCase, TestCaseRequirementLink

logger = logging.getLogger(__name__)


def build_matrix():
    """Return one row per requirement, ordered by requirement_id.

    Row shape::

        {"requirement_id", "title", "priority",
         "covering_test_case_ids": [...], "coverage_count": int}
    """
    rows = (
        db.session.query(
            Requirement.requirement_id,
            Requirement.title,
            Requirement.priority,
            TestCase.test_case_id,
        )
        .outerjoin(
            TestCaseRequirementLink,
            TestCaseRequirementLink.requirement_id == Requirement.requirement_id,
        )
        .outerjoin(TestCase, TestCase.test_case_id == TestCaseRequirementLink.test_case_id)
        .order_by(Requirement.requirement_id.asc(), TestCase.test_case_id.asc())
        .all()
    )

    matrix: list[dict] = []
    by_id: dict[str, dict] = {}
    for req_id, title, priority, test_case_id in rows:
        entry = by_id.get(req_id)
        if entry is None:
            entry = {
                "requirement_id": req_id,
                "title": title,
                "priority": priority,
                "covering_test_case_ids": [],
                "coverage_count": 0,
            }
            by_id[req_id] = entry
            matrix.append(entry)
        if test_case_id is not None:
            entry["covering_test_case_ids"].append(test_case_id)
            entry["coverage_count"] += 1
    return matrix


def coverage_gaps(matrix=None):
    """Requirements with no covering test case."""
    matrix = build_matrix() if matrix is None else matrix
    return [row for row in matrix if row["coverage_count"] == 0]


def coverage_summary(matrix=None):
    """Totals over the matrix: covered / uncovered counts and percentage."""
    matrix = build_matrix() if matrix is None else matrix
    total = len(matrix)
    covered = sum(1 for row in matrix if row["coverage_count"] > 0)
    return {
        "total_requirements": total,
        "covered": covered,
        "uncovered": total - covered,
        "coverage_pct": round(covered / total * 100, 1) if total else 0,
    }
