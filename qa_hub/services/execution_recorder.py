"""Execution recorder — append-only execution events with plan rollups.

Recording an execution and bumping the owning plan's counters happen in one
transaction. The counters are bumped with a single arithmetic UPDATE that
the database evaluates against the row's current values, so concurrent
executions against the same plan never lose an increment:

    UPDATE test_plans
       SET executed_test_cases = executed_test_cases + 1,
           passed_test_cases   = passed_test_cases + 1,      -- Passed only
           failed_test_cases   = failed_test_cases + 1,      -- Failed only
           total_test_cases    = CASE WHEN total_test_cases < executed_test_cases + 1
                                      THEN executed_test_cases + 1
                                      ELSE total_test_cases END
     WHERE plan_id = :plan_id

Blocked executions count as executed but neither passed nor failed.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import case, update

from qa_hub.core.exceptions import ReferentialError, ValidationError
from qa_hub.models import db
from qa_hub.models.testing import EXECUTION_STATUSES, TestExecution, TestPlan
from qa_hub.services.id_generator import new_id
from qa_hub.services.testing_service import ensure_plan_exists, ensure_test_case_exists
from qa_hub.utils.helpers import atomic, check_choice, parse_int, require_fields

logger = logging.getLogger(__name__)

EXECUTION_REQUIRED = ("test_case_id", "executed_by", "status")


def _parse_execution_date(value):
    if value in (None, ""):
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(
            "execution_date must be an ISO-8601 timestamp",
            details={"execution_date": "must be an ISO-8601 timestamp"},
        ) from exc


def _increment_plan_rollup(plan_id, status):
    """Single-statement counter bump; returns affected row count."""
    executed = TestPlan.executed_test_cases + 1
    values = {
        TestPlan.executed_test_cases: executed,
        TestPlan.total_test_cases: case(
            (TestPlan.total_test_cases < executed, executed),
            else_=TestPlan.total_test_cases,
        ),
        TestPlan.updated_at: datetime.now(timezone.utc),
    }
    if status == "Passed":
        values[TestPlan.passed_test_cases] = TestPlan.passed_test_cases + 1
    elif status == "Failed":
        values[TestPlan.failed_test_cases] = TestPlan.failed_test_cases + 1

    stmt = (
        update(TestPlan)
        .where(TestPlan.plan_id == plan_id)
        .values(values)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount


def record_execution(data):
    """Record an execution event and roll it up into its plan.

    Returns:
        The generated execution_id.

    Raises:
        ValidationError: missing required fields or status outside Passed/Failed/Blocked.
        ReferentialError: the test case or plan does not exist.
    """
    require_fields(data, EXECUTION_REQUIRED)
    status = str(data["status"]).strip()
    check_choice(status, "status", EXECUTION_STATUSES)

    test_case_id = str(data["test_case_id"]).strip()
    plan_id = str(data.get("test_plan_id") or "").strip() or None
    ensure_test_case_exists(test_case_id)
    if plan_id:
        ensure_plan_exists(plan_id)

    execution_time = parse_int(data.get("execution_time"), "execution_time")
    if execution_time is not None and execution_time < 0:
        raise ValidationError(
            "execution_time cannot be negative",
            details={"execution_time": "must be >= 0"},
        )

    with atomic("TestExecution", "record execution"):
        execution_id = new_id("EXE")
        db.session.add(TestExecution(
            execution_id=execution_id,
            test_case_id=test_case_id,
            test_plan_id=plan_id,
            executed_by=str(data["executed_by"]).strip(),
            status=status,
            actual_result=data.get("actual_result") or "",
            comments=data.get("comments") or "",
            environment=data.get("environment"),
            build_version=data.get("build_version"),
            execution_time=execution_time,
            execution_date=_parse_execution_date(data.get("execution_date")),
        ))
        if plan_id and not _increment_plan_rollup(plan_id, status):
            # plan deleted between the existence check and the update
            raise ReferentialError("TestPlan", [plan_id])

    logger.info(
        "Execution recorded id=%s test_case=%s plan=%s status=%s",
        execution_id, test_case_id, plan_id, status,
    )
    return execution_id
