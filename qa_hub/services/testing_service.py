"""Testing service layer — commands and queries for the test catalog.

Transaction policy: every command runs inside ``atomic()`` and commits
exactly once. A failure in any sub-write (case row, steps, requirement
links) rolls back the whole command.

Operations:
- Test cases: list / get (with steps + requirements) / create / update / delete
- Test plans: list / get / create / update
- Defects:    list / get / create / update
- Executions: list / get  (recording lives in execution_recorder)

Updates are sparse patches over an explicit per-kind allow-list; ids,
created_at, created_by and the execution rollup counters are never
patchable. The store, not a pre-check, decides whether the target row
exists (zero affected rows → NotFoundError).
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import func, or_

from qa_hub.core.exceptions import NotFoundError, ReferentialError, ValidationError
from qa_hub.models import db
from qa_hub.models.requirement import Requirement
from qa_hub.models.testing import (
    AUTOMATION_STATUSES, DEFECT_CLOSED_STATUSES, DEFECT_SEVERITIES,
    DEFECT_STATUSES, PLAN_STATUSES, PRIORITIES,
    TEST_CASE_STATUSES,
    Defect, TestCase, TestCaseRequirementLink, TestExecution, TestPlan, TestStep,
)
from qa_hub.services.id_generator import new_id
from qa_hub.utils.helpers import (
    atomic, check_choice, parse_date, parse_int, require_fields,
)

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


# ── Field policies ───────────────────────────────────────────────────────────

TEST_CASE_REQUIRED = ("title", "industry", "test_type", "priority")
TEST_CASE_FIELDS = (
    "title", "description", "industry", "test_type", "priority",
    "automation_status", "status", "assigned_to", "preconditions",
    "test_data", "expected_execution_time", "tags", "reference_links",
)
TEST_CASE_CHOICES = {
    "priority": PRIORITIES,
    "automation_status": AUTOMATION_STATUSES,
    "status": TEST_CASE_STATUSES,
}
TEST_CASE_FILTERS = ("industry", "test_type", "priority", "status")

PLAN_REQUIRED = ("name", "industry")
PLAN_FIELDS = (
    "name", "description", "industry", "start_date", "end_date",
    "status", "assigned_to", "total_test_cases",
)
PLAN_CHOICES = {"status": PLAN_STATUSES}
PLAN_FILTERS = ("status", "industry")

DEFECT_REQUIRED = ("title", "description", "severity", "priority", "reported_by")
DEFECT_FIELDS = (
    "title", "description", "severity", "priority", "status", "test_case_id",
    "assigned_to", "environment", "steps_to_reproduce", "expected_result",
    "actual_result", "attachments", "resolution", "resolution_date",
)
DEFECT_CHOICES = {
    "severity": DEFECT_SEVERITIES,
    "priority": PRIORITIES,
    "status": DEFECT_STATUSES,
}
DEFECT_FILTERS = ("status", "severity", "priority", "test_case_id", "assigned_to")

EXECUTION_FILTERS = ("test_case_id", "test_plan_id", "status")

# Filter values starting with this prefix ("All Industries", "All Status")
# mean "do not filter on this field".
NO_FILTER_PREFIX = "All "


# ── Shared helpers ───────────────────────────────────────────────────────────

def _is_no_filter(value):
    if value is None:
        return True
    value = str(value).strip()
    return not value or value.startswith(NO_FILTER_PREFIX)


def apply_equality_filters(query, model, filters, allowed):
    """AND together ``column == value`` for each allow-listed, non-sentinel filter."""
    filters = filters or {}
    for key in allowed:
        value = filters.get(key)
        if _is_no_filter(value):
            continue
        query = query.filter(getattr(model, key) == str(value).strip())
    return query


def _parse_datetime(value, field):
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be an ISO-8601 timestamp",
            details={field: "must be an ISO-8601 timestamp"},
        ) from exc


_COERCERS = {
    "expected_execution_time": parse_int,
    "total_test_cases": parse_int,
    "start_date": lambda v, f: parse_date(v),
    "end_date": lambda v, f: parse_date(v),
    "resolution_date": _parse_datetime,
}


def _clean_values(data, fields, choices, required=()):
    """Pick the allow-listed keys present in ``data`` and validate them.

    Unknown keys are ignored. Required fields may be patched but not blanked.
    """
    values = {}
    for field in fields:
        if field not in data:
            continue
        value = data[field]
        if isinstance(value, str):
            value = value.strip() if field in required else value
        if field in _COERCERS:
            value = _COERCERS[field](value, field)
        if field in choices and not value:
            # blank enumerated value: an error for required fields, else "unchanged"
            if field in required:
                values[field] = None
            continue
        if field in choices:
            check_choice(value, field, choices[field])
        values[field] = value

    blanked = [f for f in required if f in values and values[f] in (None, "")]
    if blanked:
        raise ValidationError(
            f"Required fields cannot be blank: {', '.join(blanked)}",
            details={"missing": blanked},
        )
    return values


def _newest_first(query, model):
    return query.order_by(model.created_at.desc(), model.id.desc())


def _normalise_steps(steps):
    """Validate a step list; returns [(action, expected_result), ...] in order."""
    if steps is None:
        return []
    if not isinstance(steps, list):
        raise ValidationError("steps must be a list", details={"steps": "must be a list"})
    normalised = []
    for idx, step in enumerate(steps, start=1):
        if not isinstance(step, dict):
            raise ValidationError(
                f"Step {idx} must be an object with action and expected_result",
                details={"steps": f"item {idx} is not an object"},
            )
        normalised.append((step.get("action") or "", step.get("expected_result") or ""))
    return normalised


def _build_steps(test_case_id, steps):
    return [
        TestStep(
            test_case_id=test_case_id,
            step_number=number,
            action=action,
            expected_result=expected,
        )
        for number, (action, expected) in enumerate(steps, start=1)
    ]


def resolve_requirement_ids(requirements):
    """Validate a requirement id list against the store; de-duplicates in order.

    Raises:
        ValidationError: if the value is not a list of ids.
        ReferentialError: if any id has no Requirement row.
    """
    if requirements is None:
        return []
    if not isinstance(requirements, list):
        raise ValidationError(
            "requirements must be a list of requirement ids",
            details={"requirements": "must be a list"},
        )
    ids = []
    for item in requirements:
        req_id = item.get("requirement_id") if isinstance(item, dict) else item
        if not isinstance(req_id, str) or not req_id.strip():
            raise ValidationError(
                "requirements must be a list of requirement ids",
                details={"requirements": f"invalid entry {item!r}"},
            )
        req_id = req_id.strip()
        if req_id not in ids:
            ids.append(req_id)
    if not ids:
        return []

    found = {
        row[0]
        for row in db.session.query(Requirement.requirement_id)
        .filter(Requirement.requirement_id.in_(ids))
        .all()
    }
    missing = set(ids) - found
    if missing:
        raise ReferentialError("Requirement", missing)
    return ids


def _build_links(test_case_id, requirement_ids):
    return [
        TestCaseRequirementLink(test_case_id=test_case_id, requirement_id=req_id)
        for req_id in requirement_ids
    ]


def ensure_test_case_exists(test_case_id):
    exists = db.session.query(TestCase.id).filter_by(test_case_id=test_case_id).first()
    if exists is None:
        raise ReferentialError("TestCase", [test_case_id])


def ensure_plan_exists(plan_id):
    exists = db.session.query(TestPlan.id).filter_by(plan_id=plan_id).first()
    if exists is None:
        raise ReferentialError("TestPlan", [plan_id])


# ═════════════════════════════════════════════════════════════════════════════
# TEST CASES
# ═════════════════════════════════════════════════════════════════════════════

def list_test_cases(filters=None):
    """List test cases newest first.

    Filters: industry, test_type, priority, status (equality) and ``search``
    (case-insensitive substring on test_case_id, title or tags).
    """
    filters = filters or {}
    q = apply_equality_filters(TestCase.query, TestCase, filters, TEST_CASE_FILTERS)
    search = filters.get("search")
    if search and str(search).strip():
        term = str(search).strip().lower()
        q = q.filter(or_(
            func.lower(TestCase.test_case_id).contains(term, autoescape=True),
            func.lower(TestCase.title).contains(term, autoescape=True),
            func.lower(func.coalesce(TestCase.tags, "")).contains(term, autoescape=True),
        ))
    return [tc.to_dict() for tc in _newest_first(q, TestCase).all()]


def get_test_case(test_case_id):
    """Composite detail view: the case, its ordered steps and its requirements."""
    tc = TestCase.query.filter_by(test_case_id=test_case_id).first()
    if tc is None:
        raise NotFoundError("TestCase", test_case_id)
    return tc.to_dict(include_steps=True, include_requirements=True)


def create_test_case(data):
    """Create a test case with its steps and requirement links in one transaction.

    Returns:
        The generated test_case_id.

    Raises:
        ValidationError: missing required fields or invalid values.
        ReferentialError: a requirement id does not exist.
    """
    require_fields(data, TEST_CASE_REQUIRED)
    values = _clean_values(data, TEST_CASE_FIELDS, TEST_CASE_CHOICES, TEST_CASE_REQUIRED)
    values["automation_status"] = values.get("automation_status") or "Manual"
    values["status"] = values.get("status") or "Draft"
    steps = _normalise_steps(data.get("steps"))
    requirement_ids = resolve_requirement_ids(data.get("requirements"))

    with atomic("TestCase", "create test case"):
        test_case_id = new_id("TC")
        db.session.add(TestCase(
            test_case_id=test_case_id,
            created_by=data.get("created_by") or "Current User",
            **values,
        ))
        db.session.flush()
        db.session.add_all(_build_steps(test_case_id, steps))
        db.session.add_all(_build_links(test_case_id, requirement_ids))

    logger.info(
        "Test case created id=%s steps=%d requirements=%d",
        test_case_id, len(steps), len(requirement_ids),
    )
    return test_case_id


def update_test_case(test_case_id, data):
    """Sparse patch; ``steps`` / ``requirements`` replace their full sets.

    Raises:
        NotFoundError: no test case with that id.
        ValidationError / ReferentialError: as for create.
    """
    values = _clean_values(data, TEST_CASE_FIELDS, TEST_CASE_CHOICES, TEST_CASE_REQUIRED)
    steps = _normalise_steps(data["steps"]) if data.get("steps") is not None else None
    requirement_ids = (
        resolve_requirement_ids(data["requirements"])
        if data.get("requirements") is not None else None
    )

    with atomic("TestCase", "update test case"):
        values["updated_at"] = _utcnow()
        affected = (
            TestCase.query.filter_by(test_case_id=test_case_id)
            .update(values, synchronize_session=False)
        )
        if not affected:
            raise NotFoundError("TestCase", test_case_id)

        if steps is not None:
            TestStep.query.filter_by(test_case_id=test_case_id).delete(synchronize_session=False)
            db.session.add_all(_build_steps(test_case_id, steps))

        if requirement_ids is not None:
            TestCaseRequirementLink.query.filter_by(
                test_case_id=test_case_id,
            ).delete(synchronize_session=False)
            db.session.add_all(_build_links(test_case_id, requirement_ids))

    logger.info(
        "Test case updated id=%s fields=%s steps_replaced=%s links_replaced=%s",
        test_case_id, sorted(k for k in values if k != "updated_at"),
        steps is not None, requirement_ids is not None,
    )


def delete_test_case(test_case_id):
    """Delete steps, then requirement links, then the case.

    Deleting an unknown id is acknowledged; returns whether a row was removed.
    """
    with atomic("TestCase", "delete test case"):
        TestStep.query.filter_by(test_case_id=test_case_id).delete(synchronize_session=False)
        TestCaseRequirementLink.query.filter_by(
            test_case_id=test_case_id,
        ).delete(synchronize_session=False)
        deleted = (
            TestCase.query.filter_by(test_case_id=test_case_id)
            .delete(synchronize_session=False)
        )

    if deleted:
        logger.info("Test case deleted id=%s", test_case_id)
    else:
        logger.debug("Delete of unknown test case id=%s acknowledged", test_case_id)
    return bool(deleted)


# ═════════════════════════════════════════════════════════════════════════════
# TEST PLANS
# ═════════════════════════════════════════════════════════════════════════════

def list_test_plans(filters=None):
    q = apply_equality_filters(TestPlan.query, TestPlan, filters, PLAN_FILTERS)
    return [p.to_dict() for p in _newest_first(q, TestPlan).all()]


def get_test_plan(plan_id):
    plan = TestPlan.query.filter_by(plan_id=plan_id).first()
    if plan is None:
        raise NotFoundError("TestPlan", plan_id)
    return plan.to_dict()


def create_test_plan(data):
    """Create a plan with zeroed execution counters. Returns the plan_id."""
    require_fields(data, PLAN_REQUIRED)
    values = _clean_values(data, PLAN_FIELDS, PLAN_CHOICES, PLAN_REQUIRED)
    values["status"] = values.get("status") or "Planning"
    values["total_test_cases"] = values.get("total_test_cases") or 0
    if values["total_test_cases"] < 0:
        raise ValidationError(
            "total_test_cases cannot be negative",
            details={"total_test_cases": "must be >= 0"},
        )

    with atomic("TestPlan", "create test plan"):
        plan_id = new_id("PLAN")
        db.session.add(TestPlan(plan_id=plan_id, **values))

    logger.info("Test plan created id=%s name=%s", plan_id, values["name"])
    return plan_id


def update_test_plan(plan_id, data):
    """Sparse patch of plan metadata.

    ``total_test_cases`` may be changed but never below the number of
    executions already recorded against the plan; the guard is part of the
    UPDATE itself so a concurrent execution cannot slip in between.
    """
    values = _clean_values(data, PLAN_FIELDS, PLAN_CHOICES, PLAN_REQUIRED)
    new_total = values.get("total_test_cases")
    if "total_test_cases" in values and new_total is None:
        values.pop("total_test_cases")
    if new_total is not None and new_total < 0:
        raise ValidationError(
            "total_test_cases cannot be negative",
            details={"total_test_cases": "must be >= 0"},
        )

    with atomic("TestPlan", "update test plan"):
        values["updated_at"] = _utcnow()
        q = TestPlan.query.filter(TestPlan.plan_id == plan_id)
        if new_total is not None:
            q = q.filter(TestPlan.executed_test_cases <= new_total)
        affected = q.update(values, synchronize_session=False)
        if not affected:
            if new_total is not None and TestPlan.query.filter_by(plan_id=plan_id).count():
                raise ValidationError(
                    "total_test_cases cannot be lower than executed_test_cases",
                    details={"total_test_cases": "must be >= executed_test_cases"},
                )
            raise NotFoundError("TestPlan", plan_id)

    logger.info("Test plan updated id=%s fields=%s", plan_id,
                sorted(k for k in values if k != "updated_at"))


# ═════════════════════════════════════════════════════════════════════════════
# DEFECTS
# ═════════════════════════════════════════════════════════════════════════════

def list_defects(filters=None):
    q = apply_equality_filters(Defect.query, Defect, filters, DEFECT_FILTERS)
    return [d.to_dict() for d in _newest_first(q, Defect).all()]


def get_defect(defect_id):
    defect = Defect.query.filter_by(defect_id=defect_id).first()
    if defect is None:
        raise NotFoundError("Defect", defect_id)
    return defect.to_dict()


def _stamp_resolution(values):
    if values.get("status") in DEFECT_CLOSED_STATUSES and not values.get("resolution_date"):
        values["resolution_date"] = _utcnow()


def create_defect(data):
    """Log a defect. Returns the defect_id; nothing is written on failure."""
    require_fields(data, DEFECT_REQUIRED)
    values = _clean_values(data, DEFECT_FIELDS, DEFECT_CHOICES, DEFECT_REQUIRED)
    values["status"] = values.get("status") or "Open"
    if values.get("test_case_id"):
        ensure_test_case_exists(values["test_case_id"])
    else:
        values["test_case_id"] = None
    _stamp_resolution(values)

    with atomic("Defect", "create defect"):
        defect_id = new_id("DEF")
        db.session.add(Defect(defect_id=defect_id, **values))

    logger.info("Defect created id=%s severity=%s test_case=%s",
                defect_id, values["severity"], values["test_case_id"])
    return defect_id


def update_defect(defect_id, data):
    """Sparse patch. Moving to Resolved/Closed stamps resolution_date if not given."""
    values = _clean_values(data, DEFECT_FIELDS, DEFECT_CHOICES, DEFECT_REQUIRED)
    if "test_case_id" in values:
        if values["test_case_id"]:
            ensure_test_case_exists(values["test_case_id"])
        else:
            values["test_case_id"] = None
    _stamp_resolution(values)

    with atomic("Defect", "update defect"):
        values["updated_at"] = _utcnow()
        affected = (
            Defect.query.filter_by(defect_id=defect_id)
            .update(values, synchronize_session=False)
        )
        if not affected:
            raise NotFoundError("Defect", defect_id)

    logger.info("Defect updated id=%s fields=%s", defect_id,
                sorted(k for k in values if k != "updated_at"))


# ═════════════════════════════════════════════════════════════════════════════
# EXECUTIONS (read side)
# ═════════════════════════════════════════════════════════════════════════════

def list_executions(filters=None):
    q = apply_equality_filters(TestExecution.query, TestExecution, filters, EXECUTION_FILTERS)
    q = q.order_by(TestExecution.execution_date.desc(), TestExecution.id.desc())
    return [e.to_dict() for e in q.all()]


def get_execution(execution_id):
    execution = TestExecution.query.filter_by(execution_id=execution_id).first()
    if execution is None:
        raise NotFoundError("TestExecution", execution_id)
    return execution.to_dict()
