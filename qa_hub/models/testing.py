"""
QA Testing Hub
Testing domain models.

Models:
    - TestCase:                 individual test case in the catalog
    - TestStep:                 ordered step within a test case
    - TestCaseRequirementLink:  test case ↔ requirement association (N:M)
    - TestPlan:                 planning container with execution rollup counters
    - TestExecution:            immutable execution event of a test case
    - Defect:                   defect raised during testing

Relationships:
    test case    1..n  steps (position order, deleted with the case)
    test case    n..m  requirements   (test_case_requirements)
    test plan    1..n  executions     (rollup counters on the plan)
    test case    1..n  executions, defects

References between tables use the external ``*_id`` keys, never the
internal integer primary key. Executions and defects reference their test
case by value only (checked at write time) so history outlives the case.
"""

from datetime import datetime, timezone

from qa_hub.models import db


# ── Constants ────────────────────────────────────────────────────────────

PRIORITIES = {"Critical", "High", "Medium", "Low"}

AUTOMATION_STATUSES = {"Manual", "Automated"}

TEST_CASE_STATUSES = {"Draft", "Ready", "In Review", "Approved", "Deprecated"}

PLAN_STATUSES = {"Planning", "In Progress", "Completed"}

EXECUTION_STATUSES = {"Passed", "Failed", "Blocked"}

DEFECT_SEVERITIES = {"Critical", "High", "Medium", "Low"}

DEFECT_STATUSES = {"Open", "In Progress", "Resolved", "Closed"}

# Defects in these states no longer count as active work
DEFECT_CLOSED_STATUSES = {"Resolved", "Closed"}


def _utcnow():
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════════════
# TEST CASE
# ═════════════════════════════════════════════════════════════════════════════

class TestCase(db.Model):
    """
    Individual test case in the catalog.

    Owns an ordered list of TestStep rows (step_number contiguous from 1)
    and a set of requirement links.
    """

    __tablename__ = "test_cases"

    id = db.Column(db.Integer, primary_key=True)
    test_case_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    industry = db.Column(db.String(100), nullable=False, index=True)
    test_type = db.Column(db.String(100), nullable=False, index=True)
    priority = db.Column(
        db.String(20), nullable=False, index=True,
        comment="Critical | High | Medium | Low",
    )
    automation_status = db.Column(db.String(20), default="Manual", comment="Manual | Automated")
    status = db.Column(
        db.String(30), default="Draft", index=True,
        comment="Draft | Ready | In Review | Approved | Deprecated",
    )
    assigned_to = db.Column(db.String(150), nullable=True)
    preconditions = db.Column(db.Text, default="")
    test_data = db.Column(db.Text, default="")
    expected_execution_time = db.Column(db.Integer, nullable=True, comment="Minutes")
    tags = db.Column(db.String(500), default="", comment="Comma-separated labels")
    reference_links = db.Column(db.Text, default="")
    created_by = db.Column(db.String(150), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # ── Relationships (read-only views; writes go through the services)
    steps = db.relationship(
        "TestStep", lazy="select", order_by="TestStep.step_number", viewonly=True,
    )
    requirements = db.relationship(
        "Requirement",
        secondary="test_case_requirements",
        order_by="Requirement.requirement_id",
        lazy="select",
        viewonly=True,
    )

    def to_dict(self, include_steps=False, include_requirements=False):
        result = {
            "id": self.id,
            "test_case_id": self.test_case_id,
            "title": self.title,
            "description": self.description,
            "industry": self.industry,
            "test_type": self.test_type,
            "priority": self.priority,
            "automation_status": self.automation_status,
            "status": self.status,
            "assigned_to": self.assigned_to,
            "preconditions": self.preconditions,
            "test_data": self.test_data,
            "expected_execution_time": self.expected_execution_time,
            "tags": self.tags,
            "reference_links": self.reference_links,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_steps:
            result["steps"] = [s.to_dict() for s in self.steps]
        if include_requirements:
            result["requirements"] = [r.to_dict() for r in self.requirements]
        return result

    def __repr__(self):
        return f"<TestCase {self.test_case_id}: {self.title}>"


# ═════════════════════════════════════════════════════════════════════════════
# TEST STEP
# ═════════════════════════════════════════════════════════════════════════════

class TestStep(db.Model):
    """Atomic step within a test case. Replaced wholesale, never patched."""

    __tablename__ = "test_steps"
    __table_args__ = (
        db.UniqueConstraint("test_case_id", "step_number", name="uq_test_step_number"),
    )

    id = db.Column(db.Integer, primary_key=True)
    test_case_id = db.Column(
        db.String(32), db.ForeignKey("test_cases.test_case_id"),
        nullable=False, index=True,
    )
    step_number = db.Column(db.Integer, nullable=False, comment="1-based position")
    action = db.Column(db.Text, default="")
    expected_result = db.Column(db.Text, default="")

    def to_dict(self):
        return {
            "id": self.id,
            "test_case_id": self.test_case_id,
            "step_number": self.step_number,
            "action": self.action,
            "expected_result": self.expected_result,
        }

    def __repr__(self):
        return f"<TestStep {self.test_case_id}#{self.step_number}>"


# ═════════════════════════════════════════════════════════════════════════════
# TEST CASE ↔ REQUIREMENT LINK
# ═════════════════════════════════════════════════════════════════════════════

class TestCaseRequirementLink(db.Model):
    """Pure association row; recreated wholesale on requirement-set updates."""

    __tablename__ = "test_case_requirements"
    __table_args__ = (
        db.UniqueConstraint("test_case_id", "requirement_id", name="uq_tc_requirement"),
    )

    id = db.Column(db.Integer, primary_key=True)
    test_case_id = db.Column(
        db.String(32), db.ForeignKey("test_cases.test_case_id"),
        nullable=False, index=True,
    )
    requirement_id = db.Column(
        db.String(32), db.ForeignKey("requirements.requirement_id"),
        nullable=False, index=True,
    )

    def to_dict(self):
        return {
            "test_case_id": self.test_case_id,
            "requirement_id": self.requirement_id,
        }

    def __repr__(self):
        return f"<TestCaseRequirementLink {self.test_case_id} → {self.requirement_id}>"


# ═════════════════════════════════════════════════════════════════════════════
# TEST PLAN
# ═════════════════════════════════════════════════════════════════════════════

class TestPlan(db.Model):
    """
    Planning container with denormalised execution rollups.

    The four counters are maintained by the execution recorder with a single
    server-side UPDATE; they are never recomputed on read.
    Invariants: executed ≤ total, passed + failed ≤ executed.
    """

    __tablename__ = "test_plans"

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    industry = db.Column(db.String(100), nullable=False, index=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    status = db.Column(
        db.String(30), default="Planning", index=True,
        comment="Planning | In Progress | Completed",
    )
    assigned_to = db.Column(db.String(150), nullable=True)

    total_test_cases = db.Column(db.Integer, nullable=False, default=0)
    executed_test_cases = db.Column(db.Integer, nullable=False, default=0)
    passed_test_cases = db.Column(db.Integer, nullable=False, default=0)
    failed_test_cases = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "name": self.name,
            "description": self.description,
            "industry": self.industry,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "status": self.status,
            "assigned_to": self.assigned_to,
            "total_test_cases": self.total_test_cases,
            "executed_test_cases": self.executed_test_cases,
            "passed_test_cases": self.passed_test_cases,
            "failed_test_cases": self.failed_test_cases,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<TestPlan {self.plan_id}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# TEST EXECUTION
# ═════════════════════════════════════════════════════════════════════════════

class TestExecution(db.Model):
    """Append-only execution event. There is no update path."""

    __tablename__ = "test_executions"

    id = db.Column(db.Integer, primary_key=True)
    execution_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    test_case_id = db.Column(db.String(32), nullable=False, index=True)
    test_plan_id = db.Column(db.String(32), nullable=True, index=True)
    executed_by = db.Column(db.String(150), nullable=False)
    status = db.Column(db.String(20), nullable=False, index=True, comment="Passed | Failed | Blocked")
    actual_result = db.Column(db.Text, default="")
    comments = db.Column(db.Text, default="")
    environment = db.Column(db.String(100), nullable=True)
    build_version = db.Column(db.String(100), nullable=True)
    execution_time = db.Column(db.Integer, nullable=True, comment="Duration in minutes")
    execution_date = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "execution_id": self.execution_id,
            "test_case_id": self.test_case_id,
            "test_plan_id": self.test_plan_id,
            "executed_by": self.executed_by,
            "status": self.status,
            "actual_result": self.actual_result,
            "comments": self.comments,
            "environment": self.environment,
            "build_version": self.build_version,
            "execution_time": self.execution_time,
            "execution_date": self.execution_date.isoformat() if self.execution_date else None,
        }

    def __repr__(self):
        return f"<TestExecution {self.execution_id}: {self.test_case_id} {self.status}>"


# ═════════════════════════════════════════════════════════════════════════════
# DEFECT
# ═════════════════════════════════════════════════════════════════════════════

class Defect(db.Model):
    """Defect logged against the product, optionally tied to a test case."""

    __tablename__ = "defects"

    id = db.Column(db.Integer, primary_key=True)
    defect_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=False)
    severity = db.Column(db.String(20), nullable=False, index=True, comment="Critical | High | Medium | Low")
    priority = db.Column(db.String(20), nullable=False, index=True)
    status = db.Column(
        db.String(20), default="Open", index=True,
        comment="Open | In Progress | Resolved | Closed",
    )
    test_case_id = db.Column(db.String(32), nullable=True, index=True)
    assigned_to = db.Column(db.String(150), nullable=True)
    reported_by = db.Column(db.String(150), nullable=False)
    environment = db.Column(db.String(100), nullable=True)
    steps_to_reproduce = db.Column(db.Text, default="")
    expected_result = db.Column(db.Text, default="")
    actual_result = db.Column(db.Text, default="")
    attachments = db.Column(db.Text, default="", comment="Opaque text; no file storage")
    resolution = db.Column(db.Text, nullable=True)
    resolution_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "defect_id": self.defect_id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "priority": self.priority,
            "status": self.status,
            "test_case_id": self.test_case_id,
            "assigned_to": self.assigned_to,
            "reported_by": self.reported_by,
            "environment": self.environment,
            "steps_to_reproduce": self.steps_to_reproduce,
            "expected_result": self.expected_result,
            "actual_result": self.actual_result,
            "attachments": self.attachments,
            "resolution": self.resolution,
            "resolution_date": self.resolution_date.isoformat() if self.resolution_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Defect {self.defect_id}: {self.title}>"
