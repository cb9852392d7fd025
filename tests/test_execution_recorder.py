"""
Tests — execution recorder service (rollup arithmetic + transaction boundary).
"""

import pytest
from sqlalchemy.exc import OperationalError

from qa_hub.core.exceptions import ReferentialError, StoreError, ValidationError
from qa_hub.models import db as _db
from qa_hub.models.testing import TestExecution, TestPlan
from qa_hub.services import execution_recorder, testing_service


def _case():
    return testing_service.create_test_case({
        "title": "Checkout with saved card", "industry": "Retail",
        "test_type": "Functional", "priority": "Medium",
    })


def _plan(**extra):
    return testing_service.create_test_plan({"name": "Sprint 12", "industry": "Retail", **extra})


def _execution(test_case_id, plan_id=None, status="Passed"):
    return {
        "test_case_id": test_case_id,
        "test_plan_id": plan_id,
        "executed_by": "Emily Rodriguez",
        "status": status,
    }


class TestRecordExecution:
    def test_returns_generated_id(self):
        tc_id = _case()
        assert execution_recorder.record_execution(_execution(tc_id)) == "EXE-0001"
        assert execution_recorder.record_execution(_execution(tc_id)) == "EXE-0002"

    def test_sequential_executions_accumulate(self):
        """Counters this session already read at 0/0 still end at 2/2."""
        tc_id = _case()
        plan_id = _plan()

        before = TestPlan.query.filter_by(plan_id=plan_id).first()
        assert (before.executed_test_cases, before.passed_test_cases) == (0, 0)

        execution_recorder.record_execution(_execution(tc_id, plan_id))
        execution_recorder.record_execution(_execution(tc_id, plan_id))

        _db.session.expire_all()
        plan = TestPlan.query.filter_by(plan_id=plan_id).first()
        assert plan.executed_test_cases == 2
        assert plan.passed_test_cases == 2
        assert plan.failed_test_cases == 0

    def test_rollup_is_evaluated_by_the_database(self):
        """The counter bump is column arithmetic, not a value computed in Python."""
        tc_id = _case()
        plan_id = _plan()
        # Move the counters behind the ORM's back; the recorder must build on them
        _db.session.execute(
            TestPlan.__table__.update()
            .where(TestPlan.plan_id == plan_id)
            .values(executed_test_cases=7, passed_test_cases=4, total_test_cases=10)
        )
        _db.session.commit()

        execution_recorder.record_execution(_execution(tc_id, plan_id, status="Passed"))

        plan = TestPlan.query.filter_by(plan_id=plan_id).first()
        assert plan.executed_test_cases == 8
        assert plan.passed_test_cases == 5
        assert plan.total_test_cases == 10

    def test_invariants_hold_over_mixed_statuses(self):
        tc_id = _case()
        plan_id = _plan()
        for status in ("Passed", "Failed", "Blocked", "Passed", "Failed"):
            execution_recorder.record_execution(_execution(tc_id, plan_id, status=status))

        plan = TestPlan.query.filter_by(plan_id=plan_id).first()
        assert plan.executed_test_cases == 5
        assert plan.passed_test_cases + plan.failed_test_cases <= plan.executed_test_cases
        assert plan.executed_test_cases <= plan.total_test_cases

    def test_status_is_validated(self):
        tc_id = _case()
        with pytest.raises(ValidationError):
            execution_recorder.record_execution(_execution(tc_id, status="passed"))

    def test_missing_test_case(self):
        with pytest.raises(ReferentialError) as exc:
            execution_recorder.record_execution(_execution("TC-0404"))
        assert exc.value.missing_ids == ["TC-0404"]


class TestRecordTransaction:
    def test_rollup_miss_rolls_back_execution(self, monkeypatch):
        tc_id = _case()
        plan_id = _plan()
        monkeypatch.setattr(execution_recorder, "_increment_plan_rollup", lambda *a: 0)

        with pytest.raises(ReferentialError):
            execution_recorder.record_execution(_execution(tc_id, plan_id))
        assert TestExecution.query.count() == 0

    def test_store_failure_rolls_back_execution(self, monkeypatch):
        tc_id = _case()
        plan_id = _plan()

        def _boom(*_):
            raise OperationalError("UPDATE test_plans", {}, Exception("database is locked"))

        monkeypatch.setattr(execution_recorder, "_increment_plan_rollup", _boom)

        with pytest.raises(StoreError):
            execution_recorder.record_execution(_execution(tc_id, plan_id))
        assert TestExecution.query.count() == 0
        plan = TestPlan.query.filter_by(plan_id=plan_id).first()
        assert plan.executed_test_cases == 0

    def test_store_failure_maps_to_500(self, client, monkeypatch):
        tc_id = _case()
        plan_id = _plan()

        def _boom(*_):
            raise OperationalError("UPDATE test_plans", {}, Exception("disk I/O error"))

        monkeypatch.setattr(execution_recorder, "_increment_plan_rollup", _boom)

        res = client.post("/api/test-executions", json=_execution(tc_id, plan_id))
        assert res.status_code == 500
        body = res.get_json()
        assert body["code"] == "ERR_DATABASE"
        assert "disk" not in body["error"]
