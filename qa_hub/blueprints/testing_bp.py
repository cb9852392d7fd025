"""
QA Testing Hub
Testing Blueprint — test catalog CRUD API.

Test Cases:
    GET    /api/test-cases                 — List (industry, test_type, priority, status, search)
    POST   /api/test-cases                 — Create (+ steps, requirements)
    GET    /api/test-cases/<id>            — Detail (+ ordered steps, requirements)
    PUT    /api/test-cases/<id>            — Sparse update (steps / requirements replaced wholesale)
    DELETE /api/test-cases/<id>            — Delete (steps → links → case)

Executions:
    GET    /api/test-executions            — List (test_case_id, test_plan_id, status)
    POST   /api/test-executions            — Record (+ plan rollup)
    GET    /api/test-executions/<id>       — Detail

Defects:
    GET    /api/defects                    — List (status, severity, priority)
    POST   /api/defects                    — Create
    GET    /api/defects/<id>               — Detail
    PUT    /api/defects/<id>               — Sparse update

Test Plans:
    GET    /api/test-plans                 — List (status, industry)
    POST   /api/test-plans                 — Create
    GET    /api/test-plans/<id>            — Detail
    PUT    /api/test-plans/<id>            — Sparse update

Service layer owns validation and commits; domain errors are mapped to the
failure envelope by the app-wide handlers in ``qa_hub.blueprints``.
"""

import logging

from flask import Blueprint, request

from qa_hub.blueprints import json_body, ok
from qa_hub.services import execution_recorder
from qa_hub.services import testing_service as svc

logger = logging.getLogger(__name__)

testing_bp = Blueprint("testing", __name__, url_prefix="/api")


# ═════════════════════════════════════════════════════════════════════════════
# TEST CASES
# ═════════════════════════════════════════════════════════════════════════════

@testing_bp.route("/test-cases", methods=["GET"])
def list_test_cases():
    return ok(svc.list_test_cases(request.args))


@testing_bp.route("/test-cases/<test_case_id>", methods=["GET"])
def get_test_case(test_case_id):
    return ok(svc.get_test_case(test_case_id))


@testing_bp.route("/test-cases", methods=["POST"])
def create_test_case():
    test_case_id = svc.create_test_case(json_body())
    return ok({"test_case_id": test_case_id}, "Test case created successfully", 201)


@testing_bp.route("/test-cases/<test_case_id>", methods=["PUT"])
def update_test_case(test_case_id):
    svc.update_test_case(test_case_id, json_body())
    return ok({"test_case_id": test_case_id}, "Test case updated successfully")


@testing_bp.route("/test-cases/<test_case_id>", methods=["DELETE"])
def delete_test_case(test_case_id):
    svc.delete_test_case(test_case_id)
    return ok({"test_case_id": test_case_id}, "Test case deleted successfully")


# ═════════════════════════════════════════════════════════════════════════════
# TEST EXECUTIONS
# ═════════════════════════════════════════════════════════════════════════════

@testing_bp.route("/test-executions", methods=["GET"])
def list_executions():
    return ok(svc.list_executions(request.args))


@testing_bp.route("/test-executions/<execution_id>", methods=["GET"])
def get_execution(execution_id):
    return ok(svc.get_execution(execution_id))


@testing_bp.route("/test-executions", methods=["POST"])
def record_execution():
    execution_id = execution_recorder.record_execution(json_body())
    return ok({"execution_id": execution_id}, "Test execution recorded successfully", 201)


# ═════════════════════════════════════════════════════════════════════════════
# DEFECTS
# ═════════════════════════════════════════════════════════════════════════════

@testing_bp.route("/defects", methods=["GET"])
def list_defects():
    return ok(svc.list_defects(request.args))


@testing_bp.route("/defects/<defect_id>", methods=["GET"])
def get_defect(defect_id):
    return ok(svc.get_defect(defect_id))


@testing_bp.route("/defects", methods=["POST"])
def create_defect():
    defect_id = svc.create_defect(json_body())
    return ok({"defect_id": defect_id}, "Defect created successfully", 201)


@testing_bp.route("/defects/<defect_id>", methods=["PUT"])
def update_defect(defect_id):
    svc.update_defect(defect_id, json_body())
    return ok({"defect_id": defect_id}, "Defect updated successfully")


# ═════════════════════════════════════════════════════════════════════════════
# TEST PLANS
# ═════════════════════════════════════════════════════════════════════════════

@testing_bp.route("/test-plans", methods=["GET"])
def list_test_plans():
    return ok(svc.list_test_plans(request.args))


@testing_bp.route("/test-plans/<plan_id>", methods=["GET"])
def get_test_plan(plan_id):
    return ok(svc.get_test_plan(plan_id))


@testing_bp.route("/test-plans", methods=["POST"])
def create_test_plan():
    plan_id = svc.create_test_plan(json_body())
    return ok({"plan_id": plan_id}, "Test plan created successfully", 201)


@testing_bp.route("/test-plans/<plan_id>", methods=["PUT"])
def update_test_plan(plan_id):
    svc.update_test_plan(plan_id, json_body())
    return ok({"plan_id": plan_id}, "Test plan updated successfully")
