"""
Traceability blueprint — requirements catalog and RTM.

Endpoints:
    GET  /api/requirements            — List (category, priority, status), by requirement_id
    POST /api/requirements            — Create
    GET  /api/requirements/<id>       — Detail + covering test case ids
    GET  /api/rtm                     — Requirements traceability matrix
    GET  /api/rtm/gaps                — Uncovered requirements + coverage summary
"""

from flask import Blueprint, request

from qa_hub.blueprints import json_body, ok
from qa_hub.services import requirement_service, traceability

traceability_bp = Blueprint("traceability", __name__, url_prefix="/api")


@traceability_bp.route("/requirements", methods=["GET"])
def list_requirements():
    return ok(requirement_service.list_requirements(request.args))


@traceability_bp.route("/requirements", methods=["POST"])
def create_requirement():
    requirement_id = requirement_service.create_requirement(json_body())
    return ok({"requirement_id": requirement_id}, "Requirement created successfully", 201)


@traceability_bp.route("/requirements/<requirement_id>", methods=["GET"])
def get_requirement(requirement_id):
    return ok(requirement_service.get_requirement(requirement_id))


@traceability_bp.route("/rtm", methods=["GET"])
def rtm():
    return ok(traceability.build_matrix())


@traceability_bp.route("/rtm/gaps", methods=["GET"])
def rtm_gaps():
    matrix = traceability.build_matrix()
    return ok({
        "gaps": traceability.coverage_gaps(matrix),
        "summary": traceability.coverage_summary(matrix),
    })
