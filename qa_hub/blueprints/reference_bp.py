"""
Reference data blueprint.

Endpoints:
    GET /api/team           — Active team members, by name
    GET /api/environments   — Test environments, by name
"""

from flask import Blueprint

from qa_hub.blueprints import ok
from qa_hub.services import reference_service as svc

reference_bp = Blueprint("reference", __name__, url_prefix="/api")


@reference_bp.route("/team", methods=["GET"])
def list_team():
    return ok(svc.list_team_members())


@reference_bp.route("/environments", methods=["GET"])
def list_environments():
    return ok(svc.list_environments())
