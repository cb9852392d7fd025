"""
Dashboard blueprint — landing-page KPIs.
"""

from flask import Blueprint, current_app

from qa_hub.blueprints import limit_arg, ok
from qa_hub.services import dashboard_service as svc

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.route("/stats", methods=["GET"])
def stats():
    """totalTestCases, passedTests, activeDefects, testCoverage."""
    return ok(svc.stats())


@dashboard_bp.route("/test-plans", methods=["GET"])
def active_plans():
    """Most recent plans in Planning / In Progress / Completed."""
    limit = limit_arg(current_app.config.get("DASHBOARD_LIST_LIMIT", 10))
    return ok(svc.active_plans(limit))


@dashboard_bp.route("/recent-defects", methods=["GET"])
def recent_defects():
    limit = limit_arg(current_app.config.get("DASHBOARD_LIST_LIMIT", 10))
    return ok(svc.recent_defects(limit))
