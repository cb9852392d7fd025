"""
Reporting blueprint — report generation, history, export and trend analytics.

Endpoints:
    POST /api/reports/generate                 — Compute sections + persist metadata
    GET  /api/reports                          — Recent reports (newest first)
    GET  /api/reports/<id>/export              — Excel export, recomputed live
    GET  /api/analytics/execution-trends       — Per-day executed / passed / failed
    GET  /api/analytics/defect-trends          — Per-day, per-severity defect counts
"""

import logging

from flask import Blueprint, Response, current_app

from qa_hub.blueprints import json_body, limit_arg, ok
from qa_hub.services import dashboard_service, report_engine
from qa_hub.services.export_service import XLSX_MIMETYPE, export_report_xlsx

logger = logging.getLogger(__name__)

reporting_bp = Blueprint("reporting", __name__, url_prefix="/api")


@reporting_bp.route("/reports/generate", methods=["POST"])
def generate_report():
    result = report_engine.generate_report(json_body())
    return ok(result, "Report generated successfully", 201)


@reporting_bp.route("/reports", methods=["GET"])
def list_reports():
    default = current_app.config.get("REPORT_LIST_LIMIT", 50)
    return ok(report_engine.list_reports(limit_arg(default)))


@reporting_bp.route("/reports/<report_id>/export", methods=["GET"])
def export_report(report_id):
    buf, filename = export_report_xlsx(report_id)
    return Response(
        buf.getvalue(),
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@reporting_bp.route("/analytics/execution-trends", methods=["GET"])
def execution_trends():
    default = current_app.config.get("TREND_DAYS_LIMIT", 30)
    return ok(dashboard_service.execution_trends(limit_arg(default)))


@reporting_bp.route("/analytics/defect-trends", methods=["GET"])
def defect_trends():
    default = current_app.config.get("TREND_DAYS_LIMIT", 30)
    return ok(dashboard_service.defect_trends(limit_arg(default)))
