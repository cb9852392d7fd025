"""
Report Engine.

Computes the named report sections live against the database and persists
the report's metadata row. The computed payload itself is never stored:
regenerating or exporting a report later recomputes it from current data.

Sections (each optional and independent):
  - executive_summary   totals, pass rate, open defects
  - test_execution      raw execution rows, optional inclusive date range
  - defect_analysis     defect counts by severity and by status
  - quality_metrics     average execution time (nulls excluded)
  - rtm_coverage        per-requirement coverage counts
"""

import logging
from datetime import datetime, time, timedelta

from sqlalchemy import func

from qa_hub.core.exceptions import NotFoundError, ValidationError
from qa_hub.models import db
from qa_hub.models.reporting import REPORT_SECTIONS, Report
from qa_hub.models.testing import Defect, TestCase, TestExecution
from qa_hub.services import traceability
from qa_hub.services.id_generator import new_id
from qa_hub.utils.helpers import atomic, parse_date, text_field

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# REPORT ENGINE
# ═════════════════════════════════════════════════════════════════════════════

class ReportEngine:
    """Registry of section runners; computes a payload for a list of sections."""

    # section name → (payload key, runner)
    _SECTIONS: dict = {}

    @classmethod
    def section(cls, name: str, payload_key: str | None = None):
        """Decorator to register a section runner under ``name``."""
        def decorator(fn):
            cls._SECTIONS[name] = (payload_key or name, fn)
            return fn
        return decorator

    @classmethod
    def available_sections(cls) -> list[str]:
        return [s for s in REPORT_SECTIONS if s in cls._SECTIONS]

    @classmethod
    def compute(cls, sections, start=None, end=None) -> dict:
        """Run each requested section; unknown names raise ValidationError."""
        unknown = [s for s in sections if s not in cls._SECTIONS]
        if unknown:
            raise ValidationError(
                f"Unknown report sections: {', '.join(unknown)}",
                details={"sections": f"allowed: {', '.join(cls.available_sections())}"},
            )
        payload = {}
        for name in sections:
            key, runner = cls._SECTIONS[name]
            payload[key] = runner(start=start, end=end)
        return payload


# ── Section runners ──────────────────────────────────────────────────────────

@ReportEngine.section("executive_summary")
def _executive_summary(**_):
    total_cases = TestCase.query.count()
    total_executions = TestExecution.query.count()
    passed = TestExecution.query.filter(TestExecution.status == "Passed").count()
    failed = TestExecution.query.filter(TestExecution.status == "Failed").count()
    total_defects = Defect.query.count()
    open_defects = Defect.query.filter(Defect.status == "Open").count()
    return {
        "total_test_cases": total_cases,
        "total_executions": total_executions,
        "passed_tests": passed,
        "failed_tests": failed,
        "pass_rate": round(passed / total_executions * 100, 2) if total_executions else 0,
        "total_defects": total_defects,
        "open_defects": open_defects,
    }


@ReportEngine.section("test_execution", payload_key="test_executions")
def _test_executions(start=None, end=None):
    q = TestExecution.query
    # Both bounds inclusive at day granularity: [start 00:00, end+1 00:00)
    if start:
        q = q.filter(TestExecution.execution_date >= datetime.combine(start, time.min))
    if end:
        q = q.filter(
            TestExecution.execution_date < datetime.combine(end + timedelta(days=1), time.min),
        )
    q = q.order_by(TestExecution.execution_date.desc(), TestExecution.id.desc())
    return [e.to_dict() for e in q.all()]


def _group_counts(column):
    return (
        db.session.query(column, func.count(Defect.id))
        .group_by(column)
        .order_by(column)
        .all()
    )


@ReportEngine.section("defect_analysis")
def _defect_analysis(**_):
    return {
        "by_severity": [
            {"severity": sev, "count": cnt} for sev, cnt in _group_counts(Defect.severity)
        ],
        "by_status": [
            {"status": st, "count": cnt} for st, cnt in _group_counts(Defect.status)
        ],
    }


@ReportEngine.section("quality_metrics")
def _quality_metrics(**_):
    # AVG ignores NULLs in both numerator and denominator
    avg_time = (
        db.session.query(func.avg(TestExecution.execution_time))
        .filter(TestExecution.execution_time.isnot(None))
        .scalar()
    )
    return {"avg_execution_time": round(float(avg_time), 2) if avg_time is not None else 0}


@ReportEngine.section("rtm_coverage")
def _rtm_coverage(**_):
    return [
        {
            "requirement_id": row["requirement_id"],
            "title": row["title"],
            "coverage_count": row["coverage_count"],
        }
        for row in traceability.build_matrix()
    ]


# ═════════════════════════════════════════════════════════════════════════════
# REPORT LIFECYCLE
# ═════════════════════════════════════════════════════════════════════════════

def _parse_range(data):
    start_raw, end_raw = data.get("date_range_start"), data.get("date_range_end")
    start, end = parse_date(start_raw), parse_date(end_raw)
    bad = [f for f, raw, parsed in (("date_range_start", start_raw, start),
                                    ("date_range_end", end_raw, end)) if raw and parsed is None]
    if bad:
        raise ValidationError(
            f"Invalid date: {', '.join(bad)}",
            details={f: "expected YYYY-MM-DD" for f in bad},
        )
    if start and end and start > end:
        raise ValidationError(
            "date_range_start must not be after date_range_end",
            details={"date_range_start": "after date_range_end"},
        )
    return start, end


def _parse_sections(raw):
    if raw is None:
        return list(REPORT_SECTIONS)
    if not isinstance(raw, list) or not all(isinstance(s, str) for s in raw):
        raise ValidationError(
            "sections must be a list of section names",
            details={"sections": "must be a list of strings"},
        )
    # keep caller order, drop duplicates
    return list(dict.fromkeys(s.strip() for s in raw))


def generate_report(data):
    """Compute the requested sections and persist the report metadata.

    Returns:
        {"report_id": str, "report_data": {section payloads}}
    """
    sections = _parse_sections(data.get("sections"))
    start, end = _parse_range(data)
    report_type = text_field(data, "report_type", "Custom")
    title = text_field(data, "title") or f"{report_type} Report"

    report_data = ReportEngine.compute(sections, start=start, end=end)

    with atomic("Report", "generate report"):
        report_id = new_id("RPT")
        db.session.add(Report(
            report_id=report_id,
            report_type=report_type,
            title=title,
            date_range_start=start,
            date_range_end=end,
            industry_filter=data.get("industry_filter"),
            phase_filter=data.get("phase_filter"),
            sections=sections,
            generated_by=data.get("generated_by") or "Current User",
            status="Generated",
        ))

    logger.info("Report generated id=%s type=%s sections=%s", report_id, report_type, sections)
    return {"report_id": report_id, "report_data": report_data}


def list_reports(limit=50):
    """Most recently generated reports first."""
    q = Report.query.order_by(Report.generated_at.desc(), Report.id.desc()).limit(limit)
    return [r.to_dict() for r in q.all()]


def get_report(report_id):
    report = Report.query.filter_by(report_id=report_id).first()
    if report is None:
        raise NotFoundError("Report", report_id)
    return report.to_dict()


def recompute_report(report_id):
    """Recompute a stored report's payload from current data.

    Returns:
        (report metadata dict, report_data dict)
    """
    report = get_report(report_id)
    sections = report["sections"] or list(REPORT_SECTIONS)
    report_data = ReportEngine.compute(
        sections,
        start=parse_date(report["date_range_start"]),
        end=parse_date(report["date_range_end"]),
    )
    return report, report_data
