"""
Tests — report generation, history, Excel export and trend analytics.
"""

import io

import pytest
from openpyxl import load_workbook

from qa_hub.models.reporting import REPORT_SECTIONS, Report
from qa_hub.services import report_engine


# ── Helpers ─────────────────────────────────────────────────────────────────

def _create_case(client, **overrides):
    payload = {"title": "Search listings", "industry": "Real Estate",
               "test_type": "Functional", "priority": "Medium"}
    payload.update(overrides)
    res = client.post("/api/test-cases", json=payload)
    assert res.status_code == 201
    return res.get_json()["data"]["test_case_id"]


def _record(client, test_case_id, status="Passed", **extra):
    res = client.post("/api/test-executions", json={
        "test_case_id": test_case_id, "executed_by": "David Kumar",
        "status": status, **extra,
    })
    assert res.status_code == 201
    return res.get_json()["data"]["execution_id"]


def _create_defect(client, severity="High", status="Open"):
    res = client.post("/api/defects", json={
        "title": "Map pins misplaced", "description": "Pins offset by ~200m",
        "severity": severity, "priority": "Medium", "reported_by": "QA",
        "status": status,
    })
    assert res.status_code == 201


def _generate(client, **payload):
    res = client.post("/api/reports/generate", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]


# ═════════════════════════════════════════════════════════════════════════════
# GENERATION
# ═════════════════════════════════════════════════════════════════════════════

class TestGenerateReport:
    def test_pass_rate_zero_without_executions(self, client):
        data = _generate(client, report_type="Executive", sections=["executive_summary"])
        assert data["report_id"] == "RPT-0001"
        summary = data["report_data"]["executive_summary"]
        assert summary["pass_rate"] == 0
        assert summary["total_executions"] == 0

    def test_only_requested_sections(self, client):
        data = _generate(client, sections=["defect_analysis", "quality_metrics"])
        assert set(data["report_data"]) == {"defect_analysis", "quality_metrics"}

    def test_all_sections_by_default(self, client):
        data = _generate(client)
        assert set(data["report_data"]) == {
            "executive_summary", "test_executions", "defect_analysis",
            "quality_metrics", "rtm_coverage",
        }

    def test_unknown_section_rejected(self, client):
        res = client.post("/api/reports/generate", json={"sections": ["velocity"]})
        assert res.status_code == 400
        assert Report.query.count() == 0

    def test_executive_summary_numbers(self, client):
        tc = _create_case(client)
        _record(client, tc, "Passed")
        _record(client, tc, "Passed")
        _record(client, tc, "Failed")
        _create_defect(client, status="Open")
        _create_defect(client, status="In Progress")

        summary = _generate(client, sections=["executive_summary"])["report_data"]["executive_summary"]
        assert summary["total_test_cases"] == 1
        assert summary["total_executions"] == 3
        assert summary["passed_tests"] == 2
        assert summary["failed_tests"] == 1
        assert summary["pass_rate"] == 66.67
        assert summary["total_defects"] == 2
        assert summary["open_defects"] == 1

    def test_execution_range_is_inclusive(self, client):
        tc = _create_case(client)
        _record(client, tc, execution_date="2024-02-29T18:00:00")
        inside_early = _record(client, tc, execution_date="2024-03-01T00:00:00")
        inside_late = _record(client, tc, execution_date="2024-03-02T23:59:00")
        _record(client, tc, execution_date="2024-03-03T00:00:00")

        rows = _generate(
            client, sections=["test_execution"],
            date_range_start="2024-03-01", date_range_end="2024-03-02",
        )["report_data"]["test_executions"]
        assert {r["execution_id"] for r in rows} == {inside_early, inside_late}

    def test_execution_range_open_ended(self, client):
        tc = _create_case(client)
        _record(client, tc, execution_date="2024-01-10T10:00:00")
        later = _record(client, tc, execution_date="2024-05-10T10:00:00")
        rows = _generate(
            client, sections=["test_execution"], date_range_start="2024-05-01",
        )["report_data"]["test_executions"]
        assert [r["execution_id"] for r in rows] == [later]

    def test_reversed_range_rejected(self, client):
        res = client.post("/api/reports/generate", json={
            "date_range_start": "2024-03-10", "date_range_end": "2024-03-01",
        })
        assert res.status_code == 400

    def test_invalid_date_rejected(self, client):
        res = client.post("/api/reports/generate", json={"date_range_start": "next week"})
        assert res.status_code == 400
        assert "date_range_start" in res.get_json()["details"]

    @pytest.mark.parametrize("field", ["report_type", "title"])
    def test_non_string_text_rejected(self, client, field):
        res = client.post("/api/reports/generate", json={field: 42})
        assert res.status_code == 400
        assert res.get_json()["details"] == {field: "must be a string"}
        assert Report.query.count() == 0

    def test_defect_analysis_groups(self, client):
        _create_defect(client, severity="Critical")
        _create_defect(client, severity="Critical", status="Closed")
        _create_defect(client, severity="Low")

        analysis = _generate(client, sections=["defect_analysis"])["report_data"]["defect_analysis"]
        assert {r["severity"]: r["count"] for r in analysis["by_severity"]} == {"Critical": 2, "Low": 1}
        assert {r["status"]: r["count"] for r in analysis["by_status"]} == {"Open": 2, "Closed": 1}

    def test_quality_metrics_excludes_missing_times(self, client):
        tc = _create_case(client)
        _record(client, tc, execution_time=10)
        _record(client, tc, execution_time=20)
        _record(client, tc)
        metrics = _generate(client, sections=["quality_metrics"])["report_data"]["quality_metrics"]
        assert metrics["avg_execution_time"] == 15

    def test_quality_metrics_zero_without_times(self, client):
        metrics = _generate(client, sections=["quality_metrics"])["report_data"]["quality_metrics"]
        assert metrics["avg_execution_time"] == 0

    def test_rtm_coverage_section(self, client, requirements):
        _create_case(client, requirements=["REQ-0002"])
        coverage = _generate(client, sections=["rtm_coverage"])["report_data"]["rtm_coverage"]
        assert len(coverage) == len(requirements)
        assert {r["requirement_id"]: r["coverage_count"] for r in coverage}["REQ-0002"] == 1

    def test_metadata_persisted(self, client):
        data = _generate(client, report_type="Compliance", industry_filter="Healthcare",
                         date_range_start="2024-01-01", sections=["executive_summary"])
        report = report_engine.get_report(data["report_id"])
        assert report["title"] == "Compliance Report"
        assert report["industry_filter"] == "Healthcare"
        assert report["date_range_start"] == "2024-01-01"
        assert report["sections"] == ["executive_summary"]
        assert report["status"] == "Generated"


class TestReportHistory:
    def test_list_newest_first(self, client):
        _generate(client, title="First")
        _generate(client, title="Second")
        data = client.get("/api/reports").get_json()["data"]
        assert [r["title"] for r in data] == ["Second", "First"]

    def test_list_limit(self, client):
        for i in range(3):
            _generate(client, title=f"R{i}", sections=["quality_metrics"])
        data = client.get("/api/reports?limit=2").get_json()["data"]
        assert len(data) == 2


# ═════════════════════════════════════════════════════════════════════════════
# EXPORT
# ═════════════════════════════════════════════════════════════════════════════

class TestReportExport:
    def _workbook(self, res):
        return load_workbook(io.BytesIO(res.data))

    def test_export_workbook_sheets(self, client, requirements):
        tc = _create_case(client, requirements=["REQ-0001"])
        _record(client, tc, "Failed")
        report_id = _generate(client, title="Weekly")["report_id"]

        res = client.get(f"/api/reports/{report_id}/export")
        assert res.status_code == 200
        assert res.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        assert f"{report_id}.xlsx" in res.headers["Content-Disposition"]

        wb = self._workbook(res)
        assert wb.sheetnames == ["Summary", "Executions", "RTM Coverage"]
        assert wb["Summary"]["A1"].value == "Weekly"
        assert wb["Executions"].max_row == 2
        assert wb["Executions"]["D2"].value == "Failed"

    def test_export_is_recomputed_live(self, client):
        tc = _create_case(client)
        report_id = _generate(client, sections=["test_execution"])["report_id"]
        _record(client, tc)
        _record(client, tc)

        wb = self._workbook(client.get(f"/api/reports/{report_id}/export"))
        assert wb["Executions"].max_row == 3

    def test_export_only_stored_sections(self, client):
        report_id = _generate(client, sections=["executive_summary"])["report_id"]
        wb = self._workbook(client.get(f"/api/reports/{report_id}/export"))
        assert wb.sheetnames == ["Summary"]

    def test_export_not_found(self, client):
        res = client.get("/api/reports/RPT-9999/export")
        assert res.status_code == 404
        assert res.get_json()["success"] is False


# ═════════════════════════════════════════════════════════════════════════════
# ANALYTICS
# ═════════════════════════════════════════════════════════════════════════════

class TestAnalytics:
    def test_execution_trends_per_day(self, client):
        tc = _create_case(client)
        _record(client, tc, "Passed", execution_date="2024-04-01T09:00:00")
        _record(client, tc, "Failed", execution_date="2024-04-01T15:00:00")
        _record(client, tc, "Blocked", execution_date="2024-04-02T09:00:00")

        data = client.get("/api/analytics/execution-trends").get_json()["data"]
        assert data == [
            {"date": "2024-04-02", "total": 1, "passed": 0, "failed": 0},
            {"date": "2024-04-01", "total": 2, "passed": 1, "failed": 1},
        ]

    def test_execution_trends_limit(self, client):
        tc = _create_case(client)
        for day in ("01", "02", "03"):
            _record(client, tc, execution_date=f"2024-04-{day}T09:00:00")
        data = client.get("/api/analytics/execution-trends?limit=2").get_json()["data"]
        assert [d["date"] for d in data] == ["2024-04-03", "2024-04-02"]

    def test_defect_trends_by_severity(self, client):
        _create_defect(client, severity="High")
        _create_defect(client, severity="High")
        _create_defect(client, severity="Low")
        data = client.get("/api/analytics/defect-trends").get_json()["data"]
        assert {d["severity"]: d["count"] for d in data} == {"High": 2, "Low": 1}

    @pytest.mark.parametrize("path", [
        "/api/analytics/execution-trends",
        "/api/analytics/defect-trends",
    ])
    def test_trends_empty(self, client, path):
        assert client.get(path).get_json()["data"] == []


def test_section_registry_matches_model():
    assert report_engine.ReportEngine.available_sections() == list(REPORT_SECTIONS)
