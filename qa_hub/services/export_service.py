import io
import logging
from datetime import datetime, timezone

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from qa_hub.services.report_engine import recompute_report

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
STATUS_FILLS = {
    "Passed": PatternFill(start_color="27AE60", end_color="27AE60", fill_type="solid"),
    "Failed": PatternFill(start_color="E74C3C", end_color="E74C3C", fill_type="solid"),
    "Blocked": PatternFill(start_color="F39C12", end_color="F39C12", fill_type="solid"),
}
WHITE_FONT = Font(color="FFFFFF", bold=True)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXECUTION_COLUMNS = [
    ("execution_id", "Execution"),
    ("test_case_id", "Test Case"),
    ("test_plan_id", "Plan"),
    ("status", "Status"),
    ("executed_by", "Executed By"),
    ("environment", "Environment"),
    ("build_version", "Build"),
    ("execution_time", "Duration (min)"),
    ("execution_date", "Executed At"),
]


def _apply_header_style(ws, row: int, col_count: int) -> None:
    """Apply dark-header styling to an Excel row (1-indexed)."""
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _auto_width(ws) -> None:
    """Auto-size column widths based on content (capped at 60 chars)."""
    for col in ws.columns:
        max_len = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value is not None:
                max_len = max(max_len, min(len(str(cell.value)), 60))
        ws.column_dimensions[col_letter].width = max(max_len + 4, 12)


def _write_table(ws, start_row: int, headers: list[str], rows: list[list]) -> int:
    """Write a header + rows block; returns the next free row."""
    for col, header in enumerate(headers, 1):
        ws.cell(row=start_row, column=col, value=header)
    _apply_header_style(ws, start_row, len(headers))
    row = start_row + 1
    for values in rows:
        for col, value in enumerate(values, 1):
            ws.cell(row=row, column=col, value=value).border = THIN_BORDER
        row += 1
    return row + 1


def _summary_sheet(ws, report: dict, report_data: dict) -> None:
    ws.title = "Summary"
    ws.merge_cells("A1:D1")
    ws["A1"] = report["title"]
    ws["A1"].font = Font(size=16, bold=True, color="354A5F")
    ws["A2"] = (
        f"{report['report_id']} · {report['report_type']} · generated by "
        f"{report['generated_by']} · exported "
        f"{datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}"
    )
    ws["A2"].font = Font(size=10, italic=True, color="666666")
    if report.get("date_range_start") or report.get("date_range_end"):
        ws["A3"] = f"Range: {report.get('date_range_start') or '…'} → {report.get('date_range_end') or '…'}"

    row = 5
    summary = report_data.get("executive_summary")
    if summary:
        labels = [
            ("Total test cases", "total_test_cases"),
            ("Total executions", "total_executions"),
            ("Passed", "passed_tests"),
            ("Failed", "failed_tests"),
            ("Pass rate (%)", "pass_rate"),
            ("Total defects", "total_defects"),
            ("Open defects", "open_defects"),
        ]
        row = _write_table(ws, row, ["Metric", "Value"],
                           [[label, summary.get(key)] for label, key in labels])

    quality = report_data.get("quality_metrics")
    if quality:
        row = _write_table(ws, row, ["Quality metric", "Value"],
                           [["Avg execution time (min)", quality.get("avg_execution_time")]])

    defects = report_data.get("defect_analysis")
    if defects:
        row = _write_table(ws, row, ["Severity", "Defects"],
                           [[r["severity"], r["count"]] for r in defects["by_severity"]])
        _write_table(ws, row, ["Status", "Defects"],
                     [[r["status"], r["count"]] for r in defects["by_status"]])
    _auto_width(ws)


def _executions_sheet(wb, executions: list[dict]) -> None:
    ws = wb.create_sheet("Executions")
    _write_table(
        ws, 1, [label for _, label in EXECUTION_COLUMNS],
        [[e.get(key) for key, _ in EXECUTION_COLUMNS] for e in executions],
    )
    status_col = [key for key, _ in EXECUTION_COLUMNS].index("status") + 1
    for row in range(2, len(executions) + 2):
        cell = ws.cell(row=row, column=status_col)
        if cell.value in STATUS_FILLS:
            cell.fill = STATUS_FILLS[cell.value]
            cell.font = WHITE_FONT
    ws.freeze_panes = "A2"
    _auto_width(ws)


def _rtm_sheet(wb, coverage: list[dict]) -> None:
    ws = wb.create_sheet("RTM Coverage")
    _write_table(
        ws, 1, ["Requirement", "Title", "Covering test cases"],
        [[r["requirement_id"], r["title"], r["coverage_count"]] for r in coverage],
    )
    gap_fill = PatternFill(start_color="FDEDEC", end_color="FDEDEC", fill_type="solid")
    for row in range(2, len(coverage) + 2):
        if ws.cell(row=row, column=3).value == 0:
            for col in range(1, 4):
                ws.cell(row=row, column=col).fill = gap_fill
    ws.freeze_panes = "A2"
    _auto_width(ws)


def export_report_xlsx(report_id: str) -> tuple[io.BytesIO, str]:
    """
    Recompute a stored report from current data and render it as a workbook.

    Returns:
        (BytesIO buffer ready for a Flask Response, download filename)

    Raises:
        NotFoundError: no report with that id.
    """
    report, report_data = recompute_report(report_id)

    wb = Workbook()
    _summary_sheet(wb.active, report, report_data)
    if "test_executions" in report_data:
        _executions_sheet(wb, report_data["test_executions"])
    if "rtm_coverage" in report_data:
        _rtm_sheet(wb, report_data["rtm_coverage"])

    buf = io.BytesIO()
    wb.save(buf)
    buf.seek(0)
    logger.info("Report exported id=%s sheets=%d", report_id, len(wb.sheetnames))
    return buf, f"{report_id}.xlsx"
