"""
QA Testing Hub
Report metadata model.

Only the metadata of a generated report is stored. The computed payload is
returned to the caller and recomputed live on export, so numbers follow the
underlying data rather than being frozen at generation time.
"""

from datetime import datetime, timezone

from qa_hub.models import db


REPORT_SECTIONS = (
    "executive_summary",
    "test_execution",
    "defect_analysis",
    "quality_metrics",
    "rtm_coverage",
)


class Report(db.Model):
    """Persisted record that a report was generated, with its parameters."""

    __tablename__ = "reports"

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    report_type = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    date_range_start = db.Column(db.Date, nullable=True)
    date_range_end = db.Column(db.Date, nullable=True)
    industry_filter = db.Column(db.String(100), nullable=True)
    phase_filter = db.Column(db.String(100), nullable=True)
    sections = db.Column(db.JSON, nullable=True, comment="Section names computed at generation")
    generated_by = db.Column(db.String(150), default="Current User")
    generated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    status = db.Column(db.String(20), default="Generated")

    def to_dict(self):
        return {
            "id": self.id,
            "report_id": self.report_id,
            "report_type": self.report_type,
            "title": self.title,
            "date_range_start": self.date_range_start.isoformat() if self.date_range_start else None,
            "date_range_end": self.date_range_end.isoformat() if self.date_range_end else None,
            "industry_filter": self.industry_filter,
            "phase_filter": self.phase_filter,
            "sections": self.sections or [],
            "generated_by": self.generated_by,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
            "status": self.status,
        }

    def __repr__(self):
        return f"<Report {self.report_id}: {self.title}>"
