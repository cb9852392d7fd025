"""
QA Testing Hub
Requirement model.

Requirements have an independent lifecycle: test cases reference them
through ``test_case_requirements`` but never own them.
"""

from datetime import datetime, timezone

from qa_hub.models import db


# ── Constants ────────────────────────────────────────────────────────────────

REQUIREMENT_CATEGORIES = {"Security", "Compliance", "Functional", "Performance", "Usability"}

REQUIREMENT_STATUSES = {"Active", "Draft", "Deprecated"}


class Requirement(db.Model):
    """Business, security or compliance requirement verified by test cases."""

    __tablename__ = "requirements"

    id = db.Column(db.Integer, primary_key=True)
    requirement_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    category = db.Column(db.String(50), nullable=True, index=True)
    priority = db.Column(db.String(20), nullable=True, comment="Critical | High | Medium | Low")
    status = db.Column(db.String(20), default="Active")

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "requirement_id": self.requirement_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Requirement {self.requirement_id}: {self.title}>"
