"""
QA Testing Hub
Read-mostly reference entities: team members and test environments.
"""

from datetime import datetime, timezone

from qa_hub.models import db


class TeamMember(db.Model):
    """QA team member that test cases, plans and defects get assigned to."""

    __tablename__ = "team_members"

    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=True)
    role = db.Column(db.String(100), default="", comment="e.g. QA Lead, Automation Engineer")
    specialization = db.Column(db.String(200), default="")
    status = db.Column(db.String(20), default="Active", comment="Active | Inactive")

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "member_id": self.member_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "specialization": self.specialization,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<TeamMember {self.member_id}: {self.name}>"


class Environment(db.Model):
    """Deployment target where executions run (DEV / QA / Staging / Prod)."""

    __tablename__ = "test_environments"

    id = db.Column(db.Integer, primary_key=True)
    environment_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(50), default="", comment="Development | Testing | Staging | Production")
    url = db.Column(db.String(500), default="")
    status = db.Column(db.String(20), default="Available", comment="Available | In Use | Down")
    configuration = db.Column(db.Text, default="", comment="Free-form configuration notes")

    created_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "environment_id": self.environment_id,
            "name": self.name,
            "type": self.type,
            "url": self.url,
            "status": self.status,
            "configuration": self.configuration,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Environment {self.environment_id}: {self.name}>"
