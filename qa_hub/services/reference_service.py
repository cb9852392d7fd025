"""Reference data — team members, environments and the starter catalog.

``seed_reference_data`` inserts the sample requirements, team members and
environments a fresh install ships with. It is idempotent: rows whose
external id already exists are left untouched.
"""
import logging

from qa_hub.models import db
from qa_hub.models.reference import Environment, TeamMember
from qa_hub.models.requirement import Requirement
from qa_hub.services.id_generator import reserve_id
from qa_hub.utils.helpers import atomic

logger = logging.getLogger(__name__)


SEED_REQUIREMENTS = [
    ("REQ-0001", "User Authentication & Authorization",
     "System must support secure user authentication", "Security", "Critical"),
    ("REQ-0002", "Data Encryption & Security",
     "All sensitive data must be encrypted", "Security", "Critical"),
    ("REQ-0003", "Role-Based Access Control",
     "Implement RBAC for system access", "Security", "High"),
    ("REQ-0004", "Audit Trail & Logging",
     "Comprehensive audit logging required", "Compliance", "High"),
    ("REQ-0005", "HIPAA Compliance",
     "Healthcare applications must be HIPAA compliant", "Compliance", "Critical"),
    ("REQ-0006", "PCI-DSS Compliance",
     "Payment processing must meet PCI-DSS", "Compliance", "Critical"),
]

SEED_TEAM = [
    ("TM-001", "Sarah Johnson", "sarah.j@qatest.com", "Senior QA Engineer", "Real Estate"),
    ("TM-002", "Michael Chen", "michael.c@qatest.com", "QA Lead", "Healthcare"),
    ("TM-003", "Alex Rodriguez", "alex.r@qatest.com", "QA Engineer", "AI/ML"),
    ("TM-004", "David Kumar", "david.k@qatest.com", "Senior QA Engineer", "Brokerage"),
    ("TM-005", "Emma Wilson", "emma.w@qatest.com", "QA Engineer", "Food & Beverage"),
]

SEED_ENVIRONMENTS = [
    ("ENV-001", "Development", "Development", "https://dev.qatest.com"),
    ("ENV-002", "QA Testing", "Testing", "https://qa.qatest.com"),
    ("ENV-003", "Staging", "Staging", "https://staging.qatest.com"),
    ("ENV-004", "Production", "Production", "https://qatest.com"),
]


def list_team_members():
    """Active team members, alphabetical."""
    q = TeamMember.query.filter_by(status="Active").order_by(TeamMember.name.asc())
    return [m.to_dict() for m in q.all()]


def list_environments():
    return [e.to_dict() for e in Environment.query.order_by(Environment.name.asc()).all()]


def _existing(column):
    return {row[0] for row in db.session.query(column).all()}


def seed_reference_data():
    """Insert missing starter rows. Returns counts of rows added per kind."""
    added = {"requirements": 0, "team_members": 0, "environments": 0}

    with atomic("ReferenceData", "seed reference data"):
        known = _existing(Requirement.requirement_id)
        for req_id, title, description, category, priority in SEED_REQUIREMENTS:
            if req_id in known:
                continue
            db.session.add(Requirement(
                requirement_id=req_id, title=title, description=description,
                category=category, priority=priority,
            ))
            added["requirements"] += 1
            reserve_id(req_id)

        known = _existing(TeamMember.member_id)
        for member_id, name, email, role, specialization in SEED_TEAM:
            if member_id in known:
                continue
            db.session.add(TeamMember(
                member_id=member_id, name=name, email=email,
                role=role, specialization=specialization,
            ))
            added["team_members"] += 1

        known = _existing(Environment.environment_id)
        for env_id, name, env_type, url in SEED_ENVIRONMENTS:
            if env_id in known:
                continue
            db.session.add(Environment(
                environment_id=env_id, name=name, type=env_type, url=url,
            ))
            added["environments"] += 1

    logger.info("Reference data seeded: %s", added)
    return added
