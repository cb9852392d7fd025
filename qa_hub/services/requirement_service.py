"""Requirement catalog — list, detail and create.

Requirements are referenced by test cases but have their own lifecycle;
nothing here touches test_case_requirements.
"""
import logging

from qa_hub.core.exceptions import ConflictError, NotFoundError
from qa_hub.models import db
from qa_hub.models.requirement import REQUIREMENT_CATEGORIES, REQUIREMENT_STATUSES, Requirement
from qa_hub.models.testing import PRIORITIES, TestCaseRequirementLink
from qa_hub.services.id_generator import new_id, reserve_id
from qa_hub.services.testing_service import apply_equality_filters
from qa_hub.utils.helpers import atomic, check_choice, require_fields, text_field

logger = logging.getLogger(__name__)

REQUIREMENT_FILTERS = ("category", "priority", "status")


def list_requirements(filters=None):
    """All requirements ordered by requirement_id."""
    q = apply_equality_filters(Requirement.query, Requirement, filters, REQUIREMENT_FILTERS)
    return [r.to_dict() for r in q.order_by(Requirement.requirement_id.asc()).all()]


def get_requirement(requirement_id):
    """Requirement detail plus the ids of the test cases that cover it."""
    req = Requirement.query.filter_by(requirement_id=requirement_id).first()
    if req is None:
        raise NotFoundError("Requirement", requirement_id)
    covering = [
        row[0]
        for row in db.session.query(TestCaseRequirementLink.test_case_id)
        .filter(TestCaseRequirementLink.requirement_id == requirement_id)
        .order_by(TestCaseRequirementLink.test_case_id)
        .all()
    ]
    result = req.to_dict()
    result["covering_test_case_ids"] = covering
    result["coverage_count"] = len(covering)
    return result


def create_requirement(data):
    """Create a requirement; ``requirement_id`` is generated unless supplied.

    Raises:
        ValidationError: title missing or invalid category/priority/status.
        ConflictError: the supplied requirement_id already exists.
    """
    require_fields(data, ("title",))
    title = text_field(data, "title")
    check_choice(data.get("category") or None, "category", REQUIREMENT_CATEGORIES)
    check_choice(data.get("priority") or None, "priority", PRIORITIES)
    check_choice(data.get("status") or None, "status", REQUIREMENT_STATUSES)

    explicit_id = str(data.get("requirement_id") or "").strip() or None
    if explicit_id and Requirement.query.filter_by(requirement_id=explicit_id).count():
        raise ConflictError("Requirement", "requirement_id", explicit_id)

    with atomic("Requirement", "create requirement"):
        if explicit_id:
            requirement_id = explicit_id
            reserve_id(explicit_id)
        else:
            requirement_id = new_id("REQ")
        db.session.add(Requirement(
            requirement_id=requirement_id,
            title=title,
            description=data.get("description") or "",
            category=data.get("category") or None,
            priority=data.get("priority") or None,
            status=data.get("status") or "Active",
        ))

    logger.info("Requirement created id=%s", requirement_id)
    return requirement_id
