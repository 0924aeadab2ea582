"""Annual training plans.

Plan item lifecycle (transition table below):
    PLANNED → CONVERTED   convert (needs the session it became)
    PLANNED → CANCELLED   cancel

Converted and cancelled items are final; acting on them is a 409.
"""
import logging

from training_tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from training_tracker.models import db
from training_tracker.models.audit import write_audit
from training_tracker.models.catalog import Skill, TrainingSession
from training_tracker.models.planning import MONTHS, PLAN_ITEM_TYPES, PlanItemStatus, TrainingPlan, TrainingPlanItem
from training_tracker.utils.helpers import db_commit, parse_int, parse_text, require_fields

logger = logging.getLogger(__name__)

PLAN_ITEM_TRANSITIONS = {
    "convert": {"from": {PlanItemStatus.PLANNED}, "to": PlanItemStatus.CONVERTED},
    "cancel": {"from": {PlanItemStatus.PLANNED}, "to": PlanItemStatus.CANCELLED},
}


def _get_plan(plan_id):
    plan = db.session.get(TrainingPlan, plan_id)
    if plan is None:
        raise NotFoundError(resource="TrainingPlan", resource_id=plan_id)
    return plan


def _get_item(item_id):
    item = db.session.get(TrainingPlanItem, item_id)
    if item is None:
        raise NotFoundError(resource="TrainingPlanItem", resource_id=item_id)
    return item


# ── Plans ────────────────────────────────────────────────────────────────


def list_plans(year=None):
    q = TrainingPlan.query
    if year:
        q = q.filter(TrainingPlan.year == year)
    return [p.to_dict() for p in q.order_by(TrainingPlan.year.desc(), TrainingPlan.id).all()]


def create_plan(data, created_by=None):
    require_fields(data, "year", "name")
    year = parse_int(data["year"], "year", minimum=2000, required=True)
    plan = TrainingPlan(
        year=year,
        name=parse_text(data["name"], "name", required=True),
        description=data.get("description") or "",
        created_by=created_by,
    )
    db.session.add(plan)
    db_commit()
    logger.info("Training plan %s created for %s", plan.id, plan.year)
    return plan.to_dict()


# ── Items ────────────────────────────────────────────────────────────────


def list_items(plan_id):
    plan = _get_plan(plan_id)
    return [i.to_dict() for i in plan.items.order_by(TrainingPlanItem.id)]


def add_item(plan_id, data):
    _get_plan(plan_id)
    require_fields(data, "title")

    month = data.get("tentative_month") or None
    if month is not None and month not in MONTHS:
        raise ValidationError("tentative_month must be a month name", details={"tentative_month": month})
    item_type = (parse_text(data.get("type"), "type") or "INTERNAL").upper()
    if item_type not in PLAN_ITEM_TYPES:
        raise ValidationError("type must be INTERNAL or EXTERNAL", details={"type": item_type})
    skill_id = parse_int(data.get("skill_id"), "skill_id")
    if skill_id is not None and db.session.get(Skill, skill_id) is None:
        raise NotFoundError(resource="Skill", resource_id=skill_id)

    item = TrainingPlanItem(
        plan_id=plan_id,
        skill_id=skill_id,
        title=parse_text(data["title"], "title", required=True),
        tentative_month=month,
        expected_hours=parse_int(data.get("expected_hours"), "expected_hours", minimum=0),
        type=item_type,
        status=PlanItemStatus.PLANNED.value,
    )
    db.session.add(item)
    db_commit()
    return item.to_dict()


def _transition_item(item, action):
    rule = PLAN_ITEM_TRANSITIONS[action]
    current = PlanItemStatus(item.status)
    if current not in rule["from"]:
        raise ConflictError("TrainingPlanItem", "status", item.status,
                            message=f"Cannot '{action}' plan item from status '{item.status}'")
    item.status = rule["to"].value
    return current


def convert_item(item_id, session_id, performed_by=None):
    """Mark a PLANNED item as CONVERTED into ``session_id``."""
    item = _get_item(item_id)
    session_id = parse_int(session_id, "session_id", required=True)
    if db.session.get(TrainingSession, session_id) is None:
        raise NotFoundError(resource="TrainingSession", resource_id=session_id)

    previous = _transition_item(item, "convert")
    item.converted_to_session_id = session_id
    write_audit(entity_type="training_plan_item", entity_id=item.id, action="training_plan_item.convert",
                performed_by=performed_by,
                changes={"status": {"old": previous.value, "new": item.status}, "session_id": session_id})
    db_commit()
    logger.info("Plan item %s converted to session %s", item.id, session_id)
    return item.to_dict()


def cancel_item(item_id, performed_by=None):
    item = _get_item(item_id)
    previous = _transition_item(item, "cancel")
    write_audit(entity_type="training_plan_item", entity_id=item.id, action="update",
                performed_by=performed_by, changes={"status": {"old": previous.value, "new": item.status}})
    db_commit()
    return item.to_dict()
