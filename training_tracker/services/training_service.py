"""Catalog & delivery service: skills, courses, sessions, enrollments.

Transaction policy: every mutating function commits via ``db_commit()`` and
raises ``core.exceptions`` on failure; blueprints only translate.

Operations:
- Skill list / create / update
- TrainingCatalog list / get / create / update
- TrainingSession list / get (with seat occupancy) / create / calendar range
- TrainingEnrollment list / create / update / per-employee history
"""
import logging
from datetime import datetime, timezone

from training_tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from training_tracker.models import db
from training_tracker.models.audit import write_audit
from training_tracker.models.catalog import (
    CATALOG_TYPES,
    ENROLLMENT_STATUSES,
    SESSION_STATUSES,
    SESSION_TRAINER_TYPES,
    SKILL_CATEGORIES,
    TRAINER_TYPES,
    Skill,
    TrainingCatalog,
    TrainingEnrollment,
    TrainingSession,
)
from training_tracker.models.employee import Employee
from training_tracker.models.workflow import SEAT_HOLDING_STATUSES, Nomination
from training_tracker.services.seat_allocator import occupancy
from training_tracker.utils.helpers import db_commit, parse_datetime, parse_int, parse_text, require_fields

logger = logging.getLogger(__name__)


def _choice(value, allowed, field, default=None):
    if value in (None, ""):
        return default
    if value not in allowed:
        raise ValidationError(
            f"{field} must be one of: {', '.join(sorted(allowed))}",
            details={field: "invalid choice"},
        )
    return value


def _get(model, pk, label=None):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return obj


# ── Skills ───────────────────────────────────────────────────────────────


def list_skills(include_inactive=False):
    q = Skill.query
    if not include_inactive:
        q = q.filter(Skill.is_active.is_(True))
    return [s.to_dict() for s in q.order_by(Skill.name).all()]


def create_skill(data):
    require_fields(data, "name")
    skill = Skill(
        name=parse_text(data["name"], "name", required=True),
        category=_choice(data.get("category"), SKILL_CATEGORIES, "category", default="OTHER"),
        description=data.get("description", ""),
        is_active=bool(data.get("is_active", True)),
    )
    db.session.add(skill)
    db_commit()
    return skill.to_dict()


def update_skill(skill_id, data):
    skill = _get(Skill, skill_id)
    if "name" in data:
        require_fields(data, "name")
        skill.name = parse_text(data["name"], "name", required=True)
    if "category" in data:
        skill.category = _choice(data["category"], SKILL_CATEGORIES, "category", default=skill.category)
    if "description" in data:
        skill.description = data["description"] or ""
    if "is_active" in data:
        skill.is_active = bool(data["is_active"])
    db_commit()
    return skill.to_dict()


# ── Catalog ──────────────────────────────────────────────────────────────

_CATALOG_TEXT_FIELDS = (
    "description", "category", "compliance_standard", "prerequisites",
    "currency", "provider_name", "provider_contact", "location",
    "external_url", "trainer_name",
)


def list_catalog(type_=None, category=None):
    q = TrainingCatalog.query
    if type_:
        q = q.filter(TrainingCatalog.type == type_)
    if category:
        q = q.filter(TrainingCatalog.category == category)
    return [c.to_dict() for c in q.order_by(TrainingCatalog.title).all()]


def get_catalog(catalog_id):
    return _get(TrainingCatalog, catalog_id).to_dict()


def create_catalog(data, created_by=None):
    """Create a course.  ``cost`` is in minor units (cents)."""
    require_fields(data, "title", "type", "category", "duration_hours")
    entry = TrainingCatalog(
        title=parse_text(data["title"], "title", required=True),
        type=_choice(data["type"], CATALOG_TYPES, "type"),
        duration_hours=parse_int(data["duration_hours"], "duration_hours", minimum=1, required=True),
        validity_period_months=parse_int(data.get("validity_period_months"), "validity_period_months", minimum=1),
        is_required=bool(data.get("is_required", False)),
        cost=parse_int(data.get("cost"), "cost", minimum=0),
        trainer_type=_choice(data.get("trainer_type"), TRAINER_TYPES, "trainer_type"),
        created_by=created_by,
    )
    for field in _CATALOG_TEXT_FIELDS:
        if data.get(field) is not None:
            setattr(entry, field, data[field])
    db.session.add(entry)
    db.session.flush()
    write_audit(entity_type="training_catalog", entity_id=entry.id, action="create",
                performed_by=created_by, changes={"title": entry.title, "type": entry.type})
    db_commit()
    logger.info("Catalog entry %s created: %s", entry.id, entry.title)
    return entry.to_dict()


def update_catalog(catalog_id, data, updated_by=None):
    entry = _get(TrainingCatalog, catalog_id)
    changes = {}

    if "title" in data:
        require_fields(data, "title")
        data = {**data, "title": parse_text(data["title"], "title", required=True)}
    if "type" in data:
        _choice(data["type"], CATALOG_TYPES, "type")
    if "trainer_type" in data:
        _choice(data["trainer_type"], TRAINER_TYPES, "trainer_type")

    for field in ("title", "type", "trainer_type", "is_required", *_CATALOG_TEXT_FIELDS):
        if field in data and getattr(entry, field) != data[field]:
            changes[field] = {"old": getattr(entry, field), "new": data[field]}
            setattr(entry, field, data[field])
    for field, minimum in (("duration_hours", 1), ("validity_period_months", 1), ("cost", 0)):
        if field in data:
            value = parse_int(data[field], field, minimum=minimum, required=field == "duration_hours")
            if getattr(entry, field) != value:
                changes[field] = {"old": getattr(entry, field), "new": value}
                setattr(entry, field, value)

    if changes:
        write_audit(entity_type="training_catalog", entity_id=entry.id, action="update",
                    performed_by=updated_by, changes=changes)
    db_commit()
    return entry.to_dict()


# ── Sessions ─────────────────────────────────────────────────────────────


def session_occupancy(session):
    """Seats held in ``session``: enrollments + PENDING/APPROVED nominations."""
    enrolled = TrainingEnrollment.query.filter_by(session_id=session.id).count()
    holding = (
        Nomination.query
        .filter(Nomination.session_id == session.id,
                Nomination.status.in_([s.value for s in SEAT_HOLDING_STATUSES]))
        .all()
    )
    return occupancy(enrolled, holding)


def _session_dict(session, with_occupancy=False):
    d = session.to_dict()
    if with_occupancy:
        occupied = session_occupancy(session)
        d["current_occupancy"] = occupied
        d["seats_available"] = (
            session.max_participants is None or occupied < session.max_participants
        )
    return d


def list_sessions(catalog_id=None, status=None):
    q = TrainingSession.query
    if catalog_id:
        q = q.filter(TrainingSession.catalog_id == catalog_id)
    if status:
        q = q.filter(TrainingSession.status == status)
    return [s.to_dict() for s in q.order_by(TrainingSession.session_date).all()]


def get_session(session_id):
    return _session_dict(_get(TrainingSession, session_id), with_occupancy=True)


def sessions_between(start, end):
    """Sessions whose ``session_date`` falls in [start, end]."""
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None or end_dt is None:
        raise ValidationError("start and end must be ISO dates", details={"start": start, "end": end})
    if end_dt < start_dt:
        raise ValidationError("end must not be before start")
    q = (
        TrainingSession.query
        .filter(TrainingSession.session_date >= start_dt, TrainingSession.session_date <= end_dt)
        .order_by(TrainingSession.session_date)
    )
    return [s.to_dict() for s in q.all()]


def create_session(data, created_by=None):
    """Schedule a session; title/duration default from the catalog entry."""
    catalog = None
    catalog_id = parse_int(data.get("catalog_id"), "catalog_id")
    if catalog_id is not None:
        catalog = _get(TrainingCatalog, catalog_id)

    title = parse_text(data.get("title"), "title") or (catalog.title if catalog else "")
    if not title:
        raise ValidationError("title is required", details={"title": "required"})
    duration = data.get("duration_hours")
    if duration in (None, "") and catalog is not None:
        duration = catalog.duration_hours
    session_date = parse_datetime(data.get("session_date"))
    if session_date is None:
        raise ValidationError("session_date is required (ISO format)", details={"session_date": "required"})

    materials = data.get("materials") or []
    if not isinstance(materials, list) or not all(isinstance(m, str) for m in materials):
        raise ValidationError("materials must be a list of URLs", details={"materials": "list[str]"})

    session = TrainingSession(
        catalog_id=catalog_id,
        title=title,
        session_date=session_date,
        duration_hours=parse_int(duration, "duration_hours", minimum=1, required=True),
        venue=data.get("venue"),
        trainer_name=data.get("trainer_name"),
        trainer_type=_choice(data.get("trainer_type"), SESSION_TRAINER_TYPES, "trainer_type", default="internal"),
        max_participants=parse_int(data.get("max_participants"), "max_participants", minimum=1),
        status=_choice(data.get("status"), SESSION_STATUSES, "status", default="scheduled"),
        materials=materials,
        created_by=created_by,
    )
    db.session.add(session)
    db.session.flush()
    write_audit(entity_type="training_session", entity_id=session.id, action="create",
                performed_by=created_by,
                changes={"title": session.title, "max_participants": session.max_participants})
    db_commit()
    logger.info("Session %s scheduled: %s (max=%s)", session.id, session.title, session.max_participants)
    return session.to_dict()


# ── Enrollments ──────────────────────────────────────────────────────────


def list_enrollments(session_id=None, employee_id=None, status=None):
    q = TrainingEnrollment.query
    if session_id:
        q = q.filter(TrainingEnrollment.session_id == session_id)
    if employee_id:
        q = q.filter(TrainingEnrollment.employee_id == employee_id)
    if status:
        q = q.filter(TrainingEnrollment.status == status)
    return [e.to_dict(include_session=True) for e in q.order_by(TrainingEnrollment.id).all()]


def create_enrollment(data, performed_by=None):
    require_fields(data, "session_id", "employee_id")
    session_id = parse_int(data["session_id"], "session_id", required=True)
    employee_id = parse_int(data["employee_id"], "employee_id", required=True)
    _get(TrainingSession, session_id)
    _get(Employee, employee_id)

    existing = TrainingEnrollment.query.filter_by(session_id=session_id, employee_id=employee_id).first()
    if existing:
        raise ConflictError("TrainingEnrollment", "employee_id", employee_id,
                            message="Employee is already enrolled in this session")

    enrollment = TrainingEnrollment(
        session_id=session_id,
        employee_id=employee_id,
        status=_choice(data.get("status"), ENROLLMENT_STATUSES, "status", default="enrolled"),
        notes=data.get("notes"),
    )
    if enrollment.status == "completed":
        enrollment.completion_date = parse_datetime(data.get("completion_date")) or datetime.now(timezone.utc)
    db.session.add(enrollment)
    db.session.flush()
    write_audit(entity_type="training_enrollment", entity_id=enrollment.id, action="create",
                performed_by=performed_by,
                changes={"session_id": session_id, "employee_id": employee_id, "status": enrollment.status})
    db_commit()
    return enrollment.to_dict(include_session=True)


def update_enrollment(enrollment_id, data, performed_by=None):
    """Update attendance/completion.  Completing stamps ``completion_date``."""
    enrollment = _get(TrainingEnrollment, enrollment_id)
    changes = {}

    if "status" in data:
        status = _choice(data["status"], ENROLLMENT_STATUSES, "status", default=enrollment.status)
        if status != enrollment.status:
            changes["status"] = {"old": enrollment.status, "new": status}
            enrollment.status = status
    if "score" in data:
        score = parse_int(data["score"], "score", minimum=0)
        if score is not None and score > 100:
            raise ValidationError("score must be between 0 and 100", details={"score": "0-100"})
        changes["score"] = {"old": enrollment.score, "new": score}
        enrollment.score = score
    for field in ("certificate_url", "notes"):
        if field in data:
            changes[field] = {"old": getattr(enrollment, field), "new": data[field]}
            setattr(enrollment, field, data[field])

    if "completion_date" in data:
        enrollment.completion_date = parse_datetime(data["completion_date"])
    elif enrollment.status == "completed" and enrollment.completion_date is None:
        enrollment.completion_date = datetime.now(timezone.utc)

    if changes:
        write_audit(entity_type="training_enrollment", entity_id=enrollment.id, action="update",
                    performed_by=performed_by, changes=changes)
    db_commit()
    return enrollment.to_dict(include_session=True)
