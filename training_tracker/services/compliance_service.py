"""Compliance service: requirement mapping and the HR compliance dashboard.

Dashboard rules:
- overall_compliance = completed enrollments
  / (employees × COMPLIANCE_REQUIRED_TRAININGS_PER_EMPLOYEE) × 100,
  rounded to one decimal; 0 when there are no employees.
- pending_trainings = enrollments still ``enrolled``.
- expiring_certificates = completed enrollments of courses with a validity
  period whose expiry falls in the next ``EXPIRY_WINDOW_DAYS`` days.
- active_employees = every directory entry, whatever the role.

An employee is "Compliant" once they have at least one completed training.
"""
import calendar
import logging
from datetime import datetime, timedelta, timezone

from flask import current_app

from training_tracker.core.exceptions import NotFoundError, ValidationError
from training_tracker.models import db
from training_tracker.models.audit import write_audit
from training_tracker.models.catalog import TrainingCatalog, TrainingEnrollment, TrainingSession
from training_tracker.models.compliance import REQUIREMENT_FREQUENCIES, ComplianceRequirement
from training_tracker.models.employee import ROLES, Employee, Role
from training_tracker.utils.helpers import as_utc, db_commit, parse_int, require_fields

logger = logging.getLogger(__name__)

EXPIRY_WINDOW_DAYS = 30
UNASSIGNED_DEPARTMENT = "Unassigned"

_REQUIREMENT_FIELDS = ("standard", "requirement", "description", "frequency", "department", "role",
                       "training_catalog_id", "is_active")


def add_months(moment, months):
    """Calendar-aware month arithmetic (Jan 31 + 1 month → Feb 28/29)."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


# ── Requirements CRUD ────────────────────────────────────────────────────


def _clean_requirement(data, partial=False):
    mandatory = ("standard", "requirement")
    require_fields(data, *(f for f in mandatory if not partial or f in data))

    cleaned = {}
    for field in _REQUIREMENT_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == "frequency" and value and value not in REQUIREMENT_FREQUENCIES:
            raise ValidationError(
                f"frequency must be one of: {', '.join(sorted(REQUIREMENT_FREQUENCIES))}",
                details={"frequency": "invalid choice"},
            )
        if field == "role" and value and value not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(sorted(ROLES))}",
                                  details={"role": "invalid choice"})
        if field == "training_catalog_id":
            value = parse_int(value, field)
            if value is not None and db.session.get(TrainingCatalog, value) is None:
                raise NotFoundError(resource="TrainingCatalog", resource_id=value)
        if field == "is_active":
            value = bool(value)
        elif isinstance(value, str):
            value = value.strip() or None
        cleaned[field] = value
    return cleaned


def list_requirements(active_only=False):
    q = ComplianceRequirement.query
    if active_only:
        q = q.filter(ComplianceRequirement.is_active.is_(True))
    return [r.to_dict() for r in q.order_by(ComplianceRequirement.standard, ComplianceRequirement.id).all()]


def create_requirement(data, performed_by=None):
    fields = _clean_requirement(data)
    fields.setdefault("is_active", True)
    req = ComplianceRequirement(**fields)
    db.session.add(req)
    db.session.flush()
    write_audit(entity_type="compliance_requirement", entity_id=req.id, action="create",
                performed_by=performed_by, changes={"standard": req.standard, "requirement": req.requirement})
    db_commit()
    return req.to_dict()


def update_requirement(requirement_id, data, performed_by=None):
    req = db.session.get(ComplianceRequirement, requirement_id)
    if req is None:
        raise NotFoundError(resource="ComplianceRequirement", resource_id=requirement_id)
    changes = {}
    for field, value in _clean_requirement(data, partial=True).items():
        if getattr(req, field) != value:
            changes[field] = {"old": getattr(req, field), "new": value}
            setattr(req, field, value)
    if changes:
        write_audit(entity_type="compliance_requirement", entity_id=req.id, action="update",
                    performed_by=performed_by, changes=changes)
    db_commit()
    return req.to_dict()


def delete_requirement(requirement_id, performed_by=None):
    req = db.session.get(ComplianceRequirement, requirement_id)
    if req is None:
        raise NotFoundError(resource="ComplianceRequirement", resource_id=requirement_id)
    write_audit(entity_type="compliance_requirement", entity_id=req.id, action="delete",
                performed_by=performed_by, changes={"standard": req.standard, "requirement": req.requirement})
    db.session.delete(req)
    db_commit()


# ── Dashboard ────────────────────────────────────────────────────────────


def _expiry_of(completion_date, validity_months):
    if completion_date is None or not validity_months:
        return None
    return add_months(as_utc(completion_date), validity_months)


def _completed_with_validity():
    return (
        db.session.query(TrainingEnrollment, TrainingCatalog.validity_period_months)
        .join(TrainingSession, TrainingEnrollment.session_id == TrainingSession.id)
        .join(TrainingCatalog, TrainingSession.catalog_id == TrainingCatalog.id)
        .filter(TrainingEnrollment.status == "completed")
        .filter(TrainingCatalog.validity_period_months.isnot(None))
        .all()
    )


def compliance_metrics(now=None):
    now = now or datetime.now(timezone.utc)
    required = current_app.config.get("COMPLIANCE_REQUIRED_TRAININGS_PER_EMPLOYEE", 5)

    employee_count = Employee.query.filter(Employee.role == Role.EMPLOYEE.value).count()
    active_employees = Employee.query.count()
    pending = TrainingEnrollment.query.filter(TrainingEnrollment.status == "enrolled").count()
    completed = TrainingEnrollment.query.filter(TrainingEnrollment.status == "completed").count()

    overall = (completed / (employee_count * required)) * 100 if employee_count and required else 0

    window_end = now + timedelta(days=EXPIRY_WINDOW_DAYS)
    expiring = 0
    for enrollment, validity in _completed_with_validity():
        expiry = _expiry_of(enrollment.completion_date, validity)
        if expiry is not None and now <= expiry <= window_end:
            expiring += 1

    return {
        "overall_compliance": round(overall, 1),
        "pending_trainings": pending,
        "expiring_certificates": expiring,
        "active_employees": active_employees,
    }


def employee_compliance_status():
    """One row per ``employee``-role directory entry with their last completed training."""
    rows = []
    employees = (
        Employee.query.filter(Employee.role == Role.EMPLOYEE.value)
        .order_by(Employee.last_name, Employee.first_name, Employee.id)
        .all()
    )
    for emp in employees:
        last = (
            db.session.query(TrainingEnrollment, TrainingSession, TrainingCatalog.validity_period_months)
            .join(TrainingSession, TrainingEnrollment.session_id == TrainingSession.id)
            .outerjoin(TrainingCatalog, TrainingSession.catalog_id == TrainingCatalog.id)
            .filter(TrainingEnrollment.employee_id == emp.id, TrainingEnrollment.status == "completed")
            .order_by(TrainingEnrollment.completion_date.desc().nullslast(), TrainingEnrollment.id.desc())
            .first()
        )
        next_due = None
        if last is not None:
            enrollment, session, validity = last
            expiry = _expiry_of(enrollment.completion_date, validity)
            next_due = expiry.date().isoformat() if expiry else None
        rows.append({
            "employee_id": emp.id,
            "employee_name": emp.full_name,
            "department": emp.department or UNASSIGNED_DEPARTMENT,
            "compliance_status": "Compliant" if last is not None else "Non-Compliant",
            "last_training": last[1].title if last is not None else None,
            "next_due": next_due,
        })
    return rows
