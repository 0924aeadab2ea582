"""Training providers: vendors and the trainers who deliver sessions.

INTERNAL trainers are linked to an employee, EXTERNAL trainers to a vendor.
Switching a trainer's type clears the link that no longer applies.

Updates validate the whole payload before touching the row, so a rejected
request leaves nothing dirty in the session.
"""
import logging

from training_tracker.core.exceptions import NotFoundError, ValidationError
from training_tracker.models import db
from training_tracker.models.audit import write_audit
from training_tracker.models.employee import Employee
from training_tracker.models.provider import TRAINER_KINDS, Trainer, Vendor
from training_tracker.utils.helpers import db_commit, normalize_email, parse_int, parse_text, require_fields

logger = logging.getLogger(__name__)

_VENDOR_TEXT_FIELDS = ("contact_name", "phone", "gst_number", "address")
_TRAINER_TEXT_FIELDS = ("phone", "specialization")


def _get(model, pk):
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    return obj


def _contact_values(data, text_fields):
    """Validated ``{field: value}`` for the contact fields present in ``data``."""
    values = {field: parse_text(data[field], field) or None for field in text_fields if field in data}
    if "name" in data:
        values["name"] = parse_text(data["name"], "name", required=True)
    if "email" in data:
        email = parse_text(data["email"], "email")
        values["email"] = normalize_email(email) if email else None
    if "is_active" in data:
        values["is_active"] = bool(data["is_active"])
    return values


def _assign(obj, values):
    """Set ``values`` on ``obj``; returns the ``{field: {old, new}}`` diff."""
    changes = {}
    for field, value in values.items():
        if getattr(obj, field) != value:
            changes[field] = {"old": getattr(obj, field), "new": value}
            setattr(obj, field, value)
    return changes


# ── Vendors ──────────────────────────────────────────────────────────────


def list_vendors(include_inactive=False):
    q = Vendor.query
    if not include_inactive:
        q = q.filter(Vendor.is_active.is_(True))
    return [v.to_dict() for v in q.order_by(Vendor.name, Vendor.id).all()]


def create_vendor(data, created_by=None):
    require_fields(data, "name")
    vendor = Vendor(is_active=True)
    _assign(vendor, _contact_values(data, _VENDOR_TEXT_FIELDS))
    db.session.add(vendor)
    db.session.flush()
    write_audit(entity_type="vendor", entity_id=vendor.id, action="create",
                performed_by=created_by, changes={"name": vendor.name})
    db_commit()
    logger.info("Vendor %s created: %s", vendor.id, vendor.name)
    return vendor.to_dict()


def update_vendor(vendor_id, data, updated_by=None):
    vendor = _get(Vendor, vendor_id)
    changes = _assign(vendor, _contact_values(data, _VENDOR_TEXT_FIELDS))
    if changes:
        write_audit(entity_type="vendor", entity_id=vendor.id, action="update",
                    performed_by=updated_by, changes=changes)
    db_commit()
    return vendor.to_dict()


# ── Trainers ─────────────────────────────────────────────────────────────


def _trainer_kind(value):
    kind = parse_text(value, "type", required=True).upper()
    if kind not in TRAINER_KINDS:
        raise ValidationError("type must be INTERNAL or EXTERNAL", details={"type": "invalid choice"})
    return kind


def _resolve_link(kind, data, trainer=None):
    """``{"employee_id", "vendor_id"}`` for a trainer of ``kind``; the unused side is None.

    An existing trainer keeps its current link unless the payload names a
    new one or the type changes.
    """
    keep = trainer is not None and trainer.type == kind
    if kind == "INTERNAL":
        raw = data.get("employee_id", trainer.employee_id if keep else None)
        employee_id = parse_int(raw, "employee_id", required=True)
        _get(Employee, employee_id)
        return {"employee_id": employee_id, "vendor_id": None}
    raw = data.get("vendor_id", trainer.vendor_id if keep else None)
    vendor_id = parse_int(raw, "vendor_id", required=True)
    _get(Vendor, vendor_id)
    return {"employee_id": None, "vendor_id": vendor_id}


def list_trainers(trainer_type=None, vendor_id=None, include_inactive=False):
    q = Trainer.query
    if trainer_type:
        q = q.filter(Trainer.type == trainer_type.upper())
    if vendor_id:
        q = q.filter(Trainer.vendor_id == vendor_id)
    if not include_inactive:
        q = q.filter(Trainer.is_active.is_(True))
    return [t.to_dict() for t in q.order_by(Trainer.name, Trainer.id).all()]


def create_trainer(data, created_by=None):
    require_fields(data, "type", "name")
    kind = _trainer_kind(data["type"])
    values = {"type": kind, **_resolve_link(kind, data), **_contact_values(data, _TRAINER_TEXT_FIELDS)}

    trainer = Trainer(is_active=True)
    _assign(trainer, values)
    db.session.add(trainer)
    db.session.flush()
    write_audit(entity_type="trainer", entity_id=trainer.id, action="create", performed_by=created_by,
                changes={"name": trainer.name, "type": kind,
                         "employee_id": trainer.employee_id, "vendor_id": trainer.vendor_id})
    db_commit()
    logger.info("Trainer %s created (%s)", trainer.id, kind)
    return trainer.to_dict()


def update_trainer(trainer_id, data, updated_by=None):
    trainer = _get(Trainer, trainer_id)
    values = _contact_values(data, _TRAINER_TEXT_FIELDS)
    if {"type", "employee_id", "vendor_id"} & data.keys():
        kind = _trainer_kind(data["type"]) if "type" in data else trainer.type
        values.update(type=kind, **_resolve_link(kind, data, trainer))

    changes = _assign(trainer, values)
    if changes:
        write_audit(entity_type="trainer", entity_id=trainer.id, action="update",
                    performed_by=updated_by, changes=changes)
    db_commit()
    return trainer.to_dict()
