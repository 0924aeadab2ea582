"""Read side of the audit trail."""
from training_tracker.core.exceptions import ValidationError
from training_tracker.models.audit import AUDIT_ENTITY_TYPES, AuditLog
from training_tracker.models.employee import Employee
from training_tracker.models import db

MAX_AUDIT_LIMIT = 1000


def list_audit_logs(limit=100, entity_type=None, entity_id=None):
    """Newest first, joined with the actor's name."""
    if entity_type and entity_type not in AUDIT_ENTITY_TYPES:
        raise ValidationError(
            f"entity_type must be one of: {', '.join(sorted(AUDIT_ENTITY_TYPES))}",
            details={"entity_type": "invalid choice"},
        )
    limit = max(1, min(int(limit), MAX_AUDIT_LIMIT))
    q = db.session.query(AuditLog, Employee).outerjoin(Employee, AuditLog.performed_by == Employee.id)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(AuditLog.entity_id == str(entity_id))
    rows = q.order_by(AuditLog.performed_at.desc(), AuditLog.id.desc()).limit(limit).all()

    result = []
    for log, actor in rows:
        d = log.to_dict()
        d["performed_by_name"] = actor.full_name if actor else None
        result.append(d)
    return result
