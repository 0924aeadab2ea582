"""
Training Compliance Tracker
Audit domain model.

Models:
    - AuditLog: immutable, append-only trail of workflow decisions and
      administrative changes.
"""

import json
from datetime import datetime, timezone

from flask import has_request_context, request

from training_tracker.models import db

# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_ENTITY_TYPES = {
    "training_need", "nomination",
    "training_catalog", "training_session", "training_enrollment",
    "compliance_requirement", "training_plan_item", "employee", "department",
    "vendor", "trainer", "evidence_attachment",
}

AUDIT_ACTIONS = {
    # Training need workflow
    "training_need.submit",
    "training_need.approve",
    "training_need.reject",
    # Nomination workflow
    "nomination.submit",
    "nomination.approve",
    "nomination.reject",
    "nomination.waitlist",
    # Planning
    "training_plan_item.convert",
    # Generic
    "create",
    "update",
    "delete",
}


class AuditLog(db.Model):
    """
    Immutable audit trail.

    One row per action.  ``changes_json`` carries a ``{field: {old, new}}``
    snapshot for status changes, or the created payload for ``create``.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_action", "action"),
        db.Index("idx_audit_ts", "performed_at"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Polymorphic entity reference
    entity_type = db.Column(
        db.String(40), nullable=False,
        comment="training_need | nomination | training_session | …",
    )
    entity_id = db.Column(db.String(36), nullable=False)

    action = db.Column(
        db.String(60), nullable=False,
        comment="training_need.approve | nomination.waitlist | create | …",
    )
    changes_json = db.Column(db.Text, default="{}")

    performed_by = db.Column(
        db.Integer,
        db.ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    performed_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)

    # ── Helpers ──────────────────────────────────────────────────────────

    @property
    def changes(self) -> dict:
        try:
            return json.loads(self.changes_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "changes": self.changes,
            "performed_by": self.performed_by,
            "performed_at": self.performed_at.isoformat() if self.performed_at else None,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_audit(
    *,
    entity_type: str,
    entity_id,
    action: str,
    performed_by: int | None = None,
    changes: dict | None = None,
) -> AuditLog:
    """
    Append a single audit row.  Uses ``flush`` so callers keep
    transaction control.

    Client address and user agent are picked up from the active request,
    if any.
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = (request.headers.get("User-Agent") or "")[:500] or None

    log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        performed_by=performed_by,
        changes_json=json.dumps(changes or {}, default=str),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(log)
    db.session.flush()
    return log
