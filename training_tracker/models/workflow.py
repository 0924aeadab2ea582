"""
Training Compliance Tracker
Approval workflow models: training needs and session nominations.

Models:
    - TrainingNeed: request (by or for an employee) for training in a skill.
      Approval path depends on submission_source:
        EMPLOYEE → SUBMITTED → [MGR_APPROVED] → HR_APPROVED
        MANAGER  → SUBMITTED → HR_APPROVED
      Either path may end in REJECTED.
    - Nomination: request to reserve a seat for an employee in a session.
      PENDING → APPROVED | REJECTED | WAITLIST, decided exactly once.

Status columns hold plain strings; the enums below are the closed set of
legal values.  Legal transitions live in services/need_state_machine.py and
services/seat_allocator.py only.
"""

from datetime import datetime, timezone
from enum import Enum

from training_tracker.models import db


# ── Enumerations ─────────────────────────────────────────────────────────────

class NeedStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    MGR_APPROVED = "MGR_APPROVED"
    HR_APPROVED = "HR_APPROVED"
    REJECTED = "REJECTED"
    PLANNED = "PLANNED"


class SubmissionSource(str, Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"


class Urgency(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class NeedType(str, Enum):
    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"
    ANY = "ANY"


class NominationStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    WAITLIST = "WAITLIST"


class NominationSource(str, Enum):
    SELF = "SELF"
    MANAGER = "MANAGER"
    HR = "HR"


TERMINAL_NEED_STATUSES = frozenset({NeedStatus.HR_APPROVED, NeedStatus.REJECTED, NeedStatus.PLANNED})

# Nominations that hold a seat in their session
SEAT_HOLDING_STATUSES = frozenset({NominationStatus.PENDING, NominationStatus.APPROVED})

PREFERRED_QUARTERS = {"Q1", "Q2", "Q3", "Q4"}


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════════════════════
#  TRAINING NEED
# ═══════════════════════════════════════════════════════════════════════════

class TrainingNeed(db.Model):
    """
    A training need awaiting (or past) approval.

    Business rules:
    - Created SUBMITTED by the requester; mutated only by approve / reject.
    - MANAGER-sourced needs never visit MGR_APPROVED.
    - status_reason is set on rejection and is never empty there.
    - decided_by / decided_at are stamped only on the final decision
      (HR approval or rejection), not on the manager stage.
    """

    __tablename__ = "training_needs"

    id = db.Column(db.Integer, primary_key=True)
    requested_by_user_id = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    for_employee_id = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    submission_source = db.Column(
        db.String(20), nullable=False, default=SubmissionSource.EMPLOYEE.value,
        comment="EMPLOYEE | MANAGER, determines approval path length",
    )

    skill_id = db.Column(db.Integer, db.ForeignKey("skills.id", ondelete="SET NULL"), nullable=True, index=True)
    title = db.Column(db.String(300), nullable=True)
    justification = db.Column(db.Text, default="")
    urgency = db.Column(db.String(20), nullable=False, default=Urgency.MEDIUM.value)
    type = db.Column(db.String(20), nullable=False, default=NeedType.ANY.value)
    preferred_quarter = db.Column(db.String(2), nullable=True)
    preferred_month = db.Column(db.String(20), nullable=True)

    status = db.Column(db.String(20), nullable=False, default=NeedStatus.SUBMITTED.value, index=True)
    status_reason = db.Column(db.Text, nullable=True)

    manager_approved_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    manager_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    hr_approved_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    hr_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    decided_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "requested_by_user_id": self.requested_by_user_id,
            "for_employee_id": self.for_employee_id,
            "submission_source": self.submission_source,
            "skill_id": self.skill_id,
            "title": self.title,
            "justification": self.justification,
            "urgency": self.urgency,
            "type": self.type,
            "preferred_quarter": self.preferred_quarter,
            "preferred_month": self.preferred_month,
            "status": self.status,
            "status_reason": self.status_reason,
            "manager_approved_by": self.manager_approved_by,
            "manager_approved_at": _iso(self.manager_approved_at),
            "hr_approved_by": self.hr_approved_by,
            "hr_approved_at": _iso(self.hr_approved_at),
            "decided_by": self.decided_by,
            "decided_at": _iso(self.decided_at),
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<TrainingNeed #{self.id} {self.submission_source} {self.status}>"


# ═══════════════════════════════════════════════════════════════════════════
#  NOMINATION
# ═══════════════════════════════════════════════════════════════════════════

class Nomination(db.Model):
    """
    Seat request for a session, kept separate from enrollments so it can be
    approved, rejected or waitlisted by HR.

    A PENDING or APPROVED nomination counts against the session's capacity.
    """

    __tablename__ = "nominations"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.Integer, db.ForeignKey("training_sessions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    employee_id = db.Column(
        db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    source = db.Column(db.String(20), nullable=False, default=NominationSource.SELF.value,
                       comment="SELF | MANAGER | HR")
    status = db.Column(db.String(20), nullable=False, default=NominationStatus.PENDING.value, index=True)
    decided_by = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reason = db.Column(db.Text, nullable=True, comment="rejection or waitlist reason")

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        db.Index("ix_nominations_session_status", "session_id", "status"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "session_id": self.session_id,
            "employee_id": self.employee_id,
            "source": self.source,
            "status": self.status,
            "decided_by": self.decided_by,
            "decided_at": _iso(self.decided_at),
            "reason": self.reason,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Nomination #{self.id} session={self.session_id} {self.status}>"
