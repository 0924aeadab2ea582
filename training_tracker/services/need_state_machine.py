"""
Training Need State Machine.

Legal status transitions, keyed by (current status, submission source,
action, actor role).  Anything not in ``NEED_TRANSITIONS`` is illegal; there
is no other place where need legality is decided.

    SUBMITTED    MANAGER   approve  hr_admin   → HR_APPROVED
    SUBMITTED    EMPLOYEE  approve  manager    → MGR_APPROVED
    SUBMITTED    EMPLOYEE  approve  hr_admin   → HR_APPROVED
    MGR_APPROVED EMPLOYEE  approve  hr_admin   → HR_APPROVED
    SUBMITTED    any       reject   manager    → REJECTED
    SUBMITTED    any       reject   hr_admin   → REJECTED
    MGR_APPROVED EMPLOYEE  reject   hr_admin   → REJECTED

Manager rows additionally require the manager to own the subject; that is
checked by role_authorizer.

Check order inside ``transition``:
    1. unknown action                 → validation_error
    2. reject reason blank or non-str → validation_error
    3. role / reporting line          → forbidden
    4. (status, source, action, role) → invalid_transition on lookup miss

``transition`` is pure: it returns a ``NeedUpdate`` describing the change,
it does not mutate the need.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum

from training_tracker.models.employee import Role
from training_tracker.models.workflow import TERMINAL_NEED_STATUSES, NeedStatus, SubmissionSource
from training_tracker.services.role_authorizer import ROLE_OR_SCOPE, actor_role, can_decide
from training_tracker.services.workflow_errors import WorkflowError


class NeedAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


_S = NeedStatus
_SRC = SubmissionSource

NEED_TRANSITIONS: dict[tuple[NeedStatus, SubmissionSource, NeedAction, Role], NeedStatus] = {
    # approve
    (_S.SUBMITTED, _SRC.MANAGER, NeedAction.APPROVE, Role.HR_ADMIN): _S.HR_APPROVED,
    (_S.SUBMITTED, _SRC.EMPLOYEE, NeedAction.APPROVE, Role.MANAGER): _S.MGR_APPROVED,
    (_S.SUBMITTED, _SRC.EMPLOYEE, NeedAction.APPROVE, Role.HR_ADMIN): _S.HR_APPROVED,
    (_S.MGR_APPROVED, _SRC.EMPLOYEE, NeedAction.APPROVE, Role.HR_ADMIN): _S.HR_APPROVED,
    # reject
    (_S.SUBMITTED, _SRC.EMPLOYEE, NeedAction.REJECT, Role.MANAGER): _S.REJECTED,
    (_S.SUBMITTED, _SRC.MANAGER, NeedAction.REJECT, Role.MANAGER): _S.REJECTED,
    (_S.SUBMITTED, _SRC.EMPLOYEE, NeedAction.REJECT, Role.HR_ADMIN): _S.REJECTED,
    (_S.SUBMITTED, _SRC.MANAGER, NeedAction.REJECT, Role.HR_ADMIN): _S.REJECTED,
    (_S.MGR_APPROVED, _SRC.EMPLOYEE, NeedAction.REJECT, Role.HR_ADMIN): _S.REJECTED,
}


@dataclass
class NeedUpdate:
    """Field changes produced by a legal transition.  ``None`` = untouched."""

    previous_status: NeedStatus
    status: NeedStatus
    status_reason: str | None = None
    manager_approved_by: int | None = None
    manager_approved_at: datetime | None = None
    hr_approved_by: int | None = None
    hr_approved_at: datetime | None = None
    decided_by: int | None = None
    decided_at: datetime | None = None

    def apply_to(self, need) -> None:
        need.status = self.status.value
        for f in fields(self):
            if f.name in ("previous_status", "status"):
                continue
            value = getattr(self, f.name)
            if value is not None:
                setattr(need, f.name, value)

    def changes(self) -> dict:
        """Audit diff: ``{field: {old, new}}`` style for status only."""
        d = {"status": {"old": self.previous_status.value, "new": self.status.value}}
        if self.status_reason is not None:
            d["status_reason"] = self.status_reason
        return d


def allowed_actions(need, actor, subject) -> list[str]:
    """Actions ``actor`` could legally take on ``need`` right now (UI hints)."""
    if NeedStatus(need.status) in TERMINAL_NEED_STATUSES:
        return []
    result = []
    for action in NeedAction:
        if not can_decide(actor, need, action.value, subject):
            continue
        if _lookup(need, action, actor) is not None:
            result.append(action.value)
    return result


def _lookup(need, action: NeedAction, actor) -> NeedStatus | None:
    role = actor_role(actor)
    if role is None:
        return None
    key = (NeedStatus(need.status), SubmissionSource(need.submission_source), action, role)
    return NEED_TRANSITIONS.get(key)


def transition(need, action: str, actor, subject, reason: str | None = None, *, now: datetime | None = None):
    """
    Compute the next state of ``need`` for ``action`` by ``actor``.

    Args:
        need: TrainingNeed (not mutated).
        action: "approve" | "reject".
        actor: Employee performing the action.
        subject: Employee the need is for.
        reason: Mandatory, non-blank, for "reject".
        now: Decision timestamp (defaults to current UTC time).

    Returns:
        (NeedUpdate, None) on success, (None, WorkflowError) otherwise.
    """
    try:
        act = NeedAction(action)
    except ValueError:
        return None, WorkflowError.validation(f"Unknown action: {action}", action=action)

    if reason is not None and not isinstance(reason, str):
        return None, WorkflowError.validation("reason must be a string", field="reason")
    if act is NeedAction.REJECT and not (reason or "").strip():
        return None, WorkflowError.validation("A rejection reason is required", field="reason")

    decision = can_decide(actor, need, act.value, subject)
    if not decision.allowed and decision.reason == ROLE_OR_SCOPE:
        return None, WorkflowError.forbidden(f"Not allowed to {act.value} this training need")

    next_status = _lookup(need, act, actor) if decision.allowed else None
    if next_status is None:
        return None, WorkflowError.invalid_transition(need.status, act.value)

    now = now or datetime.now(timezone.utc)
    update = NeedUpdate(previous_status=NeedStatus(need.status), status=next_status)

    if next_status is NeedStatus.MGR_APPROVED:
        update.manager_approved_by = actor.id
        update.manager_approved_at = now
    elif next_status is NeedStatus.HR_APPROVED:
        update.hr_approved_by = actor.id
        update.hr_approved_at = now
        update.decided_by = actor.id
        update.decided_at = now
    else:
        update.status_reason = reason.strip()
        update.decided_by = actor.id
        update.decided_at = now

    return update, None
