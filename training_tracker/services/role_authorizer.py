"""
Role Authorizer: who may decide a training need or a nomination.

Single policy point for approve / reject / waitlist decisions.  Pure: reads
the actor, the target and (for needs) the employee the need is for, and
returns an ``AuthDecision``.  Never touches the database.

Reason codes:
    role_or_scope: the actor's role, or their reporting line to the
                    subject, does not permit this action
    bad_status:    the actor could act on this kind of target, but not
                    from its current status

Role/ownership is always evaluated before status, so a manager acting on
someone else's report is refused with ``role_or_scope`` whatever the
target's status.

Training needs:
    approve  hr_admin  from SUBMITTED or MGR_APPROVED (any source)
             manager   EMPLOYEE-sourced, SUBMITTED, subject reports to actor
    reject   hr_admin  from SUBMITTED or MGR_APPROVED
             manager   SUBMITTED, subject reports to actor

Nominations:
    approve / reject / waitlist   hr_admin only, PENDING only
"""

from __future__ import annotations

from dataclasses import dataclass

from training_tracker.models.employee import Role
from training_tracker.models.workflow import (
    NeedStatus,
    Nomination,
    NominationStatus,
    SubmissionSource,
    TrainingNeed,
)

ROLE_OR_SCOPE = "role_or_scope"
BAD_STATUS = "bad_status"

HR_DECIDABLE_NEED_STATUSES = frozenset({NeedStatus.SUBMITTED, NeedStatus.MGR_APPROVED})


@dataclass(frozen=True)
class AuthDecision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AuthDecision(True)
DENY_SCOPE = AuthDecision(False, ROLE_OR_SCOPE)
DENY_STATUS = AuthDecision(False, BAD_STATUS)


def actor_role(actor) -> Role | None:
    """Coerce ``actor.role`` to ``Role``; unknown or missing roles → None."""
    try:
        return Role(getattr(actor, "role", None))
    except ValueError:
        return None


def is_manager_of(actor, subject) -> bool:
    return (
        subject is not None
        and actor is not None
        and actor.id is not None
        and subject.manager_id == actor.id
    )


def can_decide(actor, target, action: str, subject=None) -> AuthDecision:
    """
    Decide whether ``actor`` may perform ``action`` on ``target``.

    Args:
        actor: Employee performing the action.
        target: TrainingNeed or Nomination.
        action: "approve" | "reject" | "waitlist".
        subject: For needs, the Employee the need is for (reporting line).
    """
    if isinstance(target, TrainingNeed):
        return _decide_need(actor, target, action, subject)
    if isinstance(target, Nomination):
        return _decide_nomination(actor, target)
    raise TypeError(f"No authorization policy for {type(target).__name__}")


def _decide_need(actor, need, action, subject) -> AuthDecision:
    role = actor_role(actor)
    status = NeedStatus(need.status)

    if role is Role.HR_ADMIN:
        return ALLOW if status in HR_DECIDABLE_NEED_STATUSES else DENY_STATUS

    if role is Role.MANAGER:
        if not is_manager_of(actor, subject):
            return DENY_SCOPE
        # Manager-initiated needs go straight to HR.
        if action == "approve" and SubmissionSource(need.submission_source) is not SubmissionSource.EMPLOYEE:
            return DENY_SCOPE
        return ALLOW if status is NeedStatus.SUBMITTED else DENY_STATUS

    return DENY_SCOPE


def _decide_nomination(actor, nomination) -> AuthDecision:
    if actor_role(actor) is not Role.HR_ADMIN:
        return DENY_SCOPE
    if NominationStatus(nomination.status) is not NominationStatus.PENDING:
        return DENY_STATUS
    return ALLOW
