"""
Nomination Seat Allocator.

Seat occupancy of a session = enrollments (any status) + nominations that
are PENDING or APPROVED.  A session with ``max_participants`` NULL is
uncapped.

Nomination lifecycle: PENDING → APPROVED | REJECTED | WAITLIST, decided once.

Both functions are pure; the caller holds the session row lock so that
check-and-reserve happens inside one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from training_tracker.models.workflow import SEAT_HOLDING_STATUSES, NominationStatus
from training_tracker.services.role_authorizer import BAD_STATUS, can_decide
from training_tracker.services.workflow_errors import WorkflowError


class NominationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    WAITLIST = "waitlist"


_ACTION_STATUS = {
    NominationAction.APPROVE: NominationStatus.APPROVED,
    NominationAction.REJECT: NominationStatus.REJECTED,
    NominationAction.WAITLIST: NominationStatus.WAITLIST,
}


@dataclass
class NominationUpdate:
    previous_status: NominationStatus
    status: NominationStatus
    decided_by: int
    decided_at: datetime
    reason: str | None = None

    def apply_to(self, nomination) -> None:
        nomination.status = self.status.value
        nomination.decided_by = self.decided_by
        nomination.decided_at = self.decided_at
        if self.reason is not None:
            nomination.reason = self.reason

    def changes(self) -> dict:
        d = {"status": {"old": self.previous_status.value, "new": self.status.value}}
        if self.reason is not None:
            d["reason"] = self.reason
        return d


def occupancy(enrollment_count: int, nominations, exclude_id=None) -> int:
    held = sum(
        1 for n in nominations
        if NominationStatus(n.status) in SEAT_HOLDING_STATUSES and (exclude_id is None or n.id != exclude_id)
    )
    return enrollment_count + held


def try_reserve(session, enrollment_count: int, nominations, exclude_id=None):
    """
    Check there is a free seat in ``session``.

    Returns:
        (occupied, None) when a seat is free (``occupied`` excludes the new
        one), or (None, WorkflowError[seats_full]).
    """
    occupied = occupancy(enrollment_count, nominations, exclude_id=exclude_id)
    limit = session.max_participants
    if limit is not None and occupied >= limit:
        return None, WorkflowError.seats_full(limit, occupied)
    return occupied, None


def decide(nomination, action: str, actor, reason: str | None = None, *,
           session=None, enrollment_count: int = 0, nominations=(), now: datetime | None = None):
    """
    Decide a PENDING nomination.

    Approval re-checks capacity against ``session`` / ``enrollment_count`` /
    ``nominations``, not counting ``nomination`` itself.

    Returns:
        (NominationUpdate, None) or (None, WorkflowError).
    """
    try:
        act = NominationAction(action)
    except ValueError:
        return None, WorkflowError.validation(f"Unknown action: {action}", action=action)

    if reason is not None and not isinstance(reason, str):
        return None, WorkflowError.validation("reason must be a string", field="reason")
    if act is NominationAction.REJECT and not (reason or "").strip():
        return None, WorkflowError.validation("A rejection reason is required", field="reason")

    decision = can_decide(actor, nomination, act.value)
    if not decision.allowed:
        if decision.reason == BAD_STATUS:
            return None, WorkflowError.invalid_transition(
                nomination.status, act.value, message="Nomination already decided",
            )
        return None, WorkflowError.forbidden("Only HR can decide nominations")

    if act is NominationAction.APPROVE and session is not None:
        _, err = try_reserve(session, enrollment_count, nominations, exclude_id=nomination.id)
        if err:
            return None, err

    cleaned = reason.strip() if reason and reason.strip() else None
    return NominationUpdate(
        previous_status=NominationStatus(nomination.status),
        status=_ACTION_STATUS[act],
        decided_by=actor.id,
        decided_at=now or datetime.now(timezone.utc),
        reason=cleaned,
    ), None
