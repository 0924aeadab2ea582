"""
Workflow Service: training-need and nomination approval.

Orchestrates role_authorizer, need_state_machine and seat_allocator against
a ``WorkflowStorage``.  Every write operation is one unit of work:

    load (row-locked) → authorize → transition → persist → audit → commit

Expected refusals roll the unit of work back and come back as
``(None, WorkflowError)``; success is ``(dict, None)``.  Only
``StorageError`` is raised.

The acting employee is always passed in explicitly as ``actor_id``.

Usage:
    service = WorkflowService(SqlAlchemyWorkflowStorage())
    need, err = service.decide_need(12, "approve", actor_id=3)
"""

from __future__ import annotations

import logging

from training_tracker.models.employee import Role
from training_tracker.models.workflow import (
    PREFERRED_QUARTERS,
    SEAT_HOLDING_STATUSES,
    NeedStatus,
    NeedType,
    Nomination,
    NominationSource,
    NominationStatus,
    SubmissionSource,
    TrainingNeed,
    Urgency,
)
from training_tracker.services import need_state_machine, seat_allocator
from training_tracker.services.role_authorizer import actor_role, is_manager_of
from training_tracker.services.workflow_errors import ErrorKind, WorkflowError
from training_tracker.services.workflow_storage import SqlAlchemyWorkflowStorage, WorkflowStorage

logger = logging.getLogger(__name__)


def _as_int(value, field: str):
    """(int, None) or (None, WorkflowError); ``bool`` is rejected."""
    if isinstance(value, bool):
        return None, WorkflowError.validation(f"{field} must be an integer", field=field)
    try:
        return int(value), None
    except (TypeError, ValueError):
        return None, WorkflowError.validation(f"{field} must be an integer", field=field)


def _as_text(value, field: str):
    """(stripped str, None) or (None, WorkflowError); None reads as ""."""
    if value is None:
        return "", None
    if not isinstance(value, str):
        return None, WorkflowError.validation(f"{field} must be a string", field=field)
    return value.strip(), None


def _as_enum(enum_cls, value, default, field: str):
    if value in (None, ""):
        return default, None
    try:
        return enum_cls(str(value).upper()), None
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        return None, WorkflowError.validation(f"{field} must be one of: {allowed}", field=field)


def _may_act_for(actor, subject) -> bool:
    """Employees act for themselves, managers also for direct reports, HR for anyone."""
    role = actor_role(actor)
    if role is Role.HR_ADMIN:
        return True
    if subject.id == actor.id:
        return True
    return role is Role.MANAGER and is_manager_of(actor, subject)


class WorkflowService:
    """Approval workflow over a storage port."""

    def __init__(self, storage: WorkflowStorage | None = None) -> None:
        self.storage = storage or SqlAlchemyWorkflowStorage()

    # ═════════════════════════════════════════════════════════════════════
    # Training needs
    # ═════════════════════════════════════════════════════════════════════

    def submit_need(self, actor_id: int, payload: dict):
        """
        Create a SUBMITTED training need.

        ``submission_source`` is MANAGER when the actor is a manager and
        EMPLOYEE otherwise; it is never taken from the payload.
        """
        payload = payload or {}
        if not isinstance(payload, dict):
            return None, WorkflowError.validation("JSON object expected", field="body")
        actor = self.storage.get_employee(actor_id)
        if actor is None:
            return None, WorkflowError.not_found("Employee", actor_id)

        for_employee_id = actor.id
        if payload.get("for_employee_id") not in (None, ""):
            for_employee_id, err = _as_int(payload["for_employee_id"], "for_employee_id")
            if err:
                return None, err
        subject = actor if for_employee_id == actor.id else self.storage.get_employee(for_employee_id)
        if subject is None:
            return None, WorkflowError.not_found("Employee", for_employee_id)
        if not _may_act_for(actor, subject):
            return None, WorkflowError.forbidden("Cannot submit a training need for this employee")

        if payload.get("skill_id") in (None, ""):
            return None, WorkflowError.validation("skill_id is required", field="skill_id")
        skill_id, err = _as_int(payload["skill_id"], "skill_id")
        if err:
            return None, err
        skill = self.storage.get_skill(skill_id)
        if skill is None:
            return None, WorkflowError.not_found("Skill", skill_id)

        urgency, err = _as_enum(Urgency, payload.get("urgency"), Urgency.MEDIUM, "urgency")
        if err:
            return None, err
        need_type, err = _as_enum(NeedType, payload.get("type"), NeedType.ANY, "type")
        if err:
            return None, err

        quarter = payload.get("preferred_quarter") or None
        if quarter is not None and str(quarter).upper() not in PREFERRED_QUARTERS:
            return None, WorkflowError.validation("preferred_quarter must be one of Q1..Q4",
                                                  field="preferred_quarter")

        title, err = _as_text(payload.get("title"), "title")
        if err:
            return None, err
        justification, err = _as_text(payload.get("justification"), "justification")
        if err:
            return None, err
        month, err = _as_text(payload.get("preferred_month"), "preferred_month")
        if err:
            return None, err

        source = SubmissionSource.MANAGER if actor_role(actor) is Role.MANAGER else SubmissionSource.EMPLOYEE

        with self.storage.unit_of_work():
            need = TrainingNeed(
                requested_by_user_id=actor.id,
                for_employee_id=subject.id,
                submission_source=source.value,
                skill_id=skill.id,
                title=title or skill.name,
                justification=justification,
                urgency=urgency.value,
                type=need_type.value,
                preferred_quarter=str(quarter).upper() if quarter else None,
                preferred_month=month or None,
                status=NeedStatus.SUBMITTED.value,
            )
            self.storage.save_training_need(need)
            self.storage.record_audit(
                entity_type="training_need", entity_id=need.id, action="training_need.submit",
                performed_by=actor.id,
                changes={"status": need.status, "submission_source": need.submission_source,
                         "for_employee_id": need.for_employee_id},
            )

        logger.info(
            "Training need %s submitted (%s) for employee %s",
            need.id, source.value, subject.id,
            extra={"entity_type": "training_need", "entity_id": need.id,
                   "action": "submit", "actor_id": actor.id, "status": need.status},
        )
        return need.to_dict(), None

    def decide_need(self, need_id: int, action: str, actor_id: int, reason: str | None = None):
        """Approve or reject a need.  Reject requires a non-blank ``reason``."""
        with self.storage.unit_of_work() as uow:
            need = self.storage.get_training_need(need_id, for_update=True)
            if need is None:
                uow.rollback()
                return None, WorkflowError.not_found("TrainingNeed", need_id)
            actor = self.storage.get_employee(actor_id)
            if actor is None:
                uow.rollback()
                return None, WorkflowError.not_found("Employee", actor_id)
            subject = self.storage.get_employee(need.for_employee_id)

            update, err = need_state_machine.transition(need, action, actor, subject, reason)
            if err:
                uow.rollback()
                self._log_refusal("training_need", need_id, action, actor_id, err)
                return None, err

            update.apply_to(need)
            self.storage.save_training_need(need)
            self.storage.record_audit(
                entity_type="training_need", entity_id=need.id, action=f"training_need.{action}",
                performed_by=actor.id, changes=update.changes(),
            )

        logger.info(
            "Training need %s %s → %s by %s",
            need_id, update.previous_status.value, update.status.value, actor_id,
            extra={"entity_type": "training_need", "entity_id": need_id,
                   "action": action, "actor_id": actor_id, "status": update.status.value},
        )
        return need.to_dict(), None

    def get_need(self, need_id: int):
        need = self.storage.get_training_need(need_id)
        if need is None:
            return None, WorkflowError.not_found("TrainingNeed", need_id)
        return need.to_dict(), None

    def list_needs(self, status: str | None = None, employee_id: int | None = None) -> list[dict]:
        return [n.to_dict() for n in self.storage.find_training_needs(status=status, employee_id=employee_id)]

    def allowed_need_actions(self, need_id: int, actor_id: int) -> list[str]:
        """Decisions ``actor_id`` could take on the need now; [] when unknown."""
        need = self.storage.get_training_need(need_id)
        actor = self.storage.get_employee(actor_id)
        if need is None or actor is None:
            return []
        subject = self.storage.get_employee(need.for_employee_id)
        return need_state_machine.allowed_actions(need, actor, subject)

    # ═════════════════════════════════════════════════════════════════════
    # Nominations
    # ═════════════════════════════════════════════════════════════════════

    def submit_nomination(self, actor_id: int, payload: dict):
        """
        Reserve a seat: create a PENDING nomination if the session has room.

        The session row is locked for the whole check-and-insert so two
        concurrent nominations cannot both take the last seat.
        """
        payload = payload or {}
        if not isinstance(payload, dict):
            return None, WorkflowError.validation("JSON object expected", field="body")
        actor = self.storage.get_employee(actor_id)
        if actor is None:
            return None, WorkflowError.not_found("Employee", actor_id)

        if payload.get("session_id") in (None, ""):
            return None, WorkflowError.validation("session_id is required", field="session_id")
        session_id, err = _as_int(payload["session_id"], "session_id")
        if err:
            return None, err

        employee_id = actor.id
        if payload.get("employee_id") not in (None, ""):
            employee_id, err = _as_int(payload["employee_id"], "employee_id")
            if err:
                return None, err
        subject = actor if employee_id == actor.id else self.storage.get_employee(employee_id)
        if subject is None:
            return None, WorkflowError.not_found("Employee", employee_id)
        if not _may_act_for(actor, subject):
            return None, WorkflowError.forbidden("Cannot nominate this employee")

        source, err = _as_enum(NominationSource, payload.get("source"),
                               self._default_nomination_source(actor, subject), "source")
        if err:
            return None, err

        with self.storage.unit_of_work() as uow:
            session = self.storage.get_training_session(session_id, for_update=True)
            if session is None:
                uow.rollback()
                return None, WorkflowError.not_found("TrainingSession", session_id)

            enrolled = self.storage.count_enrollments(session_id)
            holding = self.storage.list_nominations(session_id, SEAT_HOLDING_STATUSES)
            occupied, err = seat_allocator.try_reserve(session, enrolled, holding)
            if err:
                uow.rollback()
                self._log_refusal("nomination", None, "submit", actor.id, err)
                return None, err

            nomination = Nomination(
                session_id=session_id,
                employee_id=subject.id,
                source=source.value,
                status=NominationStatus.PENDING.value,
            )
            self.storage.save_nomination(nomination)
            self.storage.record_audit(
                entity_type="nomination", entity_id=nomination.id, action="nomination.submit",
                performed_by=actor.id,
                changes={"status": nomination.status, "session_id": session_id,
                         "employee_id": subject.id, "occupancy": occupied + 1},
            )

        logger.info(
            "Nomination %s created for employee %s in session %s (%d occupied)",
            nomination.id, subject.id, session_id, occupied + 1,
            extra={"entity_type": "nomination", "entity_id": nomination.id,
                   "action": "submit", "actor_id": actor.id, "status": nomination.status},
        )
        return nomination.to_dict(), None

    def decide_nomination(self, nomination_id: int, action: str, actor_id: int, reason: str | None = None):
        """Approve, reject or waitlist a PENDING nomination (HR only)."""
        with self.storage.unit_of_work() as uow:
            nomination = self.storage.get_nomination(nomination_id, for_update=True)
            if nomination is None:
                uow.rollback()
                return None, WorkflowError.not_found("Nomination", nomination_id)
            actor = self.storage.get_employee(actor_id)
            if actor is None:
                uow.rollback()
                return None, WorkflowError.not_found("Employee", actor_id)

            session = self.storage.get_training_session(nomination.session_id, for_update=True)
            enrolled = 0
            holding = []
            if session is not None:
                enrolled = self.storage.count_enrollments(session.id)
                holding = self.storage.list_nominations(session.id, SEAT_HOLDING_STATUSES)

            update, err = seat_allocator.decide(
                nomination, action, actor, reason,
                session=session, enrollment_count=enrolled, nominations=holding,
            )
            if err:
                uow.rollback()
                self._log_refusal("nomination", nomination_id, action, actor_id, err)
                return None, err

            update.apply_to(nomination)
            self.storage.save_nomination(nomination)
            self.storage.record_audit(
                entity_type="nomination", entity_id=nomination.id, action=f"nomination.{action}",
                performed_by=actor.id, changes=update.changes(),
            )

        logger.info(
            "Nomination %s %s → %s by %s",
            nomination_id, update.previous_status.value, update.status.value, actor_id,
            extra={"entity_type": "nomination", "entity_id": nomination_id,
                   "action": action, "actor_id": actor_id, "status": update.status.value},
        )
        return nomination.to_dict(), None

    def get_nomination(self, nomination_id: int):
        nomination = self.storage.get_nomination(nomination_id)
        if nomination is None:
            return None, WorkflowError.not_found("Nomination", nomination_id)
        return nomination.to_dict(), None

    def list_nominations(self, session_id: int | None = None, employee_id: int | None = None,
                         status: str | None = None) -> list[dict]:
        return [
            n.to_dict()
            for n in self.storage.find_nominations(session_id=session_id, employee_id=employee_id, status=status)
        ]

    # ── Internals ────────────────────────────────────────────────────────

    @staticmethod
    def _default_nomination_source(actor, subject) -> NominationSource:
        if actor.id == subject.id:
            return NominationSource.SELF
        if actor_role(actor) is Role.HR_ADMIN:
            return NominationSource.HR
        return NominationSource.MANAGER

    @staticmethod
    def _log_refusal(entity_type, entity_id, action, actor_id, err: WorkflowError) -> None:
        level = logging.WARNING if err.kind is ErrorKind.FORBIDDEN else logging.INFO
        logger.log(
            level, "%s %s refused for %s: %s (%s)",
            entity_type, action, entity_id, err.message, err.kind.value,
            extra={"entity_type": entity_type, "entity_id": entity_id, "action": action,
                   "actor_id": actor_id, "error_kind": err.kind.value},
        )
