"""
Storage port for the approval workflow.

``WorkflowStorage`` is the only way WorkflowService reaches persistent
state.  ``SqlAlchemyWorkflowStorage`` is the production adapter on the
Flask-SQLAlchemy session; tests swap in an in-memory implementation.

Transactions:
    with storage.unit_of_work() as uow:
        need = storage.get_training_need(7, for_update=True)
        ...
        if refused:
            uow.rollback()        # nothing is committed
            return None, err
    # leaving the block commits

``SQLAlchemyError`` inside the block is rolled back and re-raised as
``StorageError``; it is never retried.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from training_tracker.core.exceptions import StorageError
from training_tracker.models import db
from training_tracker.models.audit import write_audit
from training_tracker.models.catalog import Skill, TrainingEnrollment, TrainingSession
from training_tracker.models.employee import Employee
from training_tracker.models.workflow import Nomination, TrainingNeed

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Handle yielded by ``unit_of_work``; ``rollback()`` discards the work."""

    def __init__(self) -> None:
        self.rolled_back = False

    def rollback(self) -> None:
        self.rolled_back = True


class WorkflowStorage(ABC):
    """Persistence operations the workflow depends on."""

    # ── Training needs ───────────────────────────────────────────────────

    @abstractmethod
    def get_training_need(self, need_id: int, for_update: bool = False) -> TrainingNeed | None:
        """Load a need; ``for_update`` row-locks it until the unit of work ends."""

    @abstractmethod
    def save_training_need(self, need: TrainingNeed) -> TrainingNeed:
        """Insert or update; assigns ``id`` on insert."""

    @abstractmethod
    def find_training_needs(self, status: str | None = None, employee_id: int | None = None) -> list[TrainingNeed]:
        """Newest first."""

    # ── Directory ────────────────────────────────────────────────────────

    @abstractmethod
    def get_employee(self, employee_id: int) -> Employee | None: ...

    @abstractmethod
    def get_skill(self, skill_id: int) -> Skill | None: ...

    # ── Sessions & nominations ───────────────────────────────────────────

    @abstractmethod
    def get_training_session(self, session_id: int, for_update: bool = False) -> TrainingSession | None:
        """Load a session; ``for_update`` serialises seat reservations on it."""

    @abstractmethod
    def count_enrollments(self, session_id: int) -> int:
        """All enrollments of the session, whatever their status."""

    @abstractmethod
    def list_nominations(self, session_id: int, statuses) -> list[Nomination]:
        """Nominations of ``session_id`` whose status is in ``statuses``."""

    @abstractmethod
    def find_nominations(self, session_id: int | None = None, employee_id: int | None = None,
                         status: str | None = None) -> list[Nomination]:
        """Newest first."""

    @abstractmethod
    def save_nomination(self, nomination: Nomination) -> Nomination: ...

    @abstractmethod
    def get_nomination(self, nomination_id: int, for_update: bool = False) -> Nomination | None: ...

    # ── Audit & transactions ─────────────────────────────────────────────

    @abstractmethod
    def record_audit(self, *, entity_type: str, entity_id, action: str,
                     performed_by: int | None, changes: dict) -> None:
        """Append an audit entry inside the current unit of work."""

    @abstractmethod
    def unit_of_work(self):
        """Context manager: commit on exit, rollback on ``uow.rollback()`` or error."""


class SqlAlchemyWorkflowStorage(WorkflowStorage):
    """WorkflowStorage on the Flask-SQLAlchemy scoped session."""

    def __init__(self, session=None) -> None:
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    # ── Training needs ───────────────────────────────────────────────────

    def get_training_need(self, need_id, for_update=False):
        return self.session.get(TrainingNeed, need_id, with_for_update=for_update or None)

    def save_training_need(self, need):
        self.session.add(need)
        self.session.flush()
        return need

    def find_training_needs(self, status=None, employee_id=None):
        q = TrainingNeed.query
        if status:
            q = q.filter(TrainingNeed.status == status)
        if employee_id:
            q = q.filter(TrainingNeed.for_employee_id == employee_id)
        return q.order_by(TrainingNeed.created_at.desc(), TrainingNeed.id.desc()).all()

    # ── Directory ────────────────────────────────────────────────────────

    def get_employee(self, employee_id):
        return self.session.get(Employee, employee_id)

    def get_skill(self, skill_id):
        return self.session.get(Skill, skill_id)

    # ── Sessions & nominations ───────────────────────────────────────────

    def get_training_session(self, session_id, for_update=False):
        return self.session.get(TrainingSession, session_id, with_for_update=for_update or None)

    def count_enrollments(self, session_id):
        return TrainingEnrollment.query.filter_by(session_id=session_id).count()

    def list_nominations(self, session_id, statuses):
        values = [getattr(s, "value", s) for s in statuses]
        return (
            Nomination.query
            .filter(Nomination.session_id == session_id, Nomination.status.in_(values))
            .all()
        )

    def find_nominations(self, session_id=None, employee_id=None, status=None):
        q = Nomination.query
        if session_id:
            q = q.filter(Nomination.session_id == session_id)
        if employee_id:
            q = q.filter(Nomination.employee_id == employee_id)
        if status:
            q = q.filter(Nomination.status == status)
        return q.order_by(Nomination.created_at.desc(), Nomination.id.desc()).all()

    def save_nomination(self, nomination):
        self.session.add(nomination)
        self.session.flush()
        return nomination

    def get_nomination(self, nomination_id, for_update=False):
        return self.session.get(Nomination, nomination_id, with_for_update=for_update or None)

    # ── Audit & transactions ─────────────────────────────────────────────

    def record_audit(self, *, entity_type, entity_id, action, performed_by, changes):
        write_audit(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            performed_by=performed_by,
            changes=changes,
        )

    @contextmanager
    def unit_of_work(self):
        uow = UnitOfWork()
        try:
            yield uow
            if uow.rolled_back:
                self.session.rollback()
            else:
                self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Workflow transaction failed: %s", exc, exc_info=True)
            raise StorageError(str(exc)) from exc
        except Exception:
            self.session.rollback()
            raise
