"""
Shared pytest fixtures for the Training Compliance Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - hr / manager / employee / outsider: committed directory entries
    - make_employee: factory for extra directory entries
    - as_actor: X-Actor-Id header builder
    - fake_storage: in-memory WorkflowStorage for service tests
"""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from training_tracker import create_app
from training_tracker.middleware.actor_context import ACTOR_HEADER
from training_tracker.models import db as _db
from training_tracker.models.employee import Employee, Role
from training_tracker.services.workflow_storage import UnitOfWork, WorkflowStorage


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Directory fixtures ───────────────────────────────────────────────────


_usernames = count(1)


@pytest.fixture()
def make_employee():
    """Create and commit an Employee; returns the instance."""

    def _make(role=Role.EMPLOYEE.value, manager=None, department="Operations", **kw):
        n = next(_usernames)
        emp = Employee(
            username=kw.pop("username", f"user{n}"),
            email=kw.pop("email", f"user{n}@example.com"),
            first_name=kw.pop("first_name", "Test"),
            last_name=kw.pop("last_name", f"User{n}"),
            role=role,
            department=department,
            manager_id=manager.id if manager is not None else None,
            **kw,
        )
        _db.session.add(emp)
        _db.session.commit()
        return emp

    return _make


@pytest.fixture()
def hr(make_employee):
    return make_employee(Role.HR_ADMIN.value, department="HR", first_name="Hana")


@pytest.fixture()
def manager(make_employee):
    return make_employee(Role.MANAGER.value, first_name="Mert")


@pytest.fixture()
def employee(make_employee, manager):
    """Reports directly to ``manager``."""
    return make_employee(Role.EMPLOYEE.value, manager=manager, first_name="Ece")


@pytest.fixture()
def outsider(make_employee):
    """An employee reporting to nobody in particular."""
    return make_employee(Role.EMPLOYEE.value, department="Finance", first_name="Orhan")


@pytest.fixture()
def as_actor():
    """``client.get(url, headers=as_actor(user))``"""

    def _headers(actor):
        return {ACTOR_HEADER: str(actor.id if hasattr(actor, "id") else actor)}

    return _headers


# ── In-memory workflow storage ───────────────────────────────────────────


class InMemoryWorkflowStorage(WorkflowStorage):
    """
    WorkflowStorage over plain dicts.

    Model instances stay transient; ids are assigned on first save.  A
    rolled-back unit of work discards inserts and audit entries made inside
    it.
    """

    def __init__(self):
        self.employees = {}
        self.skills = {}
        self.sessions = {}
        self.enrollments = {}      # session_id -> count
        self.needs = {}
        self.nominations = {}
        self.audit = []
        self.commits = 0
        self.rollbacks = 0
        self._ids = count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)
        self._inserted = None
        self._pending_audit = None

    # ── Seeding helpers ──────────────────────────────────────────────────

    def add(self, registry, obj):
        if obj.id is None:
            obj.id = next(self._ids)
        self._stamp(obj)
        registry[obj.id] = obj
        return obj

    def _stamp(self, obj):
        if getattr(obj, "created_at", None) is None:
            self._clock += timedelta(seconds=1)
            obj.created_at = self._clock

    # ── Training needs ───────────────────────────────────────────────────

    def get_training_need(self, need_id, for_update=False):
        return self.needs.get(need_id)

    def save_training_need(self, need):
        return self._save(self.needs, need)

    def find_training_needs(self, status=None, employee_id=None):
        rows = [
            n for n in self.needs.values()
            if (not status or n.status == status) and (not employee_id or n.for_employee_id == employee_id)
        ]
        return sorted(rows, key=lambda n: (n.created_at, n.id), reverse=True)

    # ── Directory ────────────────────────────────────────────────────────

    def get_employee(self, employee_id):
        return self.employees.get(employee_id)

    def get_skill(self, skill_id):
        return self.skills.get(skill_id)

    # ── Sessions & nominations ───────────────────────────────────────────

    def get_training_session(self, session_id, for_update=False):
        return self.sessions.get(session_id)

    def count_enrollments(self, session_id):
        return self.enrollments.get(session_id, 0)

    def list_nominations(self, session_id, statuses):
        values = {getattr(s, "value", s) for s in statuses}
        return [n for n in self.nominations.values() if n.session_id == session_id and n.status in values]

    def find_nominations(self, session_id=None, employee_id=None, status=None):
        rows = [
            n for n in self.nominations.values()
            if (not session_id or n.session_id == session_id)
            and (not employee_id or n.employee_id == employee_id)
            and (not status or n.status == status)
        ]
        return sorted(rows, key=lambda n: (n.created_at, n.id), reverse=True)

    def save_nomination(self, nomination):
        return self._save(self.nominations, nomination)

    def get_nomination(self, nomination_id, for_update=False):
        return self.nominations.get(nomination_id)

    # ── Audit & transactions ─────────────────────────────────────────────

    def record_audit(self, *, entity_type, entity_id, action, performed_by, changes):
        entry = {"entity_type": entity_type, "entity_id": entity_id, "action": action,
                 "performed_by": performed_by, "changes": changes}
        (self._pending_audit if self._pending_audit is not None else self.audit).append(entry)

    @contextmanager
    def unit_of_work(self):
        uow = UnitOfWork()
        self._inserted, self._pending_audit = [], []
        try:
            yield uow
        except Exception:
            self._discard()
            raise
        if uow.rolled_back:
            self._discard()
        else:
            self.audit.extend(self._pending_audit)
            self.commits += 1
        self._inserted, self._pending_audit = None, None

    def _save(self, registry, obj):
        if obj.id is None:
            obj.id = next(self._ids)
            self._stamp(obj)
            if self._inserted is not None:
                self._inserted.append((registry, obj.id))
        registry[obj.id] = obj
        return obj

    def _discard(self):
        for registry, obj_id in self._inserted or ():
            registry.pop(obj_id, None)
        self.rollbacks += 1


@pytest.fixture()
def fake_storage():
    return InMemoryWorkflowStorage()
