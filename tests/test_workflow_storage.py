"""
SQLAlchemy workflow storage tests: database failures inside a decision.

A failing flush must surface as StorageError (503 over HTTP), roll back the
status change and leave no audit row behind.
"""
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from training_tracker.core.exceptions import StorageError
from training_tracker.models import db as _db
from training_tracker.models.audit import AuditLog
from training_tracker.models.catalog import Skill, TrainingSession
from training_tracker.models.workflow import Nomination, TrainingNeed
from training_tracker.services.workflow_service import WorkflowService
from training_tracker.services.workflow_storage import SqlAlchemyWorkflowStorage


def _disk_error(*args, **kwargs):
    raise OperationalError("UPDATE training_needs", {}, Exception("disk I/O error"))


@pytest.fixture()
def service():
    return WorkflowService(SqlAlchemyWorkflowStorage())


@pytest.fixture()
def submitted_need(service, employee):
    skill = Skill(name="Hot work permits", category="SAFETY")
    _db.session.add(skill)
    _db.session.commit()
    need, err = service.submit_need(employee.id, {"skill_id": skill.id})
    assert err is None, err
    return need


def _approve_audit_rows():
    return AuditLog.query.filter_by(action="training_need.approve").count()


class TestDecisionRollback:
    def test_failed_save_raises_storage_error(self, monkeypatch, service, submitted_need, hr):
        monkeypatch.setattr(SqlAlchemyWorkflowStorage, "save_training_need", _disk_error)

        with pytest.raises(StorageError, match="disk I/O error"):
            service.decide_need(submitted_need["id"], "approve", hr.id)

        _db.session.expire_all()
        assert _db.session.get(TrainingNeed, submitted_need["id"]).status == "SUBMITTED"
        assert _approve_audit_rows() == 0

    def test_failed_audit_write_undoes_status_change(self, monkeypatch, service, submitted_need, hr):
        monkeypatch.setattr(SqlAlchemyWorkflowStorage, "record_audit", _disk_error)

        with pytest.raises(StorageError):
            service.decide_need(submitted_need["id"], "approve", hr.id)

        _db.session.expire_all()
        assert _db.session.get(TrainingNeed, submitted_need["id"]).status == "SUBMITTED"
        assert _approve_audit_rows() == 0

    def test_storage_recovers_after_failure(self, monkeypatch, service, submitted_need, hr):
        with monkeypatch.context() as m:
            m.setattr(SqlAlchemyWorkflowStorage, "save_training_need", _disk_error)
            with pytest.raises(StorageError):
                service.decide_need(submitted_need["id"], "approve", hr.id)

        decided, err = service.decide_need(submitted_need["id"], "approve", hr.id)
        assert err is None
        assert decided["status"] == "HR_APPROVED"
        assert _approve_audit_rows() == 1

    def test_failed_nomination_leaves_no_seat_held(self, monkeypatch, service, employee):
        session = TrainingSession(title="Scaffold inspection", duration_hours=3, max_participants=1,
                                  session_date=datetime(2026, 12, 1, 8, 0, tzinfo=timezone.utc))
        _db.session.add(session)
        _db.session.commit()
        monkeypatch.setattr(SqlAlchemyWorkflowStorage, "save_nomination", _disk_error)

        with pytest.raises(StorageError):
            service.submit_nomination(employee.id, {"session_id": session.id})

        assert Nomination.query.count() == 0
        assert AuditLog.query.filter(AuditLog.entity_type == "nomination").count() == 0


class TestStorageFailureOverHttp:
    def test_decision_answers_503(self, client, as_actor, monkeypatch, submitted_need, hr):
        monkeypatch.setattr(SqlAlchemyWorkflowStorage, "save_training_need", _disk_error)

        res = client.patch(f"/api/v1/training-needs/{submitted_need['id']}/approve", headers=as_actor(hr))
        assert res.status_code == 503
        assert res.get_json()["code"] == "ERR_STORAGE"

        res = client.get(f"/api/v1/training-needs/{submitted_need['id']}", headers=as_actor(hr))
        assert res.get_json()["status"] == "SUBMITTED"
