"""
Nominations API tests.

Covers:
    - Seat reservation against enrollments + held nominations
    - SeatsFull body shape
    - HR approve / reject / waitlist, decided once
    - Session occupancy reflected on the session detail
"""
from datetime import datetime, timezone

import pytest

from training_tracker.models import db as _db
from training_tracker.models.catalog import TrainingEnrollment, TrainingSession


def _make_session(max_participants=2, enrolled=()):
    session = TrainingSession(
        title="Working at height",
        session_date=datetime(2026, 11, 3, 9, 0, tzinfo=timezone.utc),
        duration_hours=6,
        max_participants=max_participants,
    )
    _db.session.add(session)
    _db.session.flush()
    for emp in enrolled:
        _db.session.add(TrainingEnrollment(session_id=session.id, employee_id=emp.id))
    _db.session.commit()
    return session


def _nominate(client, as_actor, actor, session, **kw):
    return client.post("/api/v1/nominations", json={"session_id": session.id, **kw}, headers=as_actor(actor))


class TestSubmitNomination:
    def test_self_nomination(self, client, as_actor, employee):
        session = _make_session()
        res = _nominate(client, as_actor, employee, session)
        assert res.status_code == 201
        body = res.get_json()
        assert body["status"] == "PENDING"
        assert body["source"] == "SELF"
        assert body["employee_id"] == employee.id

    def test_full_from_enrollments(self, client, as_actor, employee, make_employee):
        session = _make_session(2, enrolled=[make_employee(), make_employee()])
        res = _nominate(client, as_actor, employee, session)
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_SEATS_FULL"
        assert body["seats_available"] is False
        assert body["max_participants"] == 2
        assert body["current_occupancy"] == 2
        assert body["error"] == "Seat is full, please contact HR"

    def test_full_from_enrollment_plus_pending(self, client, as_actor, employee, make_employee):
        first = make_employee()
        session = _make_session(2, enrolled=[make_employee()])
        assert _nominate(client, as_actor, first, session).status_code == 201
        res = _nominate(client, as_actor, employee, session)
        assert res.status_code == 409
        assert res.get_json()["current_occupancy"] == 2

    def test_uncapped_session(self, client, as_actor, employee, make_employee):
        session = _make_session(None, enrolled=[make_employee() for _ in range(3)])
        assert _nominate(client, as_actor, employee, session).status_code == 201

    def test_manager_nominates_report(self, client, as_actor, manager, employee):
        session = _make_session()
        res = _nominate(client, as_actor, manager, session, employee_id=employee.id)
        assert res.status_code == 201
        assert res.get_json()["source"] == "MANAGER"

    def test_employee_cannot_nominate_others(self, client, as_actor, employee, outsider):
        session = _make_session()
        res = _nominate(client, as_actor, employee, session, employee_id=outsider.id)
        assert res.status_code == 403

    def test_unknown_session(self, client, as_actor, employee):
        res = client.post("/api/v1/nominations", json={"session_id": 31337}, headers=as_actor(employee))
        assert res.status_code == 404

    def test_session_detail_shows_occupancy(self, client, as_actor, employee, make_employee):
        session = _make_session(2, enrolled=[make_employee()])
        _nominate(client, as_actor, employee, session)
        res = client.get(f"/api/v1/training-sessions/{session.id}", headers=as_actor(employee))
        body = res.get_json()
        assert body["current_occupancy"] == 2
        assert body["seats_available"] is False


class TestDecideNomination:
    @pytest.fixture()
    def pending(self, client, as_actor, employee):
        session = _make_session()
        res = _nominate(client, as_actor, employee, session)
        return res.get_json()

    def test_hr_approves(self, client, as_actor, hr, pending):
        res = client.patch(f"/api/v1/nominations/{pending['id']}/approve", headers=as_actor(hr))
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "APPROVED"
        assert body["decided_by"] == hr.id

    def test_decided_twice(self, client, as_actor, hr, pending):
        client.patch(f"/api/v1/nominations/{pending['id']}/waitlist", headers=as_actor(hr))
        res = client.patch(f"/api/v1/nominations/{pending['id']}/approve", headers=as_actor(hr))
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_INVALID_TRANSITION"

    def test_reject_needs_reason(self, client, as_actor, hr, pending):
        res = client.patch(f"/api/v1/nominations/{pending['id']}/reject", json={}, headers=as_actor(hr))
        assert res.status_code == 400
        res = client.patch(f"/api/v1/nominations/{pending['id']}/reject", json={"reason": "duplicate"},
                           headers=as_actor(hr))
        assert res.status_code == 200
        assert res.get_json()["reason"] == "duplicate"

    def test_non_string_reason_is_400(self, client, as_actor, hr, pending):
        res = client.patch(f"/api/v1/nominations/{pending['id']}/reject", json={"reason": ["late"]},
                           headers=as_actor(hr))
        assert res.status_code == 400
        res = client.patch(f"/api/v1/nominations/{pending['id']}/approve", headers=as_actor(hr))
        assert res.status_code == 200

    def test_manager_cannot_decide(self, client, as_actor, manager, pending):
        res = client.patch(f"/api/v1/nominations/{pending['id']}/approve", headers=as_actor(manager))
        assert res.status_code == 403

    def test_rejection_frees_the_seat(self, client, as_actor, hr, make_employee):
        session = _make_session(1)
        first, second = make_employee(), make_employee()
        nom = _nominate(client, as_actor, first, session).get_json()
        assert _nominate(client, as_actor, second, session).status_code == 409
        client.patch(f"/api/v1/nominations/{nom['id']}/reject", json={"reason": "shift clash"}, headers=as_actor(hr))
        assert _nominate(client, as_actor, second, session).status_code == 201

    def test_list_scoped_for_employee(self, client, as_actor, employee, outsider, hr):
        session = _make_session(5)
        _nominate(client, as_actor, employee, session)
        _nominate(client, as_actor, outsider, session)
        res = client.get("/api/v1/nominations", headers=as_actor(employee))
        assert [n["employee_id"] for n in res.get_json()] == [employee.id]
        res = client.get(f"/api/v1/nominations?session_id={session.id}", headers=as_actor(hr))
        assert len(res.get_json()) == 2
