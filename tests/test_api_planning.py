"""
Training plan API tests.

Covers:
    - Plan create / list by year (hr_admin writes)
    - Item create + validation
    - Item lifecycle: PLANNED → CONVERTED / CANCELLED, anything else 409
"""
from datetime import datetime, timezone

import pytest

from training_tracker.models import db as _db
from training_tracker.models.audit import AuditLog
from training_tracker.models.catalog import TrainingSession


@pytest.fixture()
def plan(client, as_actor, hr):
    res = client.post("/api/v1/training-plans", json={"year": 2027, "name": "2027 Safety Plan"},
                      headers=as_actor(hr))
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def item(client, as_actor, hr, plan):
    res = client.post(f"/api/v1/training-plans/{plan['id']}/items", json={
        "title": "Scaffold inspection", "tentative_month": "March", "expected_hours": 6, "type": "external",
    }, headers=as_actor(hr))
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def training_session():
    s = TrainingSession(title="Scaffold inspection - March", duration_hours=6,
                        session_date=datetime(2027, 3, 8, 9, tzinfo=timezone.utc))
    _db.session.add(s)
    _db.session.commit()
    return s


class TestPlans:
    def test_list_by_year(self, client, as_actor, hr, employee, plan):
        client.post("/api/v1/training-plans", json={"year": 2026, "name": "2026 Plan"}, headers=as_actor(hr))
        res = client.get("/api/v1/training-plans?year=2027", headers=as_actor(employee))
        assert [p["id"] for p in res.get_json()] == [plan["id"]]
        assert len(client.get("/api/v1/training-plans", headers=as_actor(employee)).get_json()) == 2

    def test_manager_cannot_create(self, client, as_actor, manager):
        res = client.post("/api/v1/training-plans", json={"year": 2027, "name": "x"}, headers=as_actor(manager))
        assert res.status_code == 403

    def test_year_required(self, client, as_actor, hr):
        res = client.post("/api/v1/training-plans", json={"name": "No year"}, headers=as_actor(hr))
        assert res.status_code == 400


class TestItems:
    def test_created_planned(self, item):
        assert item["status"] == "PLANNED"
        assert item["type"] == "EXTERNAL"

    def test_list_items(self, client, as_actor, employee, plan, item):
        res = client.get(f"/api/v1/training-plans/{plan['id']}/items", headers=as_actor(employee))
        assert [i["id"] for i in res.get_json()] == [item["id"]]

    def test_items_of_missing_plan(self, client, as_actor, hr):
        assert client.get("/api/v1/training-plans/999/items", headers=as_actor(hr)).status_code == 404

    def test_bad_month(self, client, as_actor, hr, plan):
        res = client.post(f"/api/v1/training-plans/{plan['id']}/items",
                          json={"title": "x", "tentative_month": "Smarch"}, headers=as_actor(hr))
        assert res.status_code == 400


class TestConvert:
    def test_convert(self, client, as_actor, manager, item, training_session):
        res = client.patch(f"/api/v1/training-plan-items/{item['id']}/convert",
                           json={"session_id": training_session.id}, headers=as_actor(manager))
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "CONVERTED"
        assert body["converted_to_session_id"] == training_session.id
        assert AuditLog.query.filter_by(action="training_plan_item.convert").count() == 1

    def test_convert_twice_conflicts(self, client, as_actor, hr, item, training_session):
        url = f"/api/v1/training-plan-items/{item['id']}/convert"
        client.patch(url, json={"session_id": training_session.id}, headers=as_actor(hr))
        res = client.patch(url, json={"session_id": training_session.id}, headers=as_actor(hr))
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_STATE"

    def test_cancelled_cannot_convert(self, client, as_actor, hr, item, training_session):
        assert client.patch(f"/api/v1/training-plan-items/{item['id']}/cancel",
                            headers=as_actor(hr)).get_json()["status"] == "CANCELLED"
        res = client.patch(f"/api/v1/training-plan-items/{item['id']}/convert",
                           json={"session_id": training_session.id}, headers=as_actor(hr))
        assert res.status_code == 409

    def test_session_required_and_must_exist(self, client, as_actor, hr, item):
        url = f"/api/v1/training-plan-items/{item['id']}/convert"
        assert client.patch(url, json={}, headers=as_actor(hr)).status_code == 400
        assert client.patch(url, json={"session_id": 4040}, headers=as_actor(hr)).status_code == 404

    def test_employee_forbidden(self, client, as_actor, employee, item, training_session):
        res = client.patch(f"/api/v1/training-plan-items/{item['id']}/convert",
                           json={"session_id": training_session.id}, headers=as_actor(employee))
        assert res.status_code == 403
