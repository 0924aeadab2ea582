"""
Catalog & delivery API tests.

Covers:
    - Skills CRUD (hr_admin writes)
    - Catalog create / update / filter + audit diff
    - Sessions: defaults from catalog, calendar range, validation
    - Enrollments: duplicate guard, completion stamping, employee history access
"""
import pytest

from training_tracker.models.audit import AuditLog


@pytest.fixture()
def course(client, as_actor, hr):
    res = client.post("/api/v1/training-catalog", json={
        "title": "Forklift Operator",
        "type": "certification",
        "category": "safety",
        "duration_hours": 8,
        "validity_period_months": 24,
        "cost": 45000,
    }, headers=as_actor(hr))
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def session_(client, as_actor, hr, course):
    res = client.post("/api/v1/training-sessions", json={
        "catalog_id": course["id"],
        "session_date": "2026-11-10T08:00:00Z",
        "max_participants": 10,
    }, headers=as_actor(hr))
    assert res.status_code == 201, res.get_json()
    return res.get_json()


class TestSkills:
    def test_create_and_list(self, client, as_actor, hr, employee):
        res = client.post("/api/v1/skills", json={"name": "SAP PM", "category": "TECHNICAL"}, headers=as_actor(hr))
        assert res.status_code == 201
        res = client.get("/api/v1/skills", headers=as_actor(employee))
        assert [s["name"] for s in res.get_json()] == ["SAP PM"]

    def test_employee_cannot_create(self, client, as_actor, employee):
        res = client.post("/api/v1/skills", json={"name": "Welding"}, headers=as_actor(employee))
        assert res.status_code == 403

    def test_invalid_category(self, client, as_actor, hr):
        res = client.post("/api/v1/skills", json={"name": "Welding", "category": "HOBBY"}, headers=as_actor(hr))
        assert res.status_code == 400

    def test_deactivate_hides_from_default_list(self, client, as_actor, hr):
        skill = client.post("/api/v1/skills", json={"name": "COBOL"}, headers=as_actor(hr)).get_json()
        res = client.put(f"/api/v1/skills/{skill['id']}", json={"is_active": False}, headers=as_actor(hr))
        assert res.status_code == 200
        assert client.get("/api/v1/skills", headers=as_actor(hr)).get_json() == []
        res = client.get("/api/v1/skills?include_inactive=true", headers=as_actor(hr))
        assert len(res.get_json()) == 1


class TestCatalog:
    def test_create_requires_fields(self, client, as_actor, hr):
        res = client.post("/api/v1/training-catalog", json={"title": "x"}, headers=as_actor(hr))
        assert res.status_code == 400
        assert "duration_hours" in res.get_json()["details"]

    def test_filter_by_type(self, client, as_actor, hr, course):
        res = client.get("/api/v1/training-catalog?type=certification", headers=as_actor(hr))
        assert [c["id"] for c in res.get_json()] == [course["id"]]
        res = client.get("/api/v1/training-catalog?type=internal", headers=as_actor(hr))
        assert res.get_json() == []

    def test_update_writes_audit_diff(self, client, as_actor, hr, course):
        res = client.put(f"/api/v1/training-catalog/{course['id']}", json={"duration_hours": 10},
                         headers=as_actor(hr))
        assert res.status_code == 200
        assert res.get_json()["duration_hours"] == 10
        log = AuditLog.query.filter_by(entity_type="training_catalog", action="update").one()
        assert log.changes["duration_hours"] == {"old": 8, "new": 10}

    def test_get_missing(self, client, as_actor, hr):
        assert client.get("/api/v1/training-catalog/999", headers=as_actor(hr)).status_code == 404


class TestSessions:
    def test_defaults_from_catalog(self, session_, course):
        assert session_["title"] == course["title"]
        assert session_["duration_hours"] == 8
        assert session_["status"] == "scheduled"

    def test_session_date_required(self, client, as_actor, hr, course):
        res = client.post("/api/v1/training-sessions", json={"catalog_id": course["id"]}, headers=as_actor(hr))
        assert res.status_code == 400

    def test_materials_must_be_list(self, client, as_actor, hr, course):
        res = client.post("/api/v1/training-sessions", json={
            "catalog_id": course["id"], "session_date": "2026-12-01", "materials": "http://x",
        }, headers=as_actor(hr))
        assert res.status_code == 400

    def test_calendar_range(self, client, as_actor, employee, session_):
        res = client.get("/api/v1/training-sessions/calendar?start=2026-11-01&end=2026-11-30",
                         headers=as_actor(employee))
        assert [s["id"] for s in res.get_json()] == [session_["id"]]
        res = client.get("/api/v1/training-sessions/calendar?start=2026-12-01&end=2026-12-31",
                         headers=as_actor(employee))
        assert res.get_json() == []

    def test_calendar_requires_dates(self, client, as_actor, employee):
        res = client.get("/api/v1/training-sessions/calendar?start=2026-11-01", headers=as_actor(employee))
        assert res.status_code == 400


class TestEnrollments:
    def test_enroll_and_duplicate(self, client, as_actor, manager, employee, session_):
        payload = {"session_id": session_["id"], "employee_id": employee.id}
        res = client.post("/api/v1/training-enrollments", json=payload, headers=as_actor(manager))
        assert res.status_code == 201
        assert res.get_json()["status"] == "enrolled"
        res = client.post("/api/v1/training-enrollments", json=payload, headers=as_actor(manager))
        assert res.status_code == 409

    def test_employee_cannot_enroll(self, client, as_actor, employee, session_):
        res = client.post("/api/v1/training-enrollments",
                          json={"session_id": session_["id"], "employee_id": employee.id},
                          headers=as_actor(employee))
        assert res.status_code == 403

    def test_complete_stamps_completion_date(self, client, as_actor, hr, employee, session_):
        enr = client.post("/api/v1/training-enrollments",
                          json={"session_id": session_["id"], "employee_id": employee.id},
                          headers=as_actor(hr)).get_json()
        res = client.put(f"/api/v1/training-enrollments/{enr['id']}", json={"status": "completed", "score": 92},
                         headers=as_actor(hr))
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "completed"
        assert body["score"] == 92
        assert body["completion_date"] is not None

    def test_score_out_of_range(self, client, as_actor, hr, employee, session_):
        enr = client.post("/api/v1/training-enrollments",
                          json={"session_id": session_["id"], "employee_id": employee.id},
                          headers=as_actor(hr)).get_json()
        res = client.put(f"/api/v1/training-enrollments/{enr['id']}", json={"score": 101}, headers=as_actor(hr))
        assert res.status_code == 400

    def test_employee_history_access(self, client, as_actor, hr, employee, outsider, manager, session_):
        client.post("/api/v1/training-enrollments",
                    json={"session_id": session_["id"], "employee_id": employee.id}, headers=as_actor(hr))
        url = f"/api/v1/training-enrollments/employee/{employee.id}"
        assert len(client.get(url, headers=as_actor(employee)).get_json()) == 1
        assert client.get(url, headers=as_actor(manager)).status_code == 200
        assert client.get(url, headers=as_actor(outsider)).status_code == 403
