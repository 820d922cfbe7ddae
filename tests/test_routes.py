"""
HTTP API tests

Runs the FastAPI app in-process with the data layer wired to the in-memory
database. Error kinds map to status codes: conflict 409, invalid 422,
not found 404, forbidden 403, unavailable 503.
"""

from datetime import datetime

import pytest

from services.flight_service import END_BEFORE_START_MESSAGE


FLIGHT_JSON = {
    "tail_number": "n123ab",
    "start_date": "2026-03-10T08:00:00",
    "end_date": "2026-03-10T12:00:00",
    "start_airport": "kbos",
    "end_airport": "kjfk",
    "notes": "Charter",
}


def create_flight(client, headers, **overrides):
    response = client.post("/api/flights", json={**FLIGHT_JSON, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestAuthentication:

    def test_missing_token(self, client):
        assert client.get("/api/flights").status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/api/flights", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_expired_token(self, client, expired_headers):
        assert client.get("/api/flights", headers=expired_headers).status_code == 401

    def test_me(self, client, auth_headers, user):
        response = client.get("/api/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"id": user.id, "email": user.email}

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestFlightRoutes:

    def test_create_and_get(self, client, auth_headers, user):
        created = create_flight(client, auth_headers)

        assert created["tail_number"] == "N123AB"
        assert created["start_airport"] == "KBOS"
        assert created["created_by"] == user.id
        assert created["status"] == "active"

        response = client.get(f"/api/flights/{created['_id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["notes"] == "Charter"
        print(f"✓ POST/GET /api/flights/{created['_id']}")

    def test_overlap_conflict(self, client, auth_headers):
        create_flight(client, auth_headers)
        response = client.post("/api/flights", json={
            **FLIGHT_JSON, "start_date": "2026-03-10T11:00:00", "end_date": "2026-03-10T13:00:00"
        }, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["detail"] == "This flight overlaps with another flight for the same aircraft."

    def test_same_airports_invalid(self, client, auth_headers):
        response = client.post("/api/flights", json={**FLIGHT_JSON, "end_airport": "KBOS"}, headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["detail"] == "Start and end airports must be different."

    def test_end_before_start_invalid(self, client, auth_headers):
        response = client.post("/api/flights", json={**FLIGHT_JSON, "end_date": "2026-03-09T12:00:00"},
                               headers=auth_headers)

        assert response.status_code == 422
        assert response.json()["detail"] == END_BEFORE_START_MESSAGE

    def test_missing_flight(self, client, auth_headers):
        assert client.get("/api/flights/missing", headers=auth_headers).status_code == 404

    def test_list_and_filter(self, client, auth_headers):
        create_flight(client, auth_headers)
        create_flight(client, auth_headers, tail_number="C-GABC")

        everything = client.get("/api/flights", headers=auth_headers).json()
        filtered = client.get("/api/flights", params={"tail_number": "c-gabc"}, headers=auth_headers).json()

        assert len(everything) == 2
        assert [f["tail_number"] for f in filtered] == ["C-GABC"]

    def test_update_cancel_and_audit_trail(self, client, auth_headers, other_headers):
        created = create_flight(client, auth_headers)
        flight_id = created["_id"]

        updated = client.put(f"/api/flights/{flight_id}", json={"notes": "Delayed"}, headers=other_headers)
        assert updated.status_code == 200
        assert updated.json()["notes"] == "Delayed"

        cancelled = client.post(f"/api/flights/{flight_id}/cancel", headers=auth_headers)
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        logs = client.get(f"/api/flights/{flight_id}/audit-logs", headers=auth_headers).json()
        assert sorted(entry["action"] for entry in logs) == ["create", "update", "update"]

    def test_delete(self, client, auth_headers):
        created = create_flight(client, auth_headers)

        response = client.delete(f"/api/flights/{created['_id']}", headers=auth_headers)
        assert response.status_code == 204
        assert client.get(f"/api/flights/{created['_id']}", headers=auth_headers).status_code == 404


class TestFlightValidation:

    @pytest.mark.parametrize("field", ["tail_number", "start_date", "end_date", "start_airport", "notes", "status"])
    def test_null_update_rejected(self, client, auth_headers, field):
        created = create_flight(client, auth_headers)

        response = client.put(f"/api/flights/{created['_id']}", json={field: None}, headers=auth_headers)
        assert response.status_code == 422

        listed = client.get("/api/flights", headers=auth_headers)
        assert listed.status_code == 200
        assert listed.json()[0][field] == created[field]

    def test_company_can_be_cleared(self, client, auth_headers):
        company_id = client.post("/api/companies", json={"name": "Acme Air"}, headers=auth_headers).json()["_id"]
        created = create_flight(client, auth_headers, company_id=company_id)

        response = client.put(f"/api/flights/{created['_id']}", json={"company_id": None}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["company_id"] is None
        assert response.json()["company_name"] is None

    @pytest.mark.parametrize("field", ["tail_number", "start_airport", "end_airport"])
    def test_blank_text_rejected_on_create(self, client, auth_headers, field):
        response = client.post("/api/flights", json={**FLIGHT_JSON, field: "   "}, headers=auth_headers)

        assert response.status_code == 422
        assert client.get("/api/flights", headers=auth_headers).json() == []

    def test_blank_tail_rejected_on_update(self, client, auth_headers):
        created = create_flight(client, auth_headers)

        response = client.put(f"/api/flights/{created['_id']}", json={"tail_number": " "}, headers=auth_headers)
        assert response.status_code == 422
        fetched = client.get(f"/api/flights/{created['_id']}", headers=auth_headers).json()
        assert fetched["tail_number"] == "N123AB"
        print("✓ Blank tail number rejected, flight unchanged")


class TestTaskRoutes:

    def test_task_lifecycle(self, client, auth_headers):
        flight_id = create_flight(client, auth_headers)["_id"]

        created = client.post(f"/api/flights/{flight_id}/tasks", json={"description": "  Fuel  "},
                              headers=auth_headers)
        assert created.status_code == 201
        task = created.json()
        assert task["description"] == "Fuel"
        assert task["completed"] is False

        toggled = client.patch(f"/api/tasks/{task['_id']}", json={"completed": True}, headers=auth_headers)
        assert toggled.json()["completed"] is True

        listed = client.get(f"/api/flights/{flight_id}/tasks", headers=auth_headers).json()
        assert [t["_id"] for t in listed] == [task["_id"]]

        assert client.delete(f"/api/tasks/{task['_id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/flights/{flight_id}/tasks", headers=auth_headers).json() == []

    @pytest.mark.parametrize("body", [{"description": None}, {"description": "  "}, {"completed": None}])
    def test_invalid_patch_rejected(self, client, auth_headers, body):
        flight_id = create_flight(client, auth_headers)["_id"]
        task = client.post(f"/api/flights/{flight_id}/tasks", json={"description": "Fuel"}, headers=auth_headers).json()

        response = client.patch(f"/api/tasks/{task['_id']}", json=body, headers=auth_headers)
        assert response.status_code == 422

        listed = client.get(f"/api/flights/{flight_id}/tasks", headers=auth_headers)
        assert listed.status_code == 200
        assert listed.json()[0]["description"] == "Fuel"
        assert listed.json()[0]["completed"] is False

    def test_blank_description_rejected(self, client, auth_headers):
        flight_id = create_flight(client, auth_headers)["_id"]
        response = client.post(f"/api/flights/{flight_id}/tasks", json={"description": "   "}, headers=auth_headers)
        assert response.status_code == 422

    def test_task_for_missing_flight(self, client, auth_headers):
        response = client.post("/api/flights/missing/tasks", json={"description": "Fuel"}, headers=auth_headers)
        assert response.status_code == 404


class TestCompanyRoutes:

    def test_company_with_tails(self, client, auth_headers):
        response = client.post("/api/companies", json={"name": "Acme Air", "tails": ["n1", "n2"]},
                               headers=auth_headers)
        assert response.status_code == 201
        company_id = response.json()["_id"]

        tails = client.get(f"/api/companies/{company_id}/tails", headers=auth_headers).json()
        assert [t["tail_number"] for t in tails] == ["N1", "N2"]

        duplicate = client.post(f"/api/companies/{company_id}/tails", json={"tail_number": "n1"},
                                headers=auth_headers)
        assert duplicate.status_code == 409

        removed = client.delete(f"/api/companies/{company_id}/tails/n2", headers=auth_headers)
        assert removed.json() == {"removed": 1}

        updated = client.put(f"/api/companies/{company_id}", json={"name": "Acme Aviation", "tails": ["N1", "N3"]},
                             headers=auth_headers)
        assert updated.json()["name"] == "Acme Aviation"
        tails = client.get(f"/api/companies/{company_id}/tails", headers=auth_headers).json()
        assert [t["tail_number"] for t in tails] == ["N1", "N3"]

    def test_blank_tail_rejected(self, client, auth_headers):
        company_id = client.post("/api/companies", json={"name": "Acme Air"}, headers=auth_headers).json()["_id"]

        response = client.post(f"/api/companies/{company_id}/tails", json={"tail_number": "   "},
                               headers=auth_headers)
        assert response.status_code == 422
        assert client.get(f"/api/companies/{company_id}/tails", headers=auth_headers).json() == []

    def test_flight_shows_company_name(self, client, auth_headers):
        company_id = client.post("/api/companies", json={"name": "Acme Air"}, headers=auth_headers).json()["_id"]
        flight = create_flight(client, auth_headers, company_id=company_id)

        assert flight["company_name"] == "Acme Air"
        listed = client.get("/api/flights", params={"company_id": company_id}, headers=auth_headers).json()
        assert [f["company_name"] for f in listed] == ["Acme Air"]

    def test_delete_company(self, client, auth_headers):
        company_id = client.post("/api/companies", json={"name": "Acme Air"}, headers=auth_headers).json()["_id"]

        assert client.delete(f"/api/companies/{company_id}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/companies/{company_id}", headers=auth_headers).status_code == 404


class TestLockRoutes:

    def test_lock_flow(self, client, auth_headers, other_headers, user):
        flight_id = create_flight(client, auth_headers)["_id"]

        acquired = client.post(f"/api/flights/{flight_id}/lock", headers=auth_headers)
        assert acquired.status_code == 200
        assert acquired.json()["user_email"] == user.email

        refused = client.post(f"/api/flights/{flight_id}/lock", headers=other_headers)
        assert refused.status_code == 403

        holder = client.get(f"/api/flights/{flight_id}/lock", headers=other_headers).json()
        assert holder["user_id"] == user.id

        all_locks = client.get("/api/flight-locks", headers=other_headers).json()
        assert [lock["_id"] for lock in all_locks] == [flight_id]

        released = client.delete(f"/api/flights/{flight_id}/lock", headers=auth_headers)
        assert released.json() == {"released": True}
        assert client.get(f"/api/flights/{flight_id}/lock", headers=auth_headers).json() is None

    def test_lock_missing_flight(self, client, auth_headers):
        assert client.post("/api/flights/missing/lock", headers=auth_headers).status_code == 404


class TestCalendarRoute:

    @pytest.mark.parametrize("view,expected", [("month", 2), ("week", 2), ("day", 1)])
    def test_calendar_views(self, client, auth_headers, view, expected):
        create_flight(client, auth_headers)
        create_flight(client, auth_headers, tail_number="N9",
                      start_date="2026-03-11T08:00:00", end_date="2026-03-11T09:00:00")
        create_flight(client, auth_headers, tail_number="N7",
                      start_date="2026-04-20T08:00:00", end_date="2026-04-20T09:00:00")

        response = client.get("/api/calendar", params={"view": view, "date": "2026-03-10T00:00:00"},
                              headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert len(body["events"]) == expected
        assert body["total_flights"] == 3
        assert body["busiest_day_count"] == 1

    def test_calendar_task_badges(self, client, auth_headers):
        flight_id = create_flight(client, auth_headers)["_id"]
        client.post(f"/api/flights/{flight_id}/tasks", json={"description": "Fuel"}, headers=auth_headers)

        body = client.get("/api/calendar", params={"date": "2026-03-01T00:00:00"}, headers=auth_headers).json()
        assert body["events"][0]["status"] == "open_tasks"
        assert body["events"][0]["title"] == " - N123AB"

    def test_calendar_defaults_to_current_day(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr("routes.calendar.utcnow", lambda: datetime(2026, 3, 10, 9, 30))
        create_flight(client, auth_headers)

        body = client.get("/api/calendar", params={"view": "day"}, headers=auth_headers).json()
        assert body["date"] == "2026-03-10T09:30:00"
        assert len(body["events"]) == 1
