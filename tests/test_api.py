"""End-to-end tests through the FastAPI app."""

import pytest
from fastapi.testclient import TestClient

from booking_engine.database import get_db
from booking_engine.main import app
from conftest import CLIENT, OTHER_CLIENT, PROVIDER

WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

DEFINITION = {
    "title": "Office hours",
    "timezone": "UTC",
    "minAdvanceMinutes": 0,
    "maxAdvanceDays": 7,
    "dailyConfigs": {
        day: {"enabled": True, "timeBlocks": [{"startTime": "09:00", "endTime": "17:00", "slotDuration": 60}]}
        for day in WEEKDAYS
    },
}


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _as(person_id):
    return {"X-Person-Id": person_id}


@pytest.fixture
def definition_id(client):
    response = client.post("/availability", json=DEFINITION, headers=_as(PROVIDER))
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def first_slot(client, definition_id):
    response = client.get("/slots/next", params={"ownerId": PROVIDER})
    assert response.status_code == 200
    return response.json()


class TestAvailabilityEndpoints:
    def test_create_and_read(self, client, definition_id):
        body = client.get(f"/availability/{definition_id}").json()
        assert body["ownerId"] == PROVIDER
        assert body["status"] == "active"
        assert body["locationTypes"] == ["video", "phone", "in-person"]

    def test_missing_person_header(self, client):
        assert client.post("/availability", json=DEFINITION).status_code == 401

    def test_invalid_block_uses_error_envelope(self, client):
        payload = dict(DEFINITION, dailyConfigs={"mon": {"enabled": True, "timeBlocks": [{"startTime": "9", "endTime": "10:00"}]}})
        response = client.post("/availability", json=payload, headers=_as(PROVIDER))
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_list_own_definitions(self, client, definition_id):
        assert [d["id"] for d in client.get("/availability", headers=_as(PROVIDER)).json()] == [definition_id]
        assert client.get("/availability", headers=_as(CLIENT)).json() == []

    def test_update_by_other_person_forbidden(self, client, definition_id):
        response = client.patch(f"/availability/{definition_id}", json={"title": "x"}, headers=_as(CLIENT))
        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    def test_pause_removes_available_slots(self, client, definition_id):
        client.patch(f"/availability/{definition_id}", json={"status": "paused"}, headers=_as(PROVIDER))
        assert client.get("/slots", params={"definitionId": definition_id}).json() == []

    def test_delete(self, client, definition_id):
        response = client.delete(f"/availability/{definition_id}", headers=_as(PROVIDER))
        assert response.status_code == 200
        assert client.get(f"/availability/{definition_id}").status_code == 404


class TestSlotEndpoints:
    def test_list_requires_owner_or_definition(self, client):
        assert client.get("/slots").status_code == 422

    def test_list_by_owner_and_location(self, client, definition_id):
        slots = client.get("/slots", params={"ownerId": PROVIDER, "locationType": "phone"}).json()
        assert slots
        assert all(s["status"] == "available" and s["durationMinutes"] == 60 for s in slots)
        starts = [s["startTime"] for s in slots]
        assert starts == sorted(starts)

    def test_unknown_slot(self, client):
        assert client.get("/slots/nope").status_code == 404


class TestExceptionEndpoints:
    def test_create_list_delete(self, client, definition_id, first_slot):
        start = first_slot["startTime"]
        response = client.post(
            f"/availability/{definition_id}/exceptions",
            json={"startDatetime": start, "endDatetime": first_slot["endTime"], "reason": "Dentist"},
            headers=_as(PROVIDER),
        )
        assert response.status_code == 201
        exception_id = response.json()["id"]

        starts = [s["startTime"] for s in client.get("/slots", params={"definitionId": definition_id}).json()]
        assert start not in starts

        listed = client.get(f"/availability/{definition_id}/exceptions", headers=_as(PROVIDER)).json()
        assert [e["id"] for e in listed] == [exception_id]

        response = client.delete(f"/availability/exceptions/{exception_id}", headers=_as(PROVIDER))
        assert response.status_code == 200

    def test_recurrence_both_terminations_rejected(self, client, definition_id, first_slot):
        response = client.post(
            f"/availability/{definition_id}/exceptions",
            json={
                "startDatetime": first_slot["startTime"],
                "endDatetime": first_slot["endTime"],
                "reason": "Weekly sync",
                "recurring": True,
                "recurrencePattern": {"type": "daily", "maxOccurrences": 2, "endDate": "2030-01-01"},
            },
            headers=_as(PROVIDER),
        )
        assert response.status_code == 422


class TestBookingEndpoints:
    def test_book_confirm_and_conflict(self, client, first_slot):
        response = client.post(
            "/bookings", json={"slot": first_slot["id"], "locationType": "video"}, headers=_as(CLIENT)
        )
        assert response.status_code == 201
        booking = response.json()
        assert booking["status"] == "pending"
        assert booking["scheduledAt"].startswith(first_slot["startTime"][:16])

        conflict = client.post("/bookings", json={"slot": first_slot["id"]}, headers=_as(OTHER_CLIENT))
        assert conflict.status_code == 409
        assert conflict.json()["code"] == "slot_unavailable"

        forbidden = client.post(f"/bookings/{booking['id']}/confirm", headers=_as(CLIENT))
        assert forbidden.status_code == 403

        confirmed = client.post(f"/bookings/{booking['id']}/confirm", headers=_as(PROVIDER))
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"

        again = client.post(f"/bookings/{booking['id']}/confirm", headers=_as(PROVIDER))
        assert again.status_code == 409
        assert again.json()["code"] == "illegal_transition"

    def test_reject_without_body(self, client, first_slot):
        booking = client.post("/bookings", json={"slot": first_slot["id"]}, headers=_as(CLIENT)).json()
        response = client.post(f"/bookings/{booking['id']}/reject", headers=_as(PROVIDER))
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"

    def test_cancel_requires_reason(self, client, first_slot):
        booking = client.post("/bookings", json={"slot": first_slot["id"]}, headers=_as(CLIENT)).json()
        client.post(f"/bookings/{booking['id']}/confirm", headers=_as(PROVIDER))

        missing = client.post(f"/bookings/{booking['id']}/cancel", json={}, headers=_as(CLIENT))
        assert missing.status_code == 422

        response = client.post(
            f"/bookings/{booking['id']}/cancel", json={"reason": "Travelling"}, headers=_as(CLIENT)
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["cancelledBy"] == "client"
        assert body["cancelledWithinThreshold"] is True

    def test_no_show_too_early(self, client, first_slot):
        booking = client.post("/bookings", json={"slot": first_slot["id"]}, headers=_as(CLIENT)).json()
        client.post(f"/bookings/{booking['id']}/confirm", headers=_as(PROVIDER))
        response = client.post(f"/bookings/{booking['id']}/no-show", headers=_as(CLIENT))
        assert response.status_code == 409
        assert response.json()["code"] == "no_show_too_early"

    def test_list_scopes(self, client, first_slot):
        client.post("/bookings", json={"slot": first_slot["id"]}, headers=_as(CLIENT))
        upcoming = client.get("/bookings", params={"scope": "upcoming"}, headers=_as(CLIENT)).json()
        assert len(upcoming) == 1
        assert client.get("/bookings", params={"scope": "soon"}, headers=_as(CLIENT)).status_code == 422
