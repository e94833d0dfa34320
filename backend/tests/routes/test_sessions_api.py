from __future__ import annotations

import pytest

THERAPIST = ("therapist-1", "therapist")
CLIENT = ("client-1", "client")
OTHER_CLIENT = ("client-2", "client")
ADMIN = ("admin-1", "admin")

SLOT = {"date": "2030-05-01", "time": "10:00"}


def _profile(**overrides):
    body = {
        "name": "Dr. Asha Rao",
        "email": "asha@example.com",
        "bio": "CBT and mindfulness",
        "specializations": ["Anxiety"],
        "languages": ["English"],
        "location": "Bengaluru",
        "experience_years": 8,
        "price": 2500,
        "accepts_online": True,
        "accepts_in_person": True,
    }
    body.update(overrides)
    return body


@pytest.fixture
def client(api_client, headers):
    response = api_client.put(
        "/api/therapists/me", json=_profile(), headers=headers(*THERAPIST)
    )
    assert response.status_code == 200
    return api_client


def _book(client, headers, actor=CLIENT, **overrides):
    body = {"therapist_id": "therapist-1", "type": "online", **SLOT}
    body.update(overrides)
    return client.post("/api/sessions", json=body, headers=headers(*actor))


class TestBookingFlow:
    def test_book_confirm_complete(self, client, headers) -> None:
        booked = _book(client, headers)
        assert booked.status_code == 201
        session = booked.json()
        assert session["status"] == "pending"
        assert session["price"] == 2500.0
        assert session["therapist_name"] == "Dr. Asha Rao"
        assert session["meet_link"] is None

        conflict = _book(client, headers, actor=OTHER_CLIENT)
        assert conflict.status_code == 409
        assert conflict.json()["code"] == "SLOT_CONFLICT"
        assert conflict.headers["content-type"].startswith("application/problem+json")

        confirmed = client.post(
            f"/api/sessions/{session['id']}/confirm", headers=headers(*THERAPIST)
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "confirmed"
        assert confirmed.json()["meet_link"].startswith("https://meet.google.com/")

        stranger = client.post(
            f"/api/sessions/{session['id']}/complete",
            json={"rating": 5},
            headers=headers(*OTHER_CLIENT),
        )
        assert stranger.status_code == 403
        assert stranger.json()["code"] == "NOT_AUTHORIZED"

        completed = client.post(
            f"/api/sessions/{session['id']}/complete",
            json={"rating": 5, "comment": "  Great first session "},
            headers=headers(*CLIENT),
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

        feedback = client.get(
            f"/api/sessions/{session['id']}/feedback", headers=headers(*THERAPIST)
        )
        assert feedback.status_code == 200
        assert feedback.json()["rating"] == 5
        assert feedback.json()["comment"] == "Great first session"

    def test_cancelled_session_cannot_be_confirmed(self, client, headers) -> None:
        session_id = _book(client, headers).json()["id"]

        cancelled = client.post(
            f"/api/sessions/{session_id}/cancel",
            json={"reason": "Travelling"},
            headers=headers(*CLIENT),
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"
        assert cancelled.json()["cancellation_reason"] == "Travelling"
        assert cancelled.json()["cancelled_by_role"] == "client"

        confirm = client.post(f"/api/sessions/{session_id}/confirm", headers=headers(*THERAPIST))
        assert confirm.status_code == 422
        body = confirm.json()
        assert body["code"] == "INVALID_TRANSITION"
        assert body["errors"]["current_status"] == "cancelled"

    def test_cancel_without_body(self, client, headers) -> None:
        session_id = _book(client, headers).json()["id"]
        response = client.post(f"/api/sessions/{session_id}/cancel", headers=headers(*ADMIN))
        assert response.status_code == 200
        assert response.json()["cancelled_by_role"] == "admin"

    def test_in_person_not_offered(self, client, headers) -> None:
        client.put(
            "/api/therapists/me",
            json=_profile(accepts_in_person=False),
            headers=headers(*THERAPIST),
        )
        response = _book(client, headers, type="in-person")
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SESSION_TYPE"

        listed = client.get("/api/sessions", headers=headers(*CLIENT))
        assert listed.json()["total"] == 0

    def test_invalid_rating(self, client, headers) -> None:
        session_id = _book(client, headers).json()["id"]
        client.post(f"/api/sessions/{session_id}/confirm", headers=headers(*THERAPIST))

        response = client.post(
            f"/api/sessions/{session_id}/complete", json={"rating": 9}, headers=headers(*CLIENT)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_RATING"

        session = client.get(f"/api/sessions/{session_id}", headers=headers(*CLIENT)).json()
        assert session["status"] == "confirmed"

    def test_payment_declined(self, client, headers) -> None:
        client.put(
            "/api/therapists/me", json=_profile(price=250000), headers=headers(*THERAPIST)
        )
        response = _book(client, headers)
        assert response.status_code == 422
        assert response.json()["code"] == "PAYMENT_FAILED"

        notes = client.get("/api/notifications", headers=headers(*CLIENT)).json()
        assert notes["items"][0]["title"] == "Payment Failed"

    def test_therapist_cannot_book(self, client, headers) -> None:
        response = _book(client, headers, actor=THERAPIST)
        assert response.status_code == 403

    def test_unknown_therapist(self, client, headers) -> None:
        response = _book(client, headers, therapist_id="nobody")
        assert response.status_code == 404
        assert response.json()["code"] == "THERAPIST_NOT_FOUND"


class TestRequestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"date": "01-05-2030"},
            {"time": "10am"},
            {"type": "phone"},
            {"price": 1},
        ],
    )
    def test_rejects_malformed_booking(self, client, headers, overrides) -> None:
        response = _book(client, headers, **overrides)
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_missing_identity(self, client) -> None:
        response = client.get("/api/sessions")
        assert response.status_code == 401
        assert response.json()["code"] == "MISSING_IDENTITY"

    def test_unknown_role(self, client) -> None:
        response = client.get(
            "/api/sessions", headers={"X-Actor-Id": "u-1", "X-Actor-Role": "superuser"}
        )
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_ROLE"


class TestListingAndAccess:
    def test_list_is_scoped_by_role(self, client, headers) -> None:
        first = _book(client, headers).json()
        second = _book(client, headers, actor=OTHER_CLIENT, time="11:00").json()

        mine = client.get("/api/sessions", headers=headers(*CLIENT)).json()
        assert [s["id"] for s in mine["items"]] == [first["id"]]

        therapist_view = client.get("/api/sessions", headers=headers(*THERAPIST)).json()
        assert {s["id"] for s in therapist_view["items"]} == {first["id"], second["id"]}

        admin_view = client.get(
            "/api/sessions", params={"status": "pending"}, headers=headers(*ADMIN)
        ).json()
        assert admin_view["total"] == 2

    def test_stranger_cannot_read_session(self, client, headers) -> None:
        session_id = _book(client, headers).json()["id"]
        response = client.get(f"/api/sessions/{session_id}", headers=headers(*OTHER_CLIENT))
        assert response.status_code == 403

    def test_unknown_session(self, client, headers) -> None:
        response = client.get("/api/sessions/missing", headers=headers(*ADMIN))
        assert response.status_code == 404
        assert response.json()["code"] == "SESSION_NOT_FOUND"

    def test_bad_status_filter(self, client, headers) -> None:
        response = client.get("/api/sessions", params={"status": "archived"}, headers=headers(*ADMIN))
        assert response.status_code == 422
