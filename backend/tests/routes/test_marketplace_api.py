from __future__ import annotations

import pytest

THERAPIST = ("therapist-1", "therapist")
CLIENT = ("client-1", "client")
ADMIN = ("admin-1", "admin")


@pytest.fixture
def client(api_client, headers):
    profiles = [
        (
            "therapist-1",
            {
                "name": "Dr. Asha Rao",
                "email": "asha@example.com",
                "bio": "CBT and mindfulness",
                "specializations": ["Anxiety", "Depression"],
                "languages": ["English", "Hindi"],
                "location": "Bengaluru",
                "experience_years": 8,
                "price": 2500,
                "accepts_online": True,
                "accepts_in_person": True,
            },
        ),
        (
            "therapist-2",
            {
                "name": "Ben Thomas",
                "email": "ben@example.com",
                "specializations": ["Relationships"],
                "languages": ["English"],
                "location": "Mumbai",
                "price": 1500,
                "accepts_online": True,
                "accepts_in_person": False,
            },
        ),
    ]
    for therapist_id, body in profiles:
        response = api_client.put(
            "/api/therapists/me", json=body, headers=headers(therapist_id, "therapist")
        )
        assert response.status_code == 200, response.text
    return api_client


def _complete_session(client, headers, time_of_day: str, rating: int) -> str:
    session_id = client.post(
        "/api/sessions",
        json={"therapist_id": "therapist-1", "date": "2030-05-01", "time": time_of_day, "type": "online"},
        headers=headers(*CLIENT),
    ).json()["id"]
    client.post(f"/api/sessions/{session_id}/confirm", headers=headers(*THERAPIST))
    client.post(
        f"/api/sessions/{session_id}/complete",
        json={"rating": rating, "comment": "Thank you"},
        headers=headers(*CLIENT),
    )
    return session_id


class TestTherapistDirectory:
    def test_search(self, client, headers) -> None:
        everyone = client.get("/api/therapists", headers=headers(*CLIENT)).json()
        assert [t["id"] for t in everyone["items"]] == ["therapist-2", "therapist-1"]

        in_person = client.get(
            "/api/therapists", params={"type": "in-person"}, headers=headers(*CLIENT)
        ).json()
        assert [t["id"] for t in in_person["items"]] == ["therapist-1"]

        hindi = client.get(
            "/api/therapists", params={"language": "hindi"}, headers=headers(*CLIENT)
        ).json()
        assert hindi["total"] == 1

        cheap = client.get(
            "/api/therapists", params={"max_price": 2000}, headers=headers(*CLIENT)
        ).json()
        assert [t["id"] for t in cheap["items"]] == ["therapist-2"]

    def test_profile(self, client, headers) -> None:
        response = client.get("/api/therapists/therapist-1", headers=headers(*CLIENT))
        assert response.status_code == 200
        assert response.json()["specializations"] == ["Anxiety", "Depression"]

        missing = client.get("/api/therapists/nobody", headers=headers(*CLIENT))
        assert missing.status_code == 404

    def test_clients_cannot_create_profiles(self, client, headers) -> None:
        response = client.put(
            "/api/therapists/me",
            json={"name": "X", "email": "x@example.com", "price": 100},
            headers=headers(*CLIENT),
        )
        assert response.status_code == 403

    def test_duplicate_email(self, client, headers) -> None:
        response = client.put(
            "/api/therapists/me",
            json={"name": "Copycat", "email": "asha@example.com", "price": 100},
            headers=headers("therapist-3", "therapist"),
        )
        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_TAKEN"


class TestAvailability:
    def test_open_slots_exclude_booked(self, client, headers) -> None:
        declared = client.put(
            "/api/therapists/me/availability",
            json={
                "slots": [
                    {"date": "2030-05-01", "time": "10:00"},
                    {"date": "2030-05-01", "time": "11:00"},
                ]
            },
            headers=headers(*THERAPIST),
        )
        assert declared.status_code == 200
        assert len(declared.json()["slots"]) == 2

        client.post(
            "/api/sessions",
            json={"therapist_id": "therapist-1", "date": "2030-05-01", "time": "10:00", "type": "online"},
            headers=headers(*CLIENT),
        )

        open_slots = client.get("/api/therapists/therapist-1/slots", headers=headers(*CLIENT))
        assert open_slots.json()["slots"] == [{"date": "2030-05-01", "time": "11:00"}]

    def test_malformed_slot_rejected(self, client, headers) -> None:
        response = client.put(
            "/api/therapists/me/availability",
            json={"slots": [{"date": "2030-05-01", "time": "25:00"}]},
            headers=headers(*THERAPIST),
        )
        assert response.status_code == 422


class TestDashboards:
    def test_therapist_dashboard_and_reviews(self, client, headers) -> None:
        _complete_session(client, headers, "10:00", 5)
        _complete_session(client, headers, "11:00", 3)

        dashboard = client.get("/api/therapists/me/dashboard", headers=headers(*THERAPIST))
        assert dashboard.status_code == 200
        data = dashboard.json()
        assert data["sessions_by_status"]["completed"] == 2
        assert data["total_earnings"] == 5000.0
        assert data["average_rating"] == 4.0
        assert data["unique_clients"] == 1

        reviews = client.get("/api/therapists/therapist-1/feedback", headers=headers(*CLIENT)).json()
        assert reviews["total_reviews"] == 2
        assert {r["rating"] for r in reviews["items"]} == {3, 5}

    def test_admin_overview(self, client, headers) -> None:
        _complete_session(client, headers, "10:00", 4)

        overview = client.get("/api/admin/overview", headers=headers(*ADMIN))
        assert overview.status_code == 200
        data = overview.json()
        assert data["total_sessions"] == 1
        assert data["therapist_count"] == 2
        assert data["sessions_by_type"]["online"] == 1
        assert data["average_rating"] == 4.0

        forbidden = client.get("/api/admin/overview", headers=headers(*CLIENT))
        assert forbidden.status_code == 403


class TestNotifications:
    def test_read_flow(self, client, headers) -> None:
        client.post(
            "/api/sessions",
            json={"therapist_id": "therapist-1", "date": "2030-05-01", "time": "10:00", "type": "online"},
            headers=headers(*CLIENT),
        )

        inbox = client.get("/api/notifications", headers=headers(*THERAPIST)).json()
        assert inbox["unread_count"] == 1
        note = inbox["items"][0]
        assert note["title"] == "New Session Request"

        marked = client.post(f"/api/notifications/{note['id']}/read", headers=headers(*THERAPIST))
        assert marked.json()["read"] is True

        unread = client.get(
            "/api/notifications", params={"unread_only": True}, headers=headers(*THERAPIST)
        ).json()
        assert unread["items"] == []

        assert client.post("/api/notifications/read-all", headers=headers(*CLIENT)).json() == {
            "updated": 1
        }

    def test_cannot_mark_someone_elses_notification(self, client, headers) -> None:
        response = client.post("/api/notifications/unknown/read", headers=headers(*CLIENT))
        assert response.status_code == 404
        assert response.json()["code"] == "NOTIFICATION_NOT_FOUND"


class TestMonitoring:
    def test_health(self, client) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] in {"healthy", "degraded"}

    def test_metrics(self, client, headers) -> None:
        client.get("/api/sessions", headers=headers(*CLIENT))
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "therasoul_service_operations_total" in response.text
