from __future__ import annotations

from decimal import Decimal

import pytest

from therasoul.core.enums import RoleName
from therasoul.core.exceptions import (
    ConflictException,
    NotAuthorizedException,
    TherapistNotFoundException,
)
from therasoul.schemas.therapist import TherapistProfileUpsert
from therasoul.services.therapist_service import TherapistService


@pytest.fixture
def service(db, test_settings, clock) -> TherapistService:
    return TherapistService(db, config=test_settings, clock=clock)


def _profile(**overrides) -> TherapistProfileUpsert:
    fields = {
        "name": "Dr. Kavya Menon",
        "email": "kavya@example.com",
        "bio": "Trauma-informed therapy",
        "specializations": ["Trauma", " PTSD ", "Trauma"],
        "languages": ["English", "Malayalam"],
        "location": "Kochi",
        "experience_years": 5,
        "price": 1800,
        "accepts_online": True,
        "accepts_in_person": True,
    }
    fields.update(overrides)
    return TherapistProfileUpsert(**fields)


class TestProfiles:
    def test_therapist_creates_then_updates_own_profile(self, service, make_actor) -> None:
        actor = make_actor("therapist-9", RoleName.THERAPIST)

        created = service.upsert_profile(actor, _profile())
        assert created.id == "therapist-9"
        assert created.specializations == ["Trauma", "PTSD"]
        assert created.price == Decimal("1800")

        updated = service.upsert_profile(actor, _profile(price=2200, accepts_in_person=False))
        assert updated.id == "therapist-9"
        assert updated.price == Decimal("2200")
        assert updated.accepts_in_person is False
        assert service.get_profile("therapist-9").name == "Dr. Kavya Menon"

    def test_email_of_another_therapist_is_rejected(self, service, make_actor, add_therapist) -> None:
        add_therapist("therapist-1", email="taken@example.com")
        with pytest.raises(ConflictException) as exc:
            service.upsert_profile(
                make_actor("therapist-9", RoleName.THERAPIST), _profile(email="taken@example.com")
            )
        assert exc.value.code == "EMAIL_TAKEN"

    def test_clients_cannot_upsert(self, service, client_actor) -> None:
        with pytest.raises(NotAuthorizedException):
            service.upsert_profile(client_actor, _profile())

    def test_profile_must_offer_a_type(self) -> None:
        with pytest.raises(ValueError):
            _profile(accepts_online=False, accepts_in_person=False)

    def test_inactive_profile_is_hidden(self, service, add_therapist) -> None:
        add_therapist("therapist-1", is_active=False)
        with pytest.raises(TherapistNotFoundException):
            service.get_profile("therapist-1")
        with pytest.raises(TherapistNotFoundException):
            service.get_profile("missing")


class TestSearch:
    @pytest.fixture(autouse=True)
    def therapists(self, add_therapist) -> None:
        add_therapist("t-asha", name="Asha Rao", price=Decimal("2500"))
        add_therapist(
            "t-ben",
            name="Ben Thomas",
            bio="Couples counselling",
            specializations=["Relationships"],
            languages=["English"],
            location="Mumbai",
            price=Decimal("1500"),
            accepts_in_person=False,
        )
        add_therapist("t-chitra", name="Chitra Das", is_active=False)

    def test_active_only_ordered_by_name(self, service) -> None:
        assert [t.id for t in service.search()] == ["t-asha", "t-ben"]

    def test_text_query(self, service) -> None:
        assert [t.id for t in service.search(query="mumbai")] == ["t-ben"]
        assert [t.id for t in service.search(query="MINDFUL")] == ["t-asha"]

    def test_list_filters_are_case_insensitive(self, service) -> None:
        assert [t.id for t in service.search(specialization="anxiety")] == ["t-asha"]
        assert [t.id for t in service.search(language="hindi")] == ["t-asha"]

    def test_type_and_price(self, service) -> None:
        assert [t.id for t in service.search(session_type="in-person")] == ["t-asha"]
        assert [t.id for t in service.search(session_type="online")] == ["t-asha", "t-ben"]
        assert [t.id for t in service.search(max_price=2000)] == ["t-ben"]

    def test_pagination(self, service) -> None:
        assert [t.id for t in service.search(skip=1, limit=1)] == ["t-ben"]


class TestAvailability:
    def test_replace_and_open_slots(
        self, service, add_therapist, therapist_actor, lifecycle
    ) -> None:
        add_therapist("therapist-1")
        declared = service.replace_availability(
            therapist_actor,
            [
                ("2025-01-15", "11:00"),
                ("2025-01-15", "10:00"),
                ("2025-01-15", "10:00"),
                ("2025-01-09", "10:00"),
            ],
        )
        assert declared == [
            ("2025-01-09", "10:00"),
            ("2025-01-15", "10:00"),
            ("2025-01-15", "11:00"),
        ]

        lifecycle.create_session("client-1", "therapist-1", "2025-01-15", "10:00", "online")

        # Today is 2025-01-10 in the session timezone.
        assert service.get_open_slots("therapist-1") == [("2025-01-15", "11:00")]
        assert service.get_open_slots("therapist-1", from_date="2025-01-01") == [
            ("2025-01-09", "10:00"),
            ("2025-01-15", "11:00"),
        ]

    def test_replace_drops_previous_slots(self, service, add_therapist, therapist_actor) -> None:
        add_therapist("therapist-1")
        service.replace_availability(therapist_actor, [("2025-01-20", "09:00")])
        service.replace_availability(therapist_actor, [("2025-01-21", "09:00")])
        assert service.get_open_slots("therapist-1") == [("2025-01-21", "09:00")]

    def test_requires_a_profile(self, service, therapist_actor) -> None:
        with pytest.raises(TherapistNotFoundException):
            service.replace_availability(therapist_actor, [("2025-01-20", "09:00")])


class TestDashboard:
    def test_counts_earnings_and_rating(
        self, service, lifecycle, therapist_actor, client_actor, other_client, admin_actor
    ) -> None:
        first = lifecycle.create_session("client-1", "therapist-1", "2025-01-15", "10:00", "online")
        second = lifecycle.create_session("client-2", "therapist-1", "2025-01-15", "11:00", "online")
        third = lifecycle.create_session("client-1", "therapist-1", "2025-01-16", "10:00", "online")
        lifecycle.create_session("client-2", "therapist-online-only", "2025-01-15", "10:00", "online")

        for session, actor, rating in ((first, client_actor, 5), (second, other_client, 4)):
            lifecycle.confirm_session(therapist_actor, session.id)
            lifecycle.complete_session(actor, session.id, rating)
        lifecycle.cancel_session(admin_actor, third.id)

        data = service.dashboard(therapist_actor)

        assert data["sessions_by_status"] == {
            "pending": 0,
            "confirmed": 0,
            "completed": 2,
            "cancelled": 1,
        }
        assert data["total_earnings"] == 5000.0
        assert data["unique_clients"] == 2
        assert data["average_rating"] == 4.5
        assert data["total_reviews"] == 2
        assert data["upcoming"] == 0

    def test_clients_have_no_dashboard(self, service, client_actor) -> None:
        with pytest.raises(NotAuthorizedException):
            service.dashboard(client_actor)
