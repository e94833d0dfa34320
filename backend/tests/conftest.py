"""
Shared fixtures for the TheraSoul backend test suite.

Every test gets its own in-memory SQLite database with the full schema,
including the partial unique index that keeps a slot exclusive.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import os
from typing import Callable, Dict, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from therasoul.core.config import Settings, settings
from therasoul.core.enums import RoleName
from therasoul.core.slot_lock import InProcessSlotLocks
from therasoul.database import Base
from therasoul.events import EventPublisher
import therasoul.models  # noqa: F401
from therasoul.models.therapist import Therapist
from therasoul.principal import ActorPrincipal
from therasoul.services.notification_service import InAppNotificationDispatcher, NotificationInbox
from therasoul.services.session_lifecycle_service import SessionLifecycleService
from therasoul.services.therapist_directory import TherapistListing

FIXED_NOW = datetime(2025, 1, 10, 9, 0, tzinfo=timezone.utc)


class FakeTherapistDirectory:
    """In-memory directory keyed by therapist id."""

    def __init__(self) -> None:
        self.listings: Dict[str, TherapistListing] = {}

    def add(
        self,
        therapist_id: str,
        *,
        name: str = "Dr. Asha Rao",
        price: str = "2500",
        accepts_in_person: bool = True,
        accepts_online: bool = True,
    ) -> TherapistListing:
        listing = TherapistListing(
            id=therapist_id,
            name=name,
            price=Decimal(price),
            accepts_in_person=accepts_in_person,
            accepts_online=accepts_online,
        )
        self.listings[therapist_id] = listing
        return listing

    def get_therapist(self, therapist_id: str) -> Optional[TherapistListing]:
        return self.listings.get(therapist_id)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_settings() -> Settings:
    return settings.model_copy(
        update={
            "meet_link_base_url": "https://meet.google.com",
            "late_cancellation_window_hours": 24,
            "session_timezone": "Asia/Kolkata",
            "slot_lock_redis_url": None,
            "slot_lock_wait_seconds": 2.0,
            "auto_create_tables": False,
        }
    )


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def directory() -> FakeTherapistDirectory:
    directory = FakeTherapistDirectory()
    directory.add("therapist-1")
    directory.add("therapist-online-only", name="Dr. Meera Iyer", accepts_in_person=False)
    return directory


@pytest.fixture
def inbox() -> NotificationInbox:
    return NotificationInbox(limit=50)


@pytest.fixture
def publisher(inbox) -> EventPublisher:
    return EventPublisher(InAppNotificationDispatcher(inbox))


@pytest.fixture
def slot_locks() -> InProcessSlotLocks:
    return InProcessSlotLocks(wait_seconds=2.0)


@pytest.fixture
def lifecycle(db, directory, slot_locks, publisher, test_settings, clock) -> SessionLifecycleService:
    return SessionLifecycleService(
        db,
        therapist_directory=directory,
        slot_locks=slot_locks,
        event_publisher=publisher,
        config=test_settings,
        clock=clock,
    )


@pytest.fixture
def make_actor() -> Callable[[str, RoleName], ActorPrincipal]:
    def _make(actor_id: str, role: RoleName = RoleName.CLIENT) -> ActorPrincipal:
        return ActorPrincipal(actor_id=actor_id, role=role)

    return _make


@pytest.fixture
def client_actor(make_actor) -> ActorPrincipal:
    return make_actor("client-1", RoleName.CLIENT)


@pytest.fixture
def other_client(make_actor) -> ActorPrincipal:
    return make_actor("client-2", RoleName.CLIENT)


@pytest.fixture
def therapist_actor(make_actor) -> ActorPrincipal:
    return make_actor("therapist-1", RoleName.THERAPIST)


@pytest.fixture
def admin_actor(make_actor) -> ActorPrincipal:
    return make_actor("admin-1", RoleName.ADMIN)


@pytest.fixture
def add_therapist(db) -> Callable[..., Therapist]:
    """Insert a therapist profile row and return it."""

    def _add(therapist_id: str = "therapist-1", **overrides) -> Therapist:
        fields = {
            "id": therapist_id,
            "name": "Dr. Asha Rao",
            "email": f"{therapist_id}@example.com",
            "bio": "CBT and mindfulness",
            "specializations": ["Anxiety", "Depression"],
            "languages": ["English", "Hindi"],
            "location": "Bengaluru",
            "experience_years": 8,
            "price": Decimal("2500"),
            "accepts_online": True,
            "accepts_in_person": True,
            "is_active": True,
        }
        fields.update(overrides)
        therapist = Therapist(**fields)
        db.add(therapist)
        db.commit()
        return therapist

    return _add


@pytest.fixture
def app(session_factory, test_settings):
    from therasoul.database import get_db
    from therasoul.main import create_app

    application = create_app(test_settings)

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def api_client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


def actor_headers(actor_id: str, role: str) -> Dict[str, str]:
    return {"X-Actor-Id": actor_id, "X-Actor-Role": role}


@pytest.fixture
def headers() -> Callable[[str, str], Dict[str, str]]:
    return actor_headers
