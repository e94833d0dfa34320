# backend/therasoul/models/therapy_session.py
"""
Therapy session model for the TheraSoul platform.

A session is a self-contained booking between a client and a therapist for
one slot (therapist, date, time). Price, type and the therapist's display
name are snapshotted at booking time so later profile changes never touch
existing sessions.

Status only moves along the lifecycle graph:

    pending -> confirmed | cancelled
    confirmed -> completed | cancelled

Sessions are never deleted; cancellation is a status.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
import logging
from typing import Any, Dict, FrozenSet, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship, validates

from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)

SESSION_DATE_FORMAT = "%Y-%m-%d"
SESSION_TIME_FORMAT = "%H:%M"
ACTIVE_SLOT_INDEX = "uq_sessions_active_slot"


class SessionStatus(str, Enum):
    """Session lifecycle statuses."""

    PENDING = "pending"  # Requested by the client, waiting for the therapist
    CONFIRMED = "confirmed"  # Accepted by the therapist
    COMPLETED = "completed"  # Client submitted feedback
    CANCELLED = "cancelled"  # Cancelled by a party or an admin


class SessionType(str, Enum):
    """How the session takes place."""

    ONLINE = "online"
    IN_PERSON = "in-person"


ACTIVE_STATUSES: FrozenSet[SessionStatus] = frozenset(
    {SessionStatus.PENDING, SessionStatus.CONFIRMED}
)
TERMINAL_STATUSES: FrozenSet[SessionStatus] = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.CONFIRMED, SessionStatus.CANCELLED}),
    SessionStatus.CONFIRMED: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

# Set once at creation; the ORM refuses to change them afterwards.
IMMUTABLE_FIELDS = (
    "client_id",
    "therapist_id",
    "date",
    "time",
    "price",
    "session_type",
    "payment_transaction_id",
)


def can_transition(current: str, target: str) -> bool:
    """Whether the lifecycle graph has an edge current -> target."""
    return SessionStatus(target) in ALLOWED_TRANSITIONS[SessionStatus(current)]


class TherapySession(Base):
    """
    Booking of one therapist slot by one client.

    The slot is exclusive while the session is active (pending or confirmed);
    the partial unique index ``uq_sessions_active_slot`` enforces it in the
    database.
    """

    __tablename__ = "sessions"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    client_id = Column(String(64), nullable=False, index=True)
    therapist_id = Column(String(64), nullable=False, index=True)
    therapist_name = Column(String(255), nullable=False, default="")

    # Slot
    date = Column(String(10), nullable=False)
    time = Column(String(5), nullable=False)

    status = Column(String(20), nullable=False, default=SessionStatus.PENDING.value, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    session_type = Column("type", String(20), nullable=False)
    meet_link = Column(String(512), nullable=True)
    payment_transaction_id = Column(String(64), nullable=True)

    # Optimistic concurrency counter, bumped by every transition
    version = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Cancellation tracking
    cancelled_by_id = Column(String(64), nullable=True)
    cancelled_by_role = Column(String(20), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    late_cancellation = Column(Boolean, nullable=False, default=False)

    feedback = relationship("Feedback", back_populates="session", uselist=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name="ck_sessions_status",
        ),
        CheckConstraint("type IN ('online', 'in-person')", name="ck_sessions_type"),
        CheckConstraint("price >= 0", name="check_price_non_negative"),
        Index(
            ACTIVE_SLOT_INDEX,
            "therapist_id",
            "date",
            "time",
            unique=True,
            postgresql_where=text("status IN ('pending', 'confirmed')"),
            sqlite_where=text("status IN ('pending', 'confirmed')"),
        ),
    )

    @validates(*IMMUTABLE_FIELDS)
    def _guard_immutable(self, key: str, value: Any) -> Any:
        current = self.__dict__.get(key)
        if current is not None and current != value:
            raise ValueError(f"{key} cannot change once a session is created")
        return value

    def __repr__(self) -> str:
        return (
            f"<TherapySession {self.id}: client={self.client_id}, "
            f"therapist={self.therapist_id}, slot={self.date} {self.time}, "
            f"status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return SessionStatus(self.status) in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return SessionStatus(self.status) in TERMINAL_STATUSES

    @property
    def is_online(self) -> bool:
        return self.session_type == SessionType.ONLINE.value

    def is_party(self, actor_id: str, role: Optional[str] = None) -> bool:
        """Client or therapist of this session; ``role`` pins which side must match."""
        if role is None:
            return actor_id in (self.client_id, self.therapist_id)
        if role == "client":
            return actor_id == self.client_id
        if role == "therapist":
            return actor_id == self.therapist_id
        return False

    def scheduled_start(self, tz_name: str) -> datetime:
        """Scheduled start as an aware datetime in ``tz_name``."""
        naive = datetime.strptime(
            f"{self.date} {self.time}", f"{SESSION_DATE_FORMAT} {SESSION_TIME_FORMAT}"
        )
        return naive.replace(tzinfo=ZoneInfo(tz_name))

    def is_within_late_window(self, now: datetime, tz_name: str, window_hours: int) -> bool:
        """
        True when ``now`` is less than ``window_hours`` before the scheduled
        start, or already past it.
        """
        return now >= self.scheduled_start(tz_name) - timedelta(hours=window_hours)


def parse_slot(date_value: str, time_value: str) -> Optional[datetime]:
    """Parse a slot's date/time strings, None when either is malformed."""
    try:
        return datetime.strptime(
            f"{date_value} {time_value}", f"{SESSION_DATE_FORMAT} {SESSION_TIME_FORMAT}"
        )
    except ValueError:
        return None


def normalize_slot(date_value: str, time_value: str) -> Optional[Tuple[str, str]]:
    """
    Canonical ``(YYYY-MM-DD, HH:MM)`` strings for a slot, None when malformed.

    ``strptime`` tolerates unpadded fields such as ``9:0``; the stored slot
    key is always the zero-padded form so one calendar slot has one key.
    """
    slot = parse_slot(date_value, time_value)
    if slot is None:
        return None
    return slot.strftime(SESSION_DATE_FORMAT), slot.strftime(SESSION_TIME_FORMAT)
