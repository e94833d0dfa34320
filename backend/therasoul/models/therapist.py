# backend/therasoul/models/therapist.py
"""
Therapist profile and declared availability.

The profile carries what booking needs (display name, session price,
accepted session types) plus the public directory fields. Availability is
the list of slots a therapist declares bookable; open slots are declared
slots not held by an active session.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


class Therapist(Base):
    """Public profile of a therapist. ``id`` is the therapist's actor id."""

    __tablename__ = "therapists"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    bio = Column(Text, nullable=True)
    specializations = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)
    location = Column(String(255), nullable=True)
    experience_years = Column(Integer, nullable=False, default=0)

    price = Column(Numeric(10, 2), nullable=False)
    accepts_online = Column(Boolean, nullable=False, default=True)
    accepts_in_person = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    availability = relationship(
        "TherapistAvailability",
        back_populates="therapist",
        cascade="all, delete-orphan",
        order_by="(TherapistAvailability.date, TherapistAvailability.time)",
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_therapist_price_non_negative"),
        CheckConstraint("experience_years >= 0", name="check_experience_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Therapist {self.id}: {self.name}>"


class TherapistAvailability(Base):
    """A slot the therapist declared bookable."""

    __tablename__ = "therapist_availability"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    therapist_id = Column(
        String(64), ForeignKey("therapists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(String(10), nullable=False)
    time = Column(String(5), nullable=False)

    therapist = relationship("Therapist", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("therapist_id", "date", "time", name="uq_availability_slot"),
    )
