# backend/therasoul/models/feedback.py
"""
Feedback left by a client when completing a session.

Design notes:
- One feedback per session (DB unique constraint on session_id)
- Rating is an integer in 1..5, enforced in the service and by a check constraint
- Written in the same transaction that moves the session to completed
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base

MIN_RATING = 1
MAX_RATING = 5


class Feedback(Base):
    """Per-session rating and free-text feedback from the client."""

    __tablename__ = "feedback"

    id = Column(String(26), primary_key=True, default=generate_ulid)

    session_id = Column(
        String(26), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    client_id = Column(String(64), nullable=False, index=True)
    therapist_id = Column(String(64), nullable=False)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    session = relationship("TherapySession", back_populates="feedback")

    __table_args__ = (
        CheckConstraint(
            f"rating >= {MIN_RATING} AND rating <= {MAX_RATING}", name="ck_feedback_rating_range"
        ),
        Index("idx_feedback_therapist", "therapist_id"),
    )

    def __repr__(self) -> str:
        return f"<Feedback session={self.session_id} rating={self.rating}>"
