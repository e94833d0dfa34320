# backend/therasoul/models/__init__.py
"""
Database models for the TheraSoul application.

Importing this package registers every table on ``Base.metadata``.
"""

from .feedback import Feedback
from .therapist import Therapist, TherapistAvailability
from .therapy_session import SessionStatus, SessionType, TherapySession

__all__ = [
    "Feedback",
    "SessionStatus",
    "SessionType",
    "Therapist",
    "TherapistAvailability",
    "TherapySession",
]
