# backend/therasoul/repositories/__init__.py
"""
Repository layer for the TheraSoul platform.

Repositories own data access; services own business rules and transaction
boundaries.
"""

from .base_repository import BaseRepository
from .feedback_repository import FeedbackRepository
from .session_repository import SessionRepository
from .therapist_repository import TherapistRepository

__all__ = [
    "BaseRepository",
    "FeedbackRepository",
    "SessionRepository",
    "TherapistRepository",
]
