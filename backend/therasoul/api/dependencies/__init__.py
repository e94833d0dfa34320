"""FastAPI dependencies: database session, actor identity and services."""

from .auth import get_current_actor
from .database import get_db
from .services import (
    get_admin_service,
    get_booking_service,
    get_feedback_service,
    get_notification_inbox,
    get_session_lifecycle_service,
    get_therapist_service,
)

__all__ = [
    "get_admin_service",
    "get_booking_service",
    "get_current_actor",
    "get_db",
    "get_feedback_service",
    "get_notification_inbox",
    "get_session_lifecycle_service",
    "get_therapist_service",
]
