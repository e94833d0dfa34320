"""Domain events for the session lifecycle."""

from .publisher import EventPublisher, NotificationDispatcher
from .session_events import (
    PaymentFailed,
    SessionBooked,
    SessionCancelled,
    SessionCompleted,
    SessionConfirmed,
)

__all__ = [
    "EventPublisher",
    "NotificationDispatcher",
    "PaymentFailed",
    "SessionBooked",
    "SessionCancelled",
    "SessionCompleted",
    "SessionConfirmed",
]
