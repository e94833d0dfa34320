"""Event publisher - hands lifecycle events to the notification dispatcher."""
from datetime import datetime
import logging
from typing import Any, Dict, Protocol

from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    event_name: str

    def to_dict(self) -> Dict[str, Any]:
        ...


class NotificationDispatcher(Protocol):
    """Fire-and-forget delivery of lifecycle notifications."""

    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        ...


class EventPublisher:
    """
    Publishes domain events after the transaction that produced them commits.

    Dispatch failures are logged and counted, never raised: a notification
    problem must not undo or fail a committed transition.
    """

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    def publish(self, event: Event) -> None:
        event_type = event.event_name
        payload = event.to_dict()

        # Convert datetime objects to ISO strings for JSON-friendly payloads
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()

        try:
            self.dispatcher.notify(event_type, payload)
        except Exception as e:
            prometheus_metrics.record_notification(event_type, "error")
            logger.error(
                f"Failed to dispatch {event_type} notification: {str(e)}",
                extra={"event_type": event_type, "session_id": payload.get("session_id")},
            )
            return
        prometheus_metrics.record_notification(event_type, "success")
