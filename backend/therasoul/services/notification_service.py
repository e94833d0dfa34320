# backend/therasoul/services/notification_service.py
"""
Notification dispatch for the TheraSoul platform.

Lifecycle events (booked, confirmed, cancelled, completed, payment_failed)
are turned into in-app notifications for the parties involved. Email is not
sent; the inbox is held in memory per application instance and injected
through ``app.state``.

Dispatchers implement ``notify(event, payload)`` and are always called after
the producing transaction has committed.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.enums import NotificationType
from ..core.exceptions import NotFoundException
from ..core.ulid_helper import generate_ulid

logger = logging.getLogger(__name__)

CLIENT_DASHBOARD_URL = "/client-dashboard"
THERAPIST_DASHBOARD_URL = "/therapist-dashboard"


@dataclass
class Notification:
    """One entry in a user's inbox."""

    user_id: str
    title: str
    message: str
    type: NotificationType
    event: str
    session_id: Optional[str] = None
    action_url: Optional[str] = None
    id: str = field(default_factory=generate_ulid)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    read: bool = False


class NotificationInbox:
    """
    Thread-safe, per-user in-memory inbox.

    Newest notifications come first; each user keeps at most ``limit``
    entries and the oldest ones are dropped beyond that.
    """

    def __init__(self, limit: int = 100):
        self.limit = limit
        self._lock = threading.Lock()
        self._by_user: Dict[str, "OrderedDict[str, Notification]"] = {}

    def add(self, notification: Notification) -> Notification:
        with self._lock:
            entries = self._by_user.setdefault(notification.user_id, OrderedDict())
            entries[notification.id] = notification
            while len(entries) > self.limit:
                entries.popitem(last=False)
        return notification

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        with self._lock:
            entries = list(self._by_user.get(user_id, OrderedDict()).values())
        entries.reverse()
        if unread_only:
            entries = [n for n in entries if not n.read]
        return entries

    def unread_count(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for n in self._by_user.get(user_id, {}).values() if not n.read)

    def mark_read(self, user_id: str, notification_id: str) -> Notification:
        with self._lock:
            notification = self._by_user.get(user_id, {}).get(notification_id)
            if notification is None:
                raise NotFoundException(
                    f"Notification {notification_id} not found",
                    code="NOTIFICATION_NOT_FOUND",
                    details={"notification_id": notification_id},
                )
            notification.read = True
            return notification

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification read; returns how many changed."""
        with self._lock:
            changed = 0
            for notification in self._by_user.get(user_id, {}).values():
                if not notification.read:
                    notification.read = True
                    changed += 1
            return changed


# Templates: event -> builders of (recipient_id, title, message, type, action_url)

_Built = Tuple[str, str, str, NotificationType, str]
_Builder = Callable[[Dict[str, Any]], List[_Built]]


def _booked(payload: Dict[str, Any]) -> List[_Built]:
    return [
        (
            payload["client_id"],
            "Session Booked Successfully",
            f"Your session with {payload['therapist_name']} on {payload['date']} at "
            f"{payload['time']} has been booked and is awaiting confirmation.",
            NotificationType.SUCCESS,
            CLIENT_DASHBOARD_URL,
        ),
        (
            payload["therapist_id"],
            "New Session Request",
            f"A client has requested a session on {payload['date']} at {payload['time']}.",
            NotificationType.INFO,
            THERAPIST_DASHBOARD_URL,
        ),
    ]


def _confirmed(payload: Dict[str, Any]) -> List[_Built]:
    message = (
        f"Your session with {payload['therapist_name']} on {payload['date']} at "
        f"{payload['time']} has been confirmed."
    )
    if payload.get("meet_link"):
        message += f" Join at {payload['meet_link']}"
    return [
        (
            payload["client_id"],
            "Session Confirmed",
            message,
            NotificationType.SUCCESS,
            CLIENT_DASHBOARD_URL,
        )
    ]


def _cancelled(payload: Dict[str, Any]) -> List[_Built]:
    built: List[_Built] = []
    cancelled_by = payload.get("cancelled_by")
    if payload["client_id"] != cancelled_by:
        built.append(
            (
                payload["client_id"],
                "Session Cancelled",
                f"Your session with {payload['therapist_name']} on {payload['date']} at "
                f"{payload['time']} has been cancelled.",
                NotificationType.WARNING,
                CLIENT_DASHBOARD_URL,
            )
        )
    if payload["therapist_id"] != cancelled_by:
        built.append(
            (
                payload["therapist_id"],
                "Session Cancelled",
                f"The session on {payload['date']} at {payload['time']} has been cancelled.",
                NotificationType.WARNING,
                THERAPIST_DASHBOARD_URL,
            )
        )
    return built


def _completed(payload: Dict[str, Any]) -> List[_Built]:
    return [
        (
            payload["therapist_id"],
            "Feedback Received",
            f"A client rated their session {payload['rating']}/5.",
            NotificationType.INFO,
            THERAPIST_DASHBOARD_URL,
        )
    ]


def _payment_failed(payload: Dict[str, Any]) -> List[_Built]:
    return [
        (
            payload["client_id"],
            "Payment Failed",
            f"Payment of {payload.get('currency', '')} {payload['amount']} failed. "
            "Please try again or contact support.",
            NotificationType.ERROR,
            CLIENT_DASHBOARD_URL,
        )
    ]


TEMPLATES: Dict[str, _Builder] = {
    "booked": _booked,
    "confirmed": _confirmed,
    "cancelled": _cancelled,
    "completed": _completed,
    "payment_failed": _payment_failed,
}


def build_notifications(event: str, payload: Dict[str, Any]) -> List[Notification]:
    """Render the notifications an event produces; unknown events produce none."""
    builder = TEMPLATES.get(event)
    if builder is None:
        return []
    return [
        Notification(
            user_id=recipient,
            title=title,
            message=message,
            type=notification_type,
            event=event,
            session_id=payload.get("session_id"),
            action_url=action_url,
        )
        for recipient, title, message, notification_type, action_url in builder(payload)
    ]


class InAppNotificationDispatcher:
    """Renders lifecycle events into the recipients' in-app inboxes."""

    def __init__(self, inbox: NotificationInbox):
        self.inbox = inbox

    def notify(self, event: str, payload: Dict[str, Any]) -> None:
        notifications = build_notifications(event, payload)
        if not notifications:
            logger.debug("No notification template for event %s", event)
            return
        for notification in notifications:
            self.inbox.add(notification)
        logger.info(
            f"Queued {len(notifications)} in-app notification(s) for {event}",
            extra={"event_type": event, "session_id": payload.get("session_id")},
        )
