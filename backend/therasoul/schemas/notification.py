# backend/therasoul/schemas/notification.py
"""In-app notification schemas."""

from datetime import datetime
from typing import Any, List, Optional

from ._strict_base import StrictModel


class NotificationResponse(StrictModel):
    id: str
    title: str
    message: str
    type: str
    event: str
    session_id: Optional[str] = None
    action_url: Optional[str] = None
    created_at: datetime
    read: bool

    @classmethod
    def from_notification(cls, notification: Any) -> "NotificationResponse":
        return cls(
            id=notification.id,
            title=notification.title,
            message=notification.message,
            type=getattr(notification.type, "value", notification.type),
            event=notification.event,
            session_id=notification.session_id,
            action_url=notification.action_url,
            created_at=notification.created_at,
            read=notification.read,
        )


class NotificationListResponse(StrictModel):
    items: List[NotificationResponse]
    unread_count: int


class MarkAllReadResponse(StrictModel):
    updated: int
