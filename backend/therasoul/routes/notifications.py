# backend/therasoul/routes/notifications.py
"""
In-app notification routes.

Router Endpoints:
    GET / - Caller's inbox, newest first, with the unread count
    POST /read-all - Mark every notification read
    POST /{notification_id}/read - Mark one notification read
"""

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_current_actor, get_notification_inbox
from ..core.exceptions import DomainException
from ..principal import ActorPrincipal
from ..schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from ..services.notification_service import NotificationInbox
from .sessions import handle_domain_exception

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    actor: ActorPrincipal = Depends(get_current_actor),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    items = inbox.list_for_user(actor.actor_id, unread_only=unread_only)
    return NotificationListResponse(
        items=[NotificationResponse.from_notification(n) for n in items],
        unread_count=inbox.unread_count(actor.actor_id),
    )


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    actor: ActorPrincipal = Depends(get_current_actor),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    return MarkAllReadResponse(updated=inbox.mark_all_read(actor.actor_id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    actor: ActorPrincipal = Depends(get_current_actor),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    try:
        return NotificationResponse.from_notification(
            inbox.mark_read(actor.actor_id, notification_id)
        )
    except DomainException as e:
        handle_domain_exception(e)
