# backend/therasoul/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Process-wide collaborators (slot locks, payment gateway, notification inbox
and publisher) are created once in ``create_app`` and kept on ``app.state``;
services are built per request around the request's database session.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...core.slot_lock import SlotLocks
from ...events import EventPublisher
from ...services.admin_service import AdminService
from ...services.booking_service import BookingService
from ...services.feedback_service import FeedbackService
from ...services.notification_service import NotificationInbox
from ...services.payment_gateway import PaymentGateway
from ...services.session_lifecycle_service import SessionLifecycleService
from ...services.therapist_service import TherapistService
from .database import get_db

logger = logging.getLogger(__name__)


def get_slot_locks(request: Request) -> SlotLocks:
    return request.app.state.slot_locks


def get_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway


def get_notification_inbox(request: Request) -> NotificationInbox:
    return request.app.state.notification_inbox


def get_event_publisher(request: Request) -> EventPublisher:
    return request.app.state.event_publisher


def get_session_lifecycle_service(
    db: Session = Depends(get_db),
    slot_locks: SlotLocks = Depends(get_slot_locks),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> SessionLifecycleService:
    """Get SessionLifecycleService with the shared slot locks and publisher."""
    return SessionLifecycleService(db, slot_locks=slot_locks, event_publisher=event_publisher)


def get_booking_service(
    db: Session = Depends(get_db),
    lifecycle_service: SessionLifecycleService = Depends(get_session_lifecycle_service),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> BookingService:
    return BookingService(
        db,
        lifecycle_service=lifecycle_service,
        payment_gateway=payment_gateway,
        event_publisher=event_publisher,
    )


def get_therapist_service(db: Session = Depends(get_db)) -> TherapistService:
    return TherapistService(db)


def get_feedback_service(db: Session = Depends(get_db)) -> FeedbackService:
    return FeedbackService(db)


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    return AdminService(db)
