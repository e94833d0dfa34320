# backend/therasoul/services/booking_service.py
"""
Booking Service for the TheraSoul platform

Runs the client-facing booking flow around the session lifecycle:

1. Look up the therapist and snapshot the current price and name
2. Reject requests that cannot succeed (type not offered, slot taken)
   before any money moves
3. Authorize the payment (client pays, therapist is the payee)
4. Create the pending session; if that fails, refund the authorization

Payment happens before the slot critical section and notifications after
the commit, so neither is ever inside the atomic part of booking.
"""

from __future__ import annotations

from decimal import Decimal
import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.config import Settings, settings
from ..core.exceptions import (
    InvalidSessionTypeException,
    NotAuthorizedException,
    PaymentFailedException,
    SlotConflictException,
    TherapistNotFoundException,
    ValidationException,
)
from ..events import EventPublisher, PaymentFailed
from ..models.therapy_session import SessionType, TherapySession, normalize_slot
from ..principal import ActorPrincipal
from ..repositories.session_repository import SessionRepository
from .base import BaseService
from .payment_gateway import PaymentGateway
from .session_lifecycle_service import SessionLifecycleService
from .therapist_directory import TherapistDirectory, TherapistListing

logger = logging.getLogger(__name__)


class BookingService(BaseService):
    """Payment-backed booking on top of SessionLifecycleService."""

    def __init__(
        self,
        db: Session,
        *,
        lifecycle_service: SessionLifecycleService,
        payment_gateway: PaymentGateway,
        event_publisher: Optional[EventPublisher] = None,
        therapist_directory: Optional[TherapistDirectory] = None,
        repository: Optional[SessionRepository] = None,
        config: Optional[Settings] = None,
    ):
        super().__init__(db)
        self.lifecycle_service = lifecycle_service
        self.payment_gateway = payment_gateway
        self.event_publisher = event_publisher
        self.therapist_directory = therapist_directory or lifecycle_service.therapist_directory
        self.repository = repository or lifecycle_service.repository
        self.config = config or settings

    @BaseService.measure_operation("book_session")
    def book_session(
        self,
        actor: ActorPrincipal,
        therapist_id: str,
        date: str,
        time: str,
        session_type: Union[SessionType, str],
    ) -> TherapySession:
        """
        Book a slot for the calling client.

        Raises:
            NotAuthorizedException: Actor is not a client
            TherapistNotFoundException: Unknown or inactive therapist
            InvalidSessionTypeException: Type not offered by the therapist
            SlotConflictException: The slot is already taken
            ValidationException: Malformed date or time
            PaymentFailedException: The gateway declined the authorization
        """
        if not actor.is_client:
            raise NotAuthorizedException("Only clients can book sessions")

        self.log_operation(
            "book_session",
            client_id=actor.actor_id,
            therapist_id=therapist_id,
            date=date,
            time=time,
        )

        listing = self.therapist_directory.get_therapist(therapist_id)
        if listing is None:
            raise TherapistNotFoundException(therapist_id)
        self._precheck(listing, date, time, session_type)

        transaction_id = self._authorize_payment(actor, listing)

        try:
            return self.lifecycle_service.create_session(
                actor.actor_id,
                therapist_id,
                date,
                time,
                session_type,
                listing.price,
                payment_transaction_id=transaction_id,
            )
        except Exception:
            self._refund(transaction_id, listing.price)
            raise

    def _precheck(
        self,
        listing: TherapistListing,
        date: str,
        time: str,
        session_type: Union[SessionType, str],
    ) -> None:
        """Cheap checks before charging; the lifecycle re-checks authoritatively."""
        try:
            requested = SessionType(session_type)
        except ValueError:
            raise InvalidSessionTypeException(listing.id, str(session_type))
        if requested == SessionType.IN_PERSON and not listing.accepts_in_person:
            raise InvalidSessionTypeException(listing.id, requested.value)
        if requested == SessionType.ONLINE and not listing.accepts_online:
            raise InvalidSessionTypeException(listing.id, requested.value)
        slot = normalize_slot(date, time)
        if slot is None:
            raise ValidationException(
                "Session date must be YYYY-MM-DD and time HH:MM",
                code="INVALID_SLOT",
                details={"date": date, "time": time},
            )
        if self.repository.has_active_session_for_slot(listing.id, *slot):
            raise SlotConflictException(
                details={"therapist_id": listing.id, "date": slot[0], "time": slot[1]}
            )

    def _authorize_payment(self, actor: ActorPrincipal, listing: TherapistListing) -> str:
        result = self.payment_gateway.authorize(listing.price, actor.actor_id, listing.id)
        if result.success and result.transaction_id:
            return result.transaction_id

        self.logger.warning(
            f"Payment declined for client {actor.actor_id}",
            extra={"therapist_id": listing.id, "amount": str(listing.price)},
        )
        if self.event_publisher is not None:
            self.event_publisher.publish(
                PaymentFailed(
                    client_id=actor.actor_id,
                    therapist_id=listing.id,
                    amount=float(listing.price),
                    currency=self.config.payment_currency,
                    reason=result.error,
                )
            )
        raise PaymentFailedException(
            result.error,
            details={"therapist_id": listing.id, "amount": str(listing.price)},
        )

    def _refund(self, transaction_id: str, amount: Decimal) -> None:
        try:
            result = self.payment_gateway.refund(transaction_id, amount)
        except Exception as e:
            self.logger.error(f"Refund of {transaction_id} raised: {str(e)}")
            return
        if not result.success:
            self.logger.error(f"Refund of {transaction_id} failed: {result.error}")
            return
        self.logger.info(f"Refunded authorization {transaction_id} after failed booking")
