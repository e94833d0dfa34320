# backend/therasoul/services/session_lifecycle_service.py
"""
Session Lifecycle Service for the TheraSoul platform

Owns the therapy session state machine:
- Creating sessions with slot exclusivity per (therapist, date, time)
- Confirming (therapist), cancelling (either party or an admin) and
  completing (client, together with feedback)
- Listing and reading sessions per actor

Every transition is a compare-and-swap on the expected status and version,
so two concurrent transitions on one session never both apply. The
operations form a closed set; there is no generic update path.

Notifications are published only after the transaction commits and their
failures never undo a transition.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
import logging
import secrets
import string
from typing import Any, Callable, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings
from ..core.enums import RoleName
from ..core.exceptions import (
    InvalidRatingException,
    InvalidSessionTypeException,
    InvalidTransitionException,
    NotAuthorizedException,
    SessionNotFoundException,
    SlotConflictException,
    TherapistNotFoundException,
    ValidationException,
)
from ..core.slot_lock import InProcessSlotLocks, SlotLocks
from ..events import (
    EventPublisher,
    SessionBooked,
    SessionCancelled,
    SessionCompleted,
    SessionConfirmed,
)
from ..models.feedback import MAX_RATING, MIN_RATING
from ..models.therapy_session import (
    SessionStatus,
    SessionType,
    TherapySession,
    can_transition,
    normalize_slot,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import ActorPrincipal
from ..repositories.feedback_repository import FeedbackRepository
from ..repositories.session_repository import SessionRepository
from .base import BaseService
from .therapist_directory import SqlTherapistDirectory, TherapistDirectory

logger = logging.getLogger(__name__)

_MEET_ALPHABET = string.ascii_lowercase


def generate_meet_code() -> str:
    """Meeting code in the ``abc-defg-hij`` shape."""
    parts = (3, 4, 3)
    return "-".join("".join(secrets.choice(_MEET_ALPHABET) for _ in range(n)) for n in parts)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionLifecycleService(BaseService):
    """
    Service layer for the therapy session lifecycle.

    Collaborators are injected; defaults exist for the database-backed ones
    only. Without an event publisher no notifications are sent.
    """

    def __init__(
        self,
        db: Session,
        *,
        therapist_directory: Optional[TherapistDirectory] = None,
        slot_locks: Optional[SlotLocks] = None,
        event_publisher: Optional[EventPublisher] = None,
        repository: Optional[SessionRepository] = None,
        feedback_repository: Optional[FeedbackRepository] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the lifecycle service.

        Args:
            db: Database session
            therapist_directory: Source of therapist price and accepted types
            slot_locks: Per-slot mutexes shared by every request of the process
            event_publisher: Post-commit notification publisher
            repository: Optional SessionRepository instance
            feedback_repository: Optional FeedbackRepository instance
            config: Settings override (tests)
            clock: Returns the current aware datetime (tests)
        """
        super().__init__(db)
        self.config = config or settings
        self.repository = repository or SessionRepository(db)
        self.feedback_repository = feedback_repository or FeedbackRepository(db)
        self.therapist_directory = therapist_directory or SqlTherapistDirectory(db)
        self.slot_locks = slot_locks or InProcessSlotLocks(
            wait_seconds=self.config.slot_lock_wait_seconds
        )
        self.event_publisher = event_publisher
        self.clock = clock or _utcnow

    # Creation

    @BaseService.measure_operation("create_session")
    def create_session(
        self,
        client_id: str,
        therapist_id: str,
        date: str,
        time: str,
        session_type: Union[SessionType, str],
        price: Optional[Decimal] = None,
        *,
        payment_transaction_id: Optional[str] = None,
    ) -> TherapySession:
        """
        Create a pending session for the slot (therapist_id, date, time).

        Payment must already be authorized by the caller. When ``price`` is
        omitted the therapist's current rate is snapshotted.

        Raises:
            TherapistNotFoundException: Unknown or inactive therapist
            InvalidSessionTypeException: Type not offered by the therapist
            SlotConflictException: An active session already holds the slot
            ValidationException: Malformed date, time or price
        """
        self.log_operation(
            "create_session",
            client_id=client_id,
            therapist_id=therapist_id,
            date=date,
            time=time,
            session_type=str(session_type),
        )

        slot = normalize_slot(date, time)
        if slot is None:
            raise ValidationException(
                "Session date must be YYYY-MM-DD and time HH:MM",
                code="INVALID_SLOT",
                details={"date": date, "time": time},
            )
        date, time = slot

        listing = self.therapist_directory.get_therapist(therapist_id)
        if listing is None:
            raise TherapistNotFoundException(therapist_id)

        requested_type = self._resolve_session_type(therapist_id, session_type)
        if requested_type == SessionType.IN_PERSON and not listing.accepts_in_person:
            raise InvalidSessionTypeException(therapist_id, requested_type.value)
        if requested_type == SessionType.ONLINE and not listing.accepts_online:
            raise InvalidSessionTypeException(therapist_id, requested_type.value)

        snapshot_price = listing.price if price is None else self._validate_price(price)
        conflict_details = {"therapist_id": therapist_id, "date": date, "time": time}

        with self.slot_locks.hold(therapist_id, date, time) as acquired:
            if not acquired:
                raise SlotConflictException(details=conflict_details)

            if self.repository.has_active_session_for_slot(therapist_id, date, time):
                raise SlotConflictException(details=conflict_details)

            try:
                with self.repository.transaction():
                    session = self.repository.create(
                        client_id=client_id,
                        therapist_id=therapist_id,
                        therapist_name=listing.name,
                        date=date,
                        time=time,
                        status=SessionStatus.PENDING.value,
                        price=snapshot_price,
                        session_type=requested_type.value,
                        payment_transaction_id=payment_transaction_id,
                    )
            except IntegrityError as exc:
                if not self.repository.is_active_slot_violation(exc):
                    raise
                raise SlotConflictException(details=conflict_details) from exc

        self.logger.info(
            f"Session {session.id} booked by client {client_id} with therapist {therapist_id}"
        )
        self._publish(
            SessionBooked(
                session_id=session.id,
                client_id=session.client_id,
                therapist_id=session.therapist_id,
                therapist_name=session.therapist_name,
                date=session.date,
                time=session.time,
                session_type=session.session_type,
                price=float(session.price),
                created_at=session.created_at,
            )
        )
        return session

    # Transitions

    @BaseService.measure_operation("confirm_session")
    def confirm_session(self, actor: ActorPrincipal, session_id: str) -> TherapySession:
        """
        Therapist accepts a pending session. Online sessions get a meet link.

        Raises:
            SessionNotFoundException: Unknown session
            NotAuthorizedException: Actor is not the session's therapist
            InvalidTransitionException: Session is not pending
        """
        session = self._load(session_id)
        if not (actor.is_therapist and session.is_party(actor.actor_id, actor.role)):
            raise NotAuthorizedException(
                "Only the session's therapist can confirm it",
                details={"session_id": session_id},
            )
        self._ensure_transition(session, SessionStatus.CONFIRMED)

        now = self.clock()
        meet_link = self._build_meet_link() if session.is_online else None
        self._apply_transition(
            session, SessionStatus.CONFIRMED, confirmed_at=now, meet_link=meet_link
        )

        self._publish(
            SessionConfirmed(
                session_id=session.id,
                client_id=session.client_id,
                therapist_id=session.therapist_id,
                therapist_name=session.therapist_name,
                date=session.date,
                time=session.time,
                confirmed_at=now,
                meet_link=session.meet_link,
            )
        )
        return session

    @BaseService.measure_operation("cancel_session")
    def cancel_session(
        self, actor: ActorPrincipal, session_id: str, reason: Optional[str] = None
    ) -> TherapySession:
        """
        Cancel a pending or confirmed session.

        Allowed for the session's client, its therapist, or any admin.
        Cancelling a confirmed session inside the late window is recorded in
        ``late_cancellation`` but never blocked.

        Raises:
            SessionNotFoundException: Unknown session
            NotAuthorizedException: Actor is neither a party nor an admin
            InvalidTransitionException: Session is already terminal
        """
        session = self._load(session_id)
        if not (actor.is_admin or session.is_party(actor.actor_id, actor.role)):
            raise NotAuthorizedException(
                "Only the session's client, therapist or an admin can cancel it",
                details={"session_id": session_id},
            )
        self._ensure_transition(session, SessionStatus.CANCELLED)

        now = self.clock()
        late = session.status == SessionStatus.CONFIRMED.value and session.is_within_late_window(
            now, self.config.session_timezone, self.config.late_cancellation_window_hours
        )
        self._apply_transition(
            session,
            SessionStatus.CANCELLED,
            cancelled_at=now,
            cancelled_by_id=actor.actor_id,
            cancelled_by_role=actor.role.value,
            cancellation_reason=reason,
            late_cancellation=late,
            meet_link=None,
        )
        if late:
            self.logger.warning(
                f"Late cancellation of session {session.id}",
                extra={"session_id": session.id, "cancelled_by": actor.actor_id},
            )

        self._publish(
            SessionCancelled(
                session_id=session.id,
                client_id=session.client_id,
                therapist_id=session.therapist_id,
                therapist_name=session.therapist_name,
                date=session.date,
                time=session.time,
                cancelled_by=actor.actor_id,
                cancelled_by_role=actor.role.value,
                cancelled_at=now,
                late_cancellation=late,
                reason=reason,
            )
        )
        return session

    @BaseService.measure_operation("complete_session")
    def complete_session(
        self,
        actor: ActorPrincipal,
        session_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> TherapySession:
        """
        Client completes a confirmed session by submitting feedback.

        The status change and the feedback row commit together or not at all.
        Checks run in order: authorization, transition, rating.

        Raises:
            SessionNotFoundException: Unknown session
            NotAuthorizedException: Actor is not the session's client
            InvalidTransitionException: Session is not confirmed
            InvalidRatingException: Rating outside 1..5
        """
        session = self._load(session_id)
        if not (actor.is_client and session.is_party(actor.actor_id, actor.role)):
            raise NotAuthorizedException(
                "Only the session's client can complete it",
                details={"session_id": session_id},
            )
        self._ensure_transition(session, SessionStatus.COMPLETED)
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise InvalidRatingException(rating, MIN_RATING, MAX_RATING)
        if not MIN_RATING <= rating <= MAX_RATING:
            raise InvalidRatingException(rating, MIN_RATING, MAX_RATING)

        now = self.clock()

        def record_feedback() -> None:
            self.feedback_repository.record(
                session_id=session.id,
                client_id=session.client_id,
                therapist_id=session.therapist_id,
                rating=rating,
                comment=comment,
            )

        self._apply_transition(
            session, SessionStatus.COMPLETED, completed_at=now, also=record_feedback
        )

        self._publish(
            SessionCompleted(
                session_id=session.id,
                client_id=session.client_id,
                therapist_id=session.therapist_id,
                therapist_name=session.therapist_name,
                rating=rating,
                completed_at=now,
            )
        )
        return session

    # Reads

    @BaseService.measure_operation("list_sessions")
    def list_sessions(
        self,
        actor: ActorPrincipal,
        status: Optional[Union[SessionStatus, str]] = None,
    ) -> List[TherapySession]:
        """Client sees own sessions, therapist sees own, admin sees all; newest first."""
        status_filter = SessionStatus(status) if status is not None else None
        if actor.role == RoleName.ADMIN:
            return self.repository.list_sessions(status=status_filter)
        if actor.role == RoleName.THERAPIST:
            return self.repository.list_sessions(
                therapist_id=actor.actor_id, status=status_filter
            )
        return self.repository.list_sessions(client_id=actor.actor_id, status=status_filter)

    @BaseService.measure_operation("get_session")
    def get_session(self, actor: ActorPrincipal, session_id: str) -> TherapySession:
        session = self._load(session_id)
        if not (actor.is_admin or session.is_party(actor.actor_id, actor.role)):
            raise NotAuthorizedException(
                "You do not have access to this session", details={"session_id": session_id}
            )
        return session

    # Helpers

    def _load(self, session_id: str) -> TherapySession:
        session = self.repository.get_by_id(session_id, load_relationships=False)
        if session is None:
            raise SessionNotFoundException(session_id)
        return session

    def _validate_price(self, price: Any) -> Decimal:
        try:
            value = Decimal(str(price))
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite() or value < 0:
            raise ValidationException(
                "Session price must be a non-negative amount",
                code="INVALID_PRICE",
                details={"price": str(price)},
            )
        return value

    def _resolve_session_type(
        self, therapist_id: str, session_type: Union[SessionType, str]
    ) -> SessionType:
        try:
            return SessionType(session_type)
        except ValueError:
            raise InvalidSessionTypeException(therapist_id, str(session_type))

    def _ensure_transition(self, session: TherapySession, target: SessionStatus) -> None:
        if not can_transition(session.status, target):
            raise InvalidTransitionException(session.id, session.status, target.value)

    def _apply_transition(
        self,
        session: TherapySession,
        target: SessionStatus,
        also: Optional[Callable[[], Any]] = None,
        **values: Any,
    ) -> None:
        """
        Compare-and-swap the status from the value read earlier to ``target``.

        Zero rows updated means another writer moved the session first; the
        caller gets InvalidTransition with the status that is now stored.
        ``also`` runs inside the same transaction.
        """
        current = SessionStatus(session.status)
        with self.repository.transaction():
            applied = self.repository.transition_status(
                session.id,
                expected_status=current,
                expected_version=session.version,
                new_status=target,
                **values,
            )
            if not applied:
                self.repository.refresh(session)
                self.logger.info(
                    f"Stale transition on session {session.id}: expected {current.value}, "
                    f"found {session.status}"
                )
                raise InvalidTransitionException(session.id, session.status, target.value)
            if also is not None:
                also()
        self.repository.refresh(session)
        prometheus_metrics.record_session_transition(current.value, target.value)

    def _build_meet_link(self) -> str:
        return f"{self.config.meet_link_base_url.rstrip('/')}/{generate_meet_code()}"

    def _publish(self, event: Any) -> None:
        if self.event_publisher is None:
            self.logger.debug("No event publisher configured; skipping %s", event.event_name)
            return
        self.event_publisher.publish(event)
