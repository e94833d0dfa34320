# backend/therasoul/repositories/session_repository.py
"""
Session Repository for the TheraSoul platform

Implements data access for therapy sessions:
- Session creation (integrity errors surface for slot-conflict handling)
- Active-slot lookups backing the double-booking pre-check
- Compare-and-swap status transitions
- Per-actor listings and dashboard aggregates
"""

from datetime import datetime, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.therapy_session import (
    ACTIVE_SLOT_INDEX,
    ACTIVE_STATUSES,
    SessionStatus,
    SessionType,
    TherapySession,
)
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_ACTIVE_VALUES = [status.value for status in ACTIVE_STATUSES]


class SessionRepository(BaseRepository[TherapySession]):
    """Repository for therapy session data access."""

    def __init__(self, db: Session):
        super().__init__(db, TherapySession)
        self.logger = logging.getLogger(__name__)

    def create(self, **kwargs: Any) -> TherapySession:
        """Create a session, exposing integrity errors for conflict handling."""
        try:
            return super().create(**kwargs)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    @staticmethod
    def is_active_slot_violation(exc: IntegrityError) -> bool:
        """True when ``exc`` was raised by the active-slot unique index."""
        message = str(exc.orig)
        return ACTIVE_SLOT_INDEX in message or (
            "UNIQUE constraint failed: sessions.therapist_id, sessions.date, sessions.time"
            in message
        )

    # Slot queries

    def get_active_session_for_slot(
        self, therapist_id: str, date: str, time: str
    ) -> Optional[TherapySession]:
        """Return the pending/confirmed session holding the slot, if any."""
        try:
            return (
                self.db.query(TherapySession)
                .filter(
                    TherapySession.therapist_id == therapist_id,
                    TherapySession.date == date,
                    TherapySession.time == time,
                    TherapySession.status.in_(_ACTIVE_VALUES),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking slot {therapist_id} {date} {time}: {str(e)}")
            raise RepositoryException(f"Failed to check slot availability: {str(e)}")

    def has_active_session_for_slot(self, therapist_id: str, date: str, time: str) -> bool:
        return self.get_active_session_for_slot(therapist_id, date, time) is not None

    def get_active_slots_for_therapist(
        self, therapist_id: str, dates: Iterable[str]
    ) -> Set[Tuple[str, str]]:
        """(date, time) pairs taken by active sessions on the given dates."""
        date_list = list(dates)
        if not date_list:
            return set()
        try:
            rows = (
                self.db.query(TherapySession.date, TherapySession.time)
                .filter(
                    TherapySession.therapist_id == therapist_id,
                    TherapySession.date.in_(date_list),
                    TherapySession.status.in_(_ACTIVE_VALUES),
                )
                .all()
            )
            return {(row.date, row.time) for row in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading active slots for {therapist_id}: {str(e)}")
            raise RepositoryException(f"Failed to load active slots: {str(e)}")

    # Status Management Methods

    def transition_status(
        self,
        session_id: str,
        *,
        expected_status: SessionStatus,
        expected_version: int,
        new_status: SessionStatus,
        **values: Any,
    ) -> bool:
        """
        Apply a status change only if the row still has the expected status
        and version.

        Returns:
            True when the row was updated, False when another writer got there
            first (or the row no longer matches).
        """
        payload: Dict[str, Any] = dict(values)
        payload["status"] = new_status.value
        payload["version"] = expected_version + 1
        payload["updated_at"] = datetime.now(timezone.utc)
        try:
            updated = (
                self.db.query(TherapySession)
                .filter(
                    TherapySession.id == session_id,
                    TherapySession.status == expected_status.value,
                    TherapySession.version == expected_version,
                )
                .update(payload, synchronize_session=False)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error transitioning session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to update session status: {str(e)}")

        if updated:
            self.logger.info(
                "Session %s moved %s -> %s", session_id, expected_status.value, new_status.value
            )
        return bool(updated)

    # Listings

    def list_sessions(
        self,
        *,
        client_id: Optional[str] = None,
        therapist_id: Optional[str] = None,
        status: Optional[SessionStatus] = None,
        limit: Optional[int] = None,
    ) -> List[TherapySession]:
        """Sessions matching the filters, newest first."""
        try:
            query = self.db.query(TherapySession)
            if client_id is not None:
                query = query.filter(TherapySession.client_id == client_id)
            if therapist_id is not None:
                query = query.filter(TherapySession.therapist_id == therapist_id)
            if status is not None:
                query = query.filter(TherapySession.status == status.value)
            query = query.order_by(TherapySession.created_at.desc(), TherapySession.id.desc())
            if limit is not None:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing sessions: {str(e)}")
            raise RepositoryException(f"Failed to list sessions: {str(e)}")

    # Aggregates

    def count_by_status(self, therapist_id: Optional[str] = None) -> Dict[str, int]:
        """
        Count sessions grouped by status.

        OPTIMIZED: Uses SQL aggregation instead of Python-side counting.
        Every status is present in the result, zero when unused.
        """
        try:
            query = self.db.query(
                TherapySession.status, func.count(TherapySession.id).label("count")
            )
            if therapist_id is not None:
                query = query.filter(TherapySession.therapist_id == therapist_id)
            rows = query.group_by(TherapySession.status).all()

            status_counts = {status.value: 0 for status in SessionStatus}
            for row in rows:
                if row.status:
                    status_counts[row.status] = row.count
            return status_counts
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting sessions by status: {str(e)}")
            raise RepositoryException(f"Failed to count sessions by status: {str(e)}")

    def count_by_type(self, therapist_id: Optional[str] = None) -> Dict[str, int]:
        try:
            query = self.db.query(
                TherapySession.session_type, func.count(TherapySession.id).label("count")
            )
            if therapist_id is not None:
                query = query.filter(TherapySession.therapist_id == therapist_id)
            rows = query.group_by(TherapySession.session_type).all()

            type_counts = {session_type.value: 0 for session_type in SessionType}
            for row in rows:
                if row.session_type:
                    type_counts[row.session_type] = row.count
            return type_counts
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting sessions by type: {str(e)}")
            raise RepositoryException(f"Failed to count sessions by type: {str(e)}")

    def sum_completed_earnings(self, therapist_id: Optional[str] = None) -> Decimal:
        """Total price of completed sessions."""
        try:
            query = self.db.query(func.coalesce(func.sum(TherapySession.price), 0)).filter(
                TherapySession.status == SessionStatus.COMPLETED.value
            )
            if therapist_id is not None:
                query = query.filter(TherapySession.therapist_id == therapist_id)
            total = query.scalar()
            return Decimal(str(total or 0))
        except SQLAlchemyError as e:
            self.logger.error(f"Error summing earnings: {str(e)}")
            raise RepositoryException(f"Failed to sum earnings: {str(e)}")

    def count_unique_clients(self, therapist_id: Optional[str] = None) -> int:
        try:
            query = self.db.query(func.count(func.distinct(TherapySession.client_id)))
            if therapist_id is not None:
                query = query.filter(TherapySession.therapist_id == therapist_id)
            return int(query.scalar() or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting unique clients: {str(e)}")
            raise RepositoryException(f"Failed to count unique clients: {str(e)}")

    # Helper method overrides

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(TherapySession.feedback))
