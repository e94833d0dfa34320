# backend/therasoul/repositories/feedback_repository.py
"""
Feedback Repository for the TheraSoul platform

Stores one feedback row per completed session and aggregates ratings.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.feedback import Feedback
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class FeedbackRepository(BaseRepository[Feedback]):
    """Repository for session feedback."""

    def __init__(self, db: Session):
        super().__init__(db, Feedback)
        self.logger = logging.getLogger(__name__)

    def get_by_session(self, session_id: str) -> Optional[Feedback]:
        try:
            return self.db.query(Feedback).filter(Feedback.session_id == session_id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading feedback for session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to load feedback: {str(e)}")

    def record(
        self,
        session_id: str,
        client_id: str,
        therapist_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> Feedback:
        """Stage the feedback row in the current transaction. Does NOT commit."""
        return self.create(
            session_id=session_id,
            client_id=client_id,
            therapist_id=therapist_id,
            rating=rating,
            comment=comment,
        )

    def list_for_therapist(self, therapist_id: str, limit: int = 50) -> List[Feedback]:
        """Most recent feedback received by a therapist."""
        try:
            return (
                self.db.query(Feedback)
                .filter(Feedback.therapist_id == therapist_id)
                .order_by(Feedback.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing feedback for {therapist_id}: {str(e)}")
            raise RepositoryException(f"Failed to list feedback: {str(e)}")

    def rating_stats(self, therapist_id: Optional[str] = None) -> Tuple[Optional[float], int]:
        """(average rating, feedback count); average is None without feedback."""
        try:
            query = self.db.query(func.avg(Feedback.rating), func.count(Feedback.id))
            if therapist_id is not None:
                query = query.filter(Feedback.therapist_id == therapist_id)
            average, count = query.one()
            return (round(float(average), 2) if average is not None else None, int(count or 0))
        except SQLAlchemyError as e:
            self.logger.error(f"Error computing rating stats: {str(e)}")
            raise RepositoryException(f"Failed to compute rating stats: {str(e)}")
