# backend/therasoul/services/feedback_service.py
"""
Feedback Service for the TheraSoul platform

Read side of session feedback. Feedback is only ever written by
SessionLifecycleService.complete_session, atomically with completion.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotAuthorizedException, NotFoundException, SessionNotFoundException
from ..models.feedback import Feedback
from ..principal import ActorPrincipal
from ..repositories.feedback_repository import FeedbackRepository
from ..repositories.session_repository import SessionRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class FeedbackService(BaseService):
    def __init__(
        self,
        db: Session,
        repository: Optional[FeedbackRepository] = None,
        session_repository: Optional[SessionRepository] = None,
    ):
        super().__init__(db)
        self.repository = repository or FeedbackRepository(db)
        self.session_repository = session_repository or SessionRepository(db)

    @BaseService.measure_operation("get_session_feedback")
    def get_session_feedback(self, actor: ActorPrincipal, session_id: str) -> Feedback:
        """Feedback of one session, visible to its parties and admins."""
        session = self.session_repository.get_by_id(session_id, load_relationships=False)
        if session is None:
            raise SessionNotFoundException(session_id)
        if not (actor.is_admin or session.is_party(actor.actor_id, actor.role)):
            raise NotAuthorizedException(
                "You do not have access to this session", details={"session_id": session_id}
            )
        feedback = self.repository.get_by_session(session_id)
        if feedback is None:
            raise NotFoundException(
                f"No feedback recorded for session {session_id}",
                code="FEEDBACK_NOT_FOUND",
                details={"session_id": session_id},
            )
        return feedback

    @BaseService.measure_operation("list_therapist_feedback")
    def list_therapist_feedback(self, therapist_id: str, limit: int = 50) -> Dict[str, Any]:
        """Public reviews of a therapist with the average rating."""
        average, total = self.repository.rating_stats(therapist_id)
        return {
            "therapist_id": therapist_id,
            "average_rating": average,
            "total_reviews": total,
            "items": self.repository.list_for_therapist(therapist_id, limit=limit),
        }
