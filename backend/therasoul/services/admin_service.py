# backend/therasoul/services/admin_service.py
"""
Admin Service for the TheraSoul platform

Platform-wide overview for administrators: session counts, earnings from
completed sessions, client and therapist totals and ratings.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotAuthorizedException
from ..principal import ActorPrincipal
from ..repositories.feedback_repository import FeedbackRepository
from ..repositories.session_repository import SessionRepository
from ..repositories.therapist_repository import TherapistRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class AdminService(BaseService):
    def __init__(
        self,
        db: Session,
        session_repository: Optional[SessionRepository] = None,
        therapist_repository: Optional[TherapistRepository] = None,
        feedback_repository: Optional[FeedbackRepository] = None,
    ):
        super().__init__(db)
        self.session_repository = session_repository or SessionRepository(db)
        self.therapist_repository = therapist_repository or TherapistRepository(db)
        self.feedback_repository = feedback_repository or FeedbackRepository(db)

    @BaseService.measure_operation("admin_overview")
    def overview(self, actor: ActorPrincipal) -> Dict[str, Any]:
        if not actor.is_admin:
            raise NotAuthorizedException("Only admins can view the platform overview")

        by_status = self.session_repository.count_by_status()
        average, total_reviews = self.feedback_repository.rating_stats()
        return {
            "total_sessions": sum(by_status.values()),
            "sessions_by_status": by_status,
            "sessions_by_type": self.session_repository.count_by_type(),
            "total_earnings": float(self.session_repository.sum_completed_earnings()),
            "unique_clients": self.session_repository.count_unique_clients(),
            "therapist_count": self.therapist_repository.count_active(),
            "average_rating": average,
            "total_reviews": total_reviews,
        }
