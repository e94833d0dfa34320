# backend/therasoul/services/therapist_service.py
"""
Therapist Service for the TheraSoul platform

Handles the therapist side of the marketplace:
- Directory search and public profiles
- Profile upsert by the therapist themself
- Declared availability and the open slots derived from it
- The therapist dashboard
"""

from datetime import datetime, timezone
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings
from ..core.exceptions import (
    ConflictException,
    NotAuthorizedException,
    RepositoryException,
    TherapistNotFoundException,
)
from ..models.therapist import Therapist
from ..models.therapy_session import SessionStatus
from ..principal import ActorPrincipal
from ..repositories.feedback_repository import FeedbackRepository
from ..repositories.session_repository import SessionRepository
from ..repositories.therapist_repository import TherapistRepository
from ..schemas.therapist import TherapistProfileUpsert
from .base import BaseService

logger = logging.getLogger(__name__)


class TherapistService(BaseService):
    """Service layer for therapist profiles, availability and dashboards."""

    def __init__(
        self,
        db: Session,
        repository: Optional[TherapistRepository] = None,
        session_repository: Optional[SessionRepository] = None,
        feedback_repository: Optional[FeedbackRepository] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(db)
        self.repository = repository or TherapistRepository(db)
        self.session_repository = session_repository or SessionRepository(db)
        self.feedback_repository = feedback_repository or FeedbackRepository(db)
        self.config = config or settings
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @BaseService.measure_operation("search_therapists")
    def search(
        self,
        *,
        query: Optional[str] = None,
        specialization: Optional[str] = None,
        language: Optional[str] = None,
        session_type: Optional[str] = None,
        max_price: Optional[float] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> List[Therapist]:
        return self.repository.search(
            query=query,
            specialization=specialization,
            language=language,
            session_type=session_type,
            max_price=max_price,
            skip=skip,
            limit=limit,
        )

    def get_profile(self, therapist_id: str) -> Therapist:
        therapist = self.repository.get_by_id(therapist_id, load_relationships=False)
        if therapist is None or not therapist.is_active:
            raise TherapistNotFoundException(therapist_id)
        return therapist

    @BaseService.measure_operation("upsert_profile")
    def upsert_profile(self, actor: ActorPrincipal, data: TherapistProfileUpsert) -> Therapist:
        """
        Create or replace the calling therapist's profile.

        Price changes only affect future bookings; existing sessions keep
        their snapshot.
        """
        self._require_therapist(actor)
        owner = self.repository.get_by_email(data.email)
        if owner is not None and owner.id != actor.actor_id:
            raise ConflictException(
                "Email is already used by another therapist",
                code="EMAIL_TAKEN",
                details={"email": data.email},
            )

        fields = data.model_dump()
        try:
            with self.repository.transaction():
                therapist = self.repository.get_by_id(actor.actor_id, load_relationships=False)
                if therapist is None:
                    therapist = self.repository.create(id=actor.actor_id, **fields)
                    created = True
                else:
                    for key, value in fields.items():
                        setattr(therapist, key, value)
                    self.repository.flush()
                    created = False
        except (IntegrityError, RepositoryException) as exc:
            if isinstance(exc, RepositoryException) and not isinstance(
                exc.__cause__, IntegrityError
            ):
                raise
            raise ConflictException(
                "Email is already used by another therapist",
                code="EMAIL_TAKEN",
                details={"email": data.email},
            ) from exc

        self.log_operation("upsert_profile", therapist_id=actor.actor_id, new_profile=created)
        return therapist

    @BaseService.measure_operation("replace_availability")
    def replace_availability(
        self, actor: ActorPrincipal, slots: Iterable[Tuple[str, str]]
    ) -> List[Tuple[str, str]]:
        """Replace the calling therapist's declared slots."""
        self._require_therapist(actor)
        self.get_profile(actor.actor_id)
        with self.repository.transaction():
            rows = self.repository.replace_availability(actor.actor_id, slots)
            declared = [(row.date, row.time) for row in rows]
        self.log_operation(
            "replace_availability", therapist_id=actor.actor_id, slot_count=len(declared)
        )
        return declared

    def get_open_slots(
        self, therapist_id: str, from_date: Optional[str] = None
    ) -> List[Tuple[str, str]]:
        """
        Declared slots from ``from_date`` (default: today in the session
        timezone) that no active session holds.
        """
        self.get_profile(therapist_id)
        start = from_date or self._today()
        declared = [
            (row.date, row.time)
            for row in self.repository.get_availability(therapist_id, from_date=start)
        ]
        taken = self.session_repository.get_active_slots_for_therapist(
            therapist_id, {slot_date for slot_date, _ in declared}
        )
        return [slot for slot in declared if slot not in taken]

    @BaseService.measure_operation("therapist_dashboard")
    def dashboard(self, actor: ActorPrincipal) -> Dict[str, Any]:
        """Own session counts, earnings from completed sessions and rating."""
        self._require_therapist(actor)
        counts = self.session_repository.count_by_status(therapist_id=actor.actor_id)
        average, total_reviews = self.feedback_repository.rating_stats(actor.actor_id)
        return {
            "therapist_id": actor.actor_id,
            "sessions_by_status": counts,
            "total_earnings": float(
                self.session_repository.sum_completed_earnings(therapist_id=actor.actor_id)
            ),
            "unique_clients": self.session_repository.count_unique_clients(
                therapist_id=actor.actor_id
            ),
            "average_rating": average,
            "total_reviews": total_reviews,
            "upcoming": counts[SessionStatus.PENDING.value] + counts[SessionStatus.CONFIRMED.value],
        }

    def _require_therapist(self, actor: ActorPrincipal) -> None:
        if not actor.is_therapist:
            raise NotAuthorizedException("Only therapists can perform this action")

    def _today(self) -> str:
        return self.clock().astimezone(ZoneInfo(self.config.session_timezone)).strftime("%Y-%m-%d")
