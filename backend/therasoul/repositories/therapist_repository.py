# backend/therasoul/repositories/therapist_repository.py
"""
Therapist Repository for the TheraSoul platform

Profile lookups, directory search and declared availability replacement.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.exceptions import RepositoryException
from ..models.therapist import Therapist, TherapistAvailability
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _contains_casefold(values: Optional[List[str]], needle: str) -> bool:
    wanted = needle.strip().casefold()
    return any(wanted == str(value).strip().casefold() for value in values or [])


class TherapistRepository(BaseRepository[Therapist]):
    """Repository for therapist profiles and availability."""

    def __init__(self, db: Session):
        super().__init__(db, Therapist)
        self.logger = logging.getLogger(__name__)

    def get_by_email(self, email: str) -> Optional[Therapist]:
        try:
            return self.db.query(Therapist).filter(Therapist.email == email).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting therapist by email: {str(e)}")
            raise RepositoryException(f"Failed to retrieve therapist: {str(e)}")

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
        """
        Search active therapists, ordered by name.

        Args:
            query: Case-insensitive match on name, bio or location
            specialization: Exact (case-insensitive) entry of ``specializations``
            language: Exact (case-insensitive) entry of ``languages``
            session_type: 'online' or 'in-person' to keep only therapists accepting it
            max_price: Upper bound on the session price

        JSON list filters are applied after the SQL filters so the same query
        runs on SQLite and PostgreSQL.
        """
        try:
            q = self.db.query(Therapist).filter(Therapist.is_active.is_(True))
            if query:
                pattern = f"%{query.strip()}%"
                q = q.filter(
                    or_(
                        Therapist.name.ilike(pattern),
                        Therapist.bio.ilike(pattern),
                        Therapist.location.ilike(pattern),
                    )
                )
            if session_type == "online":
                q = q.filter(Therapist.accepts_online.is_(True))
            elif session_type == "in-person":
                q = q.filter(Therapist.accepts_in_person.is_(True))
            if max_price is not None:
                q = q.filter(Therapist.price <= max_price)
            therapists = q.order_by(Therapist.name.asc(), Therapist.id.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error searching therapists: {str(e)}")
            raise RepositoryException(f"Failed to search therapists: {str(e)}")

        if specialization:
            therapists = [
                t for t in therapists if _contains_casefold(t.specializations, specialization)
            ]
        if language:
            therapists = [t for t in therapists if _contains_casefold(t.languages, language)]
        return therapists[skip : skip + limit]

    def count_active(self) -> int:
        try:
            return self.db.query(Therapist).filter(Therapist.is_active.is_(True)).count()
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting therapists: {str(e)}")
            raise RepositoryException(f"Failed to count therapists: {str(e)}")

    def replace_availability(
        self, therapist_id: str, slots: Iterable[Tuple[str, str]]
    ) -> List[TherapistAvailability]:
        """Replace the therapist's declared slots. Does NOT commit."""
        try:
            self.db.query(TherapistAvailability).filter(
                TherapistAvailability.therapist_id == therapist_id
            ).delete(synchronize_session=False)
            rows = [
                TherapistAvailability(therapist_id=therapist_id, date=slot_date, time=slot_time)
                for slot_date, slot_time in sorted(set(slots))
            ]
            self.db.add_all(rows)
            self.db.flush()
            return rows
        except SQLAlchemyError as e:
            self.logger.error(f"Error replacing availability for {therapist_id}: {str(e)}")
            raise RepositoryException(f"Failed to replace availability: {str(e)}")

    def get_availability(
        self, therapist_id: str, from_date: Optional[str] = None
    ) -> List[TherapistAvailability]:
        """Declared slots, oldest first, optionally from ``from_date`` on."""
        try:
            q = self.db.query(TherapistAvailability).filter(
                TherapistAvailability.therapist_id == therapist_id
            )
            if from_date is not None:
                q = q.filter(TherapistAvailability.date >= from_date)
            return q.order_by(TherapistAvailability.date, TherapistAvailability.time).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading availability for {therapist_id}: {str(e)}")
            raise RepositoryException(f"Failed to load availability: {str(e)}")

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(selectinload(Therapist.availability))
