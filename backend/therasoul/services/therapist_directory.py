# backend/therasoul/services/therapist_directory.py
"""
Therapist directory used by the session lifecycle.

The lifecycle only needs a therapist's price, display name and accepted
session types; it reads them through the ``TherapistDirectory`` protocol so
tests and other deployments can supply their own source.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from ..repositories.therapist_repository import TherapistRepository


@dataclass(frozen=True)
class TherapistListing:
    """What booking needs to know about a therapist."""

    id: str
    name: str
    price: Decimal
    accepts_in_person: bool
    accepts_online: bool = True


class TherapistDirectory(Protocol):
    def get_therapist(self, therapist_id: str) -> Optional[TherapistListing]:
        """Return the listing, or None when the therapist does not exist."""
        ...


class SqlTherapistDirectory:
    """Directory backed by the ``therapists`` table; inactive therapists are absent."""

    def __init__(self, db: Session, repository: Optional[TherapistRepository] = None):
        self.repository = repository or TherapistRepository(db)

    def get_therapist(self, therapist_id: str) -> Optional[TherapistListing]:
        therapist = self.repository.get_by_id(therapist_id, load_relationships=False)
        if therapist is None or not therapist.is_active:
            return None
        return TherapistListing(
            id=therapist.id,
            name=therapist.name,
            price=Decimal(str(therapist.price)),
            accepts_in_person=bool(therapist.accepts_in_person),
            accepts_online=bool(therapist.accepts_online),
        )
