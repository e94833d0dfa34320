# backend/therasoul/schemas/session.py
"""
Therapy session schemas.

Requests carry only what the caller may choose; price, therapist name and
meet link are always derived server-side.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator

from ._strict_base import StrictModel, StrictRequestModel
from ._validators import ensure_date_only, ensure_time_of_day


class SessionCreate(StrictRequestModel):
    """Book a slot with a therapist."""

    therapist_id: str = Field(..., min_length=1, max_length=64)
    date: str = Field(..., description="Slot date, YYYY-MM-DD")
    time: str = Field(..., description="Slot start, HH:MM (24h)")
    type: Literal["online", "in-person"] = Field(..., description="Session type")

    @field_validator("date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "date")

    @field_validator("time", mode="before")
    @classmethod
    def _enforce_time(cls, v: object) -> object:
        return ensure_time_of_day(v, "time")


class SessionCancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("reason")
    @classmethod
    def clean_reason(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class SessionCompleteRequest(StrictRequestModel):
    """
    Feedback that completes a session.

    The rating range is enforced by the lifecycle so out-of-range values
    surface as INVALID_RATING.
    """

    rating: int
    comment: Optional[str] = Field(None, max_length=2000)

    @field_validator("comment")
    @classmethod
    def clean_comment(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class SessionResponse(StrictModel):
    id: str
    client_id: str
    therapist_id: str
    therapist_name: str
    date: str
    time: str
    status: str
    price: float
    type: str
    meet_link: Optional[str] = None
    late_cancellation: bool = False
    cancelled_by_role: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_session(cls, session: Any) -> "SessionResponse":
        """Create a SessionResponse from the TherapySession ORM model."""
        return cls(
            id=session.id,
            client_id=session.client_id,
            therapist_id=session.therapist_id,
            therapist_name=session.therapist_name or "",
            date=session.date,
            time=session.time,
            status=session.status,
            price=float(session.price),
            type=session.session_type,
            meet_link=session.meet_link,
            late_cancellation=bool(session.late_cancellation),
            cancelled_by_role=session.cancelled_by_role,
            cancellation_reason=session.cancellation_reason,
            created_at=session.created_at,
            updated_at=session.updated_at,
            confirmed_at=session.confirmed_at,
            completed_at=session.completed_at,
            cancelled_at=session.cancelled_at,
        )


class SessionListResponse(StrictModel):
    items: List[SessionResponse]
    total: int
