# backend/therasoul/schemas/feedback.py
"""Feedback schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict

from ._strict_base import StrictModel


class FeedbackResponse(StrictModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: str
    session_id: str
    client_id: str
    therapist_id: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class TherapistFeedbackResponse(StrictModel):
    """Reviews received by one therapist."""

    therapist_id: str
    average_rating: Optional[float] = None
    total_reviews: int
    items: List[FeedbackResponse]
