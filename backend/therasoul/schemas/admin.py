# backend/therasoul/schemas/admin.py
"""Admin overview schema."""

from typing import Dict, Optional

from ._strict_base import StrictModel


class AdminOverviewResponse(StrictModel):
    total_sessions: int
    sessions_by_status: Dict[str, int]
    sessions_by_type: Dict[str, int]
    total_earnings: float
    unique_clients: int
    therapist_count: int
    average_rating: Optional[float] = None
    total_reviews: int
