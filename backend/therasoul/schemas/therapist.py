# backend/therasoul/schemas/therapist.py
"""Therapist profile, availability and dashboard schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import ConfigDict, EmailStr, Field, field_validator, model_validator

from ._strict_base import StrictModel, StrictRequestModel
from ._validators import ensure_date_only, ensure_time_of_day


class TherapistProfileUpsert(StrictRequestModel):
    """Create or replace the calling therapist's own profile."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    bio: Optional[str] = Field(None, max_length=5000)
    specializations: List[str] = Field(default_factory=list, max_length=20)
    languages: List[str] = Field(default_factory=list, max_length=20)
    location: Optional[str] = Field(None, max_length=255)
    experience_years: int = Field(0, ge=0, le=80)
    price: float = Field(..., ge=0, le=1_000_000)
    accepts_online: bool = True
    accepts_in_person: bool = False

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("name cannot be blank")
        return cleaned

    @field_validator("specializations", "languages")
    @classmethod
    def clean_list(cls, v: List[str]) -> List[str]:
        seen: List[str] = []
        for item in v:
            cleaned = item.strip()
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen

    @model_validator(mode="after")
    def _offers_some_type(self) -> "TherapistProfileUpsert":
        if not (self.accepts_online or self.accepts_in_person):
            raise ValueError("A therapist must accept online or in-person sessions")
        return self


class TherapistResponse(StrictModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: str
    name: str
    email: str
    bio: Optional[str] = None
    specializations: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    location: Optional[str] = None
    experience_years: int = 0
    price: float
    accepts_online: bool
    accepts_in_person: bool
    is_active: bool
    created_at: datetime


class TherapistSearchResponse(StrictModel):
    items: List[TherapistResponse]
    total: int


class AvailabilitySlot(StrictRequestModel):
    date: str
    time: str

    @field_validator("date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "date")

    @field_validator("time", mode="before")
    @classmethod
    def _enforce_time(cls, v: object) -> object:
        return ensure_time_of_day(v, "time")


class AvailabilityReplace(StrictRequestModel):
    slots: List[AvailabilitySlot] = Field(default_factory=list, max_length=500)


class AvailabilityResponse(StrictModel):
    therapist_id: str
    slots: List[AvailabilitySlot]


class TherapistDashboardResponse(StrictModel):
    therapist_id: str
    sessions_by_status: Dict[str, int]
    total_earnings: float
    unique_clients: int
    average_rating: Optional[float] = None
    total_reviews: int
    upcoming: int
