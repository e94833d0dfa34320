# backend/therasoul/routes/therapists.py
"""
Therapist routes for the TheraSoul platform.

Router Endpoints:
    PUT /me - Create or replace the caller's therapist profile
    PUT /me/availability - Replace the caller's declared slots
    GET /me/dashboard - Caller's session counts, earnings and rating
    GET / - Search the directory
    GET /{therapist_id} - Public profile
    GET /{therapist_id}/slots - Declared slots not held by an active session
    GET /{therapist_id}/feedback - Reviews with the average rating
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_current_actor, get_feedback_service, get_therapist_service
from ..core.exceptions import DomainException
from ..principal import ActorPrincipal
from ..schemas.feedback import FeedbackResponse, TherapistFeedbackResponse
from ..schemas.therapist import (
    AvailabilityReplace,
    AvailabilityResponse,
    AvailabilitySlot,
    TherapistDashboardResponse,
    TherapistProfileUpsert,
    TherapistResponse,
    TherapistSearchResponse,
)
from ..services.feedback_service import FeedbackService
from ..services.therapist_service import TherapistService
from .sessions import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/therapists", tags=["therapists"])


# 1. First: all /me routes


@router.put("/me", response_model=TherapistResponse)
def upsert_my_profile(
    payload: TherapistProfileUpsert,
    actor: ActorPrincipal = Depends(get_current_actor),
    therapist_service: TherapistService = Depends(get_therapist_service),
):
    try:
        return TherapistResponse.model_validate(therapist_service.upsert_profile(actor, payload))
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/me/availability", response_model=AvailabilityResponse)
def replace_my_availability(
    payload: AvailabilityReplace,
    actor: ActorPrincipal = Depends(get_current_actor),
    therapist_service: TherapistService = Depends(get_therapist_service),
):
    try:
        declared = therapist_service.replace_availability(
            actor, [(slot.date, slot.time) for slot in payload.slots]
        )
        return AvailabilityResponse(
            therapist_id=actor.actor_id,
            slots=[AvailabilitySlot(date=d, time=t) for d, t in declared],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/me/dashboard", response_model=TherapistDashboardResponse)
def my_dashboard(
    actor: ActorPrincipal = Depends(get_current_actor),
    therapist_service: TherapistService = Depends(get_therapist_service),
):
    try:
        return TherapistDashboardResponse(**therapist_service.dashboard(actor))
    except DomainException as e:
        handle_domain_exception(e)


# 2. Then: directory routes


@router.get("", response_model=TherapistSearchResponse)
def search_therapists(
    q: Optional[str] = Query(None, max_length=100),
    specialization: Optional[str] = Query(None, max_length=100),
    language: Optional[str] = Query(None, max_length=50),
    session_type: Optional[Literal["online", "in-person"]] = Query(None, alias="type"),
    max_price: Optional[float] = Query(None, ge=0),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    _actor: ActorPrincipal = Depends(get_current_actor),
    therapist_service: TherapistService = Depends(get_therapist_service),
):
    try:
        therapists = therapist_service.search(
            query=q,
            specialization=specialization,
            language=language,
            session_type=session_type,
            max_price=max_price,
            skip=skip,
            limit=limit,
        )
        items = [TherapistResponse.model_validate(t) for t in therapists]
        return TherapistSearchResponse(items=items, total=len(items))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{therapist_id}", response_model=TherapistResponse)
def get_therapist(
    therapist_id: str,
    _actor: ActorPrincipal = Depends(get_current_actor),
    therapist_service: TherapistService = Depends(get_therapist_service),
):
    try:
        return TherapistResponse.model_validate(therapist_service.get_profile(therapist_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{therapist_id}/slots", response_model=AvailabilityResponse)
def get_open_slots(
    therapist_id: str,
    from_date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    _actor: ActorPrincipal = Depends(get_current_actor),
    therapist_service: TherapistService = Depends(get_therapist_service),
):
    try:
        open_slots = therapist_service.get_open_slots(therapist_id, from_date=from_date)
        return AvailabilityResponse(
            therapist_id=therapist_id,
            slots=[AvailabilitySlot(date=d, time=t) for d, t in open_slots],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{therapist_id}/feedback", response_model=TherapistFeedbackResponse)
def get_therapist_feedback(
    therapist_id: str,
    limit: int = Query(50, ge=1, le=100),
    _actor: ActorPrincipal = Depends(get_current_actor),
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    try:
        result = feedback_service.list_therapist_feedback(therapist_id, limit=limit)
        return TherapistFeedbackResponse(
            therapist_id=result["therapist_id"],
            average_rating=result["average_rating"],
            total_reviews=result["total_reviews"],
            items=[FeedbackResponse.model_validate(f) for f in result["items"]],
        )
    except DomainException as e:
        handle_domain_exception(e)
