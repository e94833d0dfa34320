# backend/therasoul/routes/sessions.py
"""
Session routes for the TheraSoul platform.

Router Endpoints:
    POST / - Book a slot (client; payment is authorized first)
    GET / - List the caller's sessions (admin: all), optional status filter
    GET /{session_id} - Session details (parties and admins)
    POST /{session_id}/confirm - Therapist confirms a pending session
    POST /{session_id}/cancel - Client, therapist or admin cancels
    POST /{session_id}/complete - Client completes with feedback
    GET /{session_id}/feedback - Feedback recorded at completion
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ..api.dependencies import (
    get_booking_service,
    get_current_actor,
    get_feedback_service,
    get_session_lifecycle_service,
)
from ..core.exceptions import DomainException
from ..models.therapy_session import SessionStatus
from ..principal import ActorPrincipal
from ..schemas.feedback import FeedbackResponse
from ..schemas.session import (
    SessionCancelRequest,
    SessionCompleteRequest,
    SessionCreate,
    SessionListResponse,
    SessionResponse,
)
from ..services.booking_service import BookingService
from ..services.feedback_service import FeedbackService
from ..services.session_lifecycle_service import SessionLifecycleService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def handle_domain_exception(exc: DomainException):
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def book_session(
    payload: SessionCreate,
    actor: ActorPrincipal = Depends(get_current_actor),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Book a slot; the price is the therapist's current rate."""
    try:
        session = booking_service.book_session(
            actor, payload.therapist_id, payload.date, payload.time, payload.type
        )
        return SessionResponse.from_session(session)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=SessionListResponse)
def list_sessions(
    status_filter: Optional[SessionStatus] = Query(None, alias="status"),
    actor: ActorPrincipal = Depends(get_current_actor),
    lifecycle_service: SessionLifecycleService = Depends(get_session_lifecycle_service),
):
    try:
        sessions = lifecycle_service.list_sessions(actor, status=status_filter)
        items = [SessionResponse.from_session(s) for s in sessions]
        return SessionListResponse(items=items, total=len(items))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{session_id}", response_model=SessionResponse)
def get_session(
    session_id: str,
    actor: ActorPrincipal = Depends(get_current_actor),
    lifecycle_service: SessionLifecycleService = Depends(get_session_lifecycle_service),
):
    try:
        return SessionResponse.from_session(lifecycle_service.get_session(actor, session_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/confirm", response_model=SessionResponse)
def confirm_session(
    session_id: str,
    actor: ActorPrincipal = Depends(get_current_actor),
    lifecycle_service: SessionLifecycleService = Depends(get_session_lifecycle_service),
):
    """Confirm a pending session (its therapist only)."""
    try:
        return SessionResponse.from_session(lifecycle_service.confirm_session(actor, session_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/cancel", response_model=SessionResponse)
def cancel_session(
    session_id: str,
    cancel_data: Optional[SessionCancelRequest] = Body(None),
    actor: ActorPrincipal = Depends(get_current_actor),
    lifecycle_service: SessionLifecycleService = Depends(get_session_lifecycle_service),
):
    """Cancel a pending or confirmed session."""
    reason = cancel_data.reason if cancel_data else None
    try:
        session = lifecycle_service.cancel_session(actor, session_id, reason=reason)
        return SessionResponse.from_session(session)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/complete", response_model=SessionResponse)
def complete_session(
    session_id: str,
    feedback: SessionCompleteRequest,
    actor: ActorPrincipal = Depends(get_current_actor),
    lifecycle_service: SessionLifecycleService = Depends(get_session_lifecycle_service),
):
    """Complete a confirmed session by submitting feedback (its client only)."""
    try:
        session = lifecycle_service.complete_session(
            actor, session_id, feedback.rating, feedback.comment
        )
        return SessionResponse.from_session(session)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{session_id}/feedback", response_model=FeedbackResponse)
def get_session_feedback(
    session_id: str,
    actor: ActorPrincipal = Depends(get_current_actor),
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    try:
        feedback = feedback_service.get_session_feedback(actor, session_id)
        return FeedbackResponse.model_validate(feedback)
    except DomainException as e:
        handle_domain_exception(e)
