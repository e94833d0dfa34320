# backend/therasoul/core/exceptions.py
"""
Domain-specific exceptions for the TheraSoul platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
Every rejected session operation surfaces one of these with a
stable ``code`` so the UI can re-render accordingly.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when the caller carries no identity."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


# Session lifecycle exceptions


class NotAuthorizedException(ForbiddenException):
    """Raised when the actor is not the party allowed to perform a transition."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "You are not authorized to perform this action",
            code="NOT_AUTHORIZED",
            details=details or {},
        )


class InvalidTransitionException(BusinessRuleException):
    """Raised when the current status does not permit the requested transition."""

    def __init__(self, session_id: str, current_status: str, target_status: str):
        super().__init__(
            message=f"Session cannot move from {current_status} to {target_status}",
            code="INVALID_TRANSITION",
            details={
                "session_id": session_id,
                "current_status": current_status,
                "target_status": target_status,
            },
        )


class SlotConflictException(ConflictException):
    """Raised when another active session already holds the slot."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This slot is no longer available",
            code="SLOT_CONFLICT",
            details=details or {},
        )


class TherapistNotFoundException(NotFoundException):
    """Raised when the requested therapist does not exist or is inactive."""

    def __init__(self, therapist_id: str):
        super().__init__(
            message="Therapist not found",
            code="THERAPIST_NOT_FOUND",
            details={"therapist_id": therapist_id},
        )


class InvalidSessionTypeException(ValidationException):
    """Raised when the therapist does not offer the requested session type."""

    def __init__(self, therapist_id: str, session_type: str):
        super().__init__(
            message=f"Therapist does not offer {session_type} sessions",
            code="INVALID_SESSION_TYPE",
            details={"therapist_id": therapist_id, "type": session_type},
        )


class InvalidRatingException(ValidationException):
    """Raised when a feedback rating falls outside the 1..5 scale."""

    def __init__(self, rating: Any, minimum: int = 1, maximum: int = 5):
        super().__init__(
            message=f"Rating must be between {minimum} and {maximum}",
            code="INVALID_RATING",
            details={"rating": rating, "min": minimum, "max": maximum},
        )


class SessionNotFoundException(NotFoundException):
    """Raised when a session id does not resolve."""

    def __init__(self, session_id: str):
        super().__init__(
            message="Session not found",
            code="SESSION_NOT_FOUND",
            details={"session_id": session_id},
        )


class PaymentFailedException(BusinessRuleException):
    """Raised when the payment gateway declines the pre-authorization."""

    def __init__(self, reason: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=reason or "Payment failed. Please try again.",
            code="PAYMENT_FAILED",
            details=details or {},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
