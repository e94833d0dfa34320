"""Session lifecycle domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional


@dataclass
class SessionBooked:
    """Fired after a session is created in pending status."""

    event_name: ClassVar[str] = "booked"

    session_id: str
    client_id: str
    therapist_id: str
    therapist_name: str
    date: str
    time: str
    session_type: str
    price: float
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionConfirmed:
    """Fired after the therapist confirms a session."""

    event_name: ClassVar[str] = "confirmed"

    session_id: str
    client_id: str
    therapist_id: str
    therapist_name: str
    date: str
    time: str
    confirmed_at: datetime
    meet_link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionCancelled:
    """Fired after a session is cancelled."""

    event_name: ClassVar[str] = "cancelled"

    session_id: str
    client_id: str
    therapist_id: str
    therapist_name: str
    date: str
    time: str
    cancelled_by: str  # actor id
    cancelled_by_role: str  # 'client', 'therapist' or 'admin'
    cancelled_at: datetime
    late_cancellation: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionCompleted:
    """Fired after the client completes a session with feedback."""

    event_name: ClassVar[str] = "completed"

    session_id: str
    client_id: str
    therapist_id: str
    therapist_name: str
    rating: int
    completed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PaymentFailed:
    """Fired when payment authorization is declined before booking."""

    event_name: ClassVar[str] = "payment_failed"

    client_id: str
    therapist_id: str
    amount: float
    currency: str
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
