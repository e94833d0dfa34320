# backend/therasoul/services/payment_gateway.py
"""
Payment gateway abstraction.

Booking authorizes the session price before the session is created and
refunds the authorization when creation fails afterwards. The mock gateway
keeps an in-memory ledger; it is created once per application and injected,
never imported as a module global.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
import logging
import threading
from typing import Dict, Optional, Protocol

from ..core.ulid_helper import generate_ulid

logger = logging.getLogger(__name__)

PAYMENT_FAILED_MESSAGE = "Payment failed. Please try again."


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    transaction_id: Optional[str] = None
    error: Optional[str] = None


class PaymentGateway(Protocol):
    def authorize(self, amount: Decimal, payer_id: str, payee_id: str) -> PaymentResult:
        ...

    def refund(self, transaction_id: str, amount: Optional[Decimal] = None) -> PaymentResult:
        ...


@dataclass
class _Authorization:
    transaction_id: str
    amount: Decimal
    payer_id: str
    payee_id: str
    currency: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    refunded: bool = False


class MockPaymentGateway:
    """
    Deterministic in-memory gateway.

    Declines non-positive amounts and amounts above ``max_amount``; every
    other authorization succeeds with a ``txn_`` transaction id.
    """

    def __init__(self, *, currency: str = "INR", max_amount: Decimal = Decimal("100000")):
        self.currency = currency
        self.max_amount = Decimal(str(max_amount))
        self._lock = threading.Lock()
        self._authorizations: Dict[str, _Authorization] = {}

    def authorize(self, amount: Decimal, payer_id: str, payee_id: str) -> PaymentResult:
        amount = Decimal(str(amount))
        if amount <= 0 or amount > self.max_amount:
            logger.info(
                "Payment declined",
                extra={"amount": str(amount), "payer_id": payer_id, "payee_id": payee_id},
            )
            return PaymentResult(success=False, error=PAYMENT_FAILED_MESSAGE)

        transaction_id = f"txn_{generate_ulid().lower()}"
        with self._lock:
            self._authorizations[transaction_id] = _Authorization(
                transaction_id=transaction_id,
                amount=amount,
                payer_id=payer_id,
                payee_id=payee_id,
                currency=self.currency,
            )
        logger.info(
            "Payment authorized",
            extra={"transaction_id": transaction_id, "amount": str(amount), "currency": self.currency},
        )
        return PaymentResult(success=True, transaction_id=transaction_id)

    def refund(self, transaction_id: str, amount: Optional[Decimal] = None) -> PaymentResult:
        with self._lock:
            authorization = self._authorizations.get(transaction_id)
            if authorization is None:
                return PaymentResult(success=False, error="Unknown transaction")
            if authorization.refunded:
                return PaymentResult(success=False, error="Transaction already refunded")
            if amount is not None and Decimal(str(amount)) > authorization.amount:
                return PaymentResult(success=False, error="Refund exceeds authorized amount")
            authorization.refunded = True
        logger.info("Payment refunded", extra={"transaction_id": transaction_id})
        return PaymentResult(success=True, transaction_id=transaction_id)

    def is_refunded(self, transaction_id: str) -> bool:
        with self._lock:
            authorization = self._authorizations.get(transaction_id)
            return bool(authorization and authorization.refunded)
