from __future__ import annotations

from decimal import Decimal

import pytest

from therasoul.services.payment_gateway import PAYMENT_FAILED_MESSAGE, MockPaymentGateway


@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway(max_amount=Decimal("10000"))


def test_authorize_returns_transaction_id(gateway) -> None:
    result = gateway.authorize(Decimal("2500"), "client-1", "therapist-1")
    assert result.success is True
    assert result.transaction_id.startswith("txn_")
    assert result.error is None


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("10000.01")])
def test_authorize_declines(gateway, amount: Decimal) -> None:
    result = gateway.authorize(amount, "client-1", "therapist-1")
    assert result.success is False
    assert result.transaction_id is None
    assert result.error == PAYMENT_FAILED_MESSAGE


def test_transaction_ids_are_unique(gateway) -> None:
    ids = {gateway.authorize(Decimal("100"), "c", "t").transaction_id for _ in range(20)}
    assert len(ids) == 20


def test_refund_once(gateway) -> None:
    txn = gateway.authorize(Decimal("2500"), "client-1", "therapist-1").transaction_id

    assert gateway.refund(txn).success is True
    assert gateway.is_refunded(txn) is True

    again = gateway.refund(txn)
    assert again.success is False
    assert again.error == "Transaction already refunded"


def test_refund_unknown_or_excessive(gateway) -> None:
    assert gateway.refund("txn_missing").success is False

    txn = gateway.authorize(Decimal("100"), "client-1", "therapist-1").transaction_id
    result = gateway.refund(txn, Decimal("150"))
    assert result.success is False
    assert gateway.is_refunded(txn) is False
