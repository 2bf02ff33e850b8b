"""Payment Enforcement — tests for amounts, payment transitions and refunds.

Tests cover:
    - validate_payment_amount bounds (zero, negative, max, above max)
    - Payment status transitions
    - refundable_amount never negative
    - validate_refund: status, amount and reason checks; new refunded total
    - status_after_refund: partial vs full
    - New payments never start refunded; amount never drops below refunds
"""

from decimal import Decimal

import pytest

from courseportal.core.domain_types import PaymentStatus as P
from courseportal.core.errors import BusinessRuleError, ValidationError
from courseportal.core.enforce_payment import (
    MAX_PAYMENT_AMOUNT, refundable_amount, status_after_refund,
    validate_amount_covers_refunds, validate_initial_status,
    validate_payment_amount, validate_payment_transition, validate_refund,
)


# ─── Amounts ─────────────────────────────────────────────────────

def test_amount_must_be_positive():
    with pytest.raises(ValidationError) as exc:
        validate_payment_amount(Decimal("0"))
    assert exc.value.code == "INVALID_AMOUNT"
    with pytest.raises(ValidationError):
        validate_payment_amount(Decimal("-5"))


def test_amount_at_max_is_accepted():
    validate_payment_amount(MAX_PAYMENT_AMOUNT)


def test_amount_above_max_is_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_payment_amount(MAX_PAYMENT_AMOUNT + Decimal("0.01"))
    assert exc.value.code == "AMOUNT_TOO_LARGE"


# ─── Transitions ─────────────────────────────────────────────────

@pytest.mark.parametrize("current,target", [
    (P.PENDING, P.COMPLETED),
    (P.PENDING, P.FAILED),
    (P.PENDING, P.CANCELLED),
    (P.COMPLETED, P.REFUNDED),
    (P.FAILED, P.PENDING),
])
def test_allowed_payment_transitions(current, target):
    validate_payment_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (P.REFUNDED, P.COMPLETED),
    (P.CANCELLED, P.PENDING),
    (P.COMPLETED, P.PENDING),
    (P.FAILED, P.COMPLETED),
])
def test_refused_payment_transitions(current, target):
    with pytest.raises(BusinessRuleError) as exc:
        validate_payment_transition(current, target)
    assert exc.value.code == "INVALID_STATUS_TRANSITION"


# ─── Refunds ─────────────────────────────────────────────────────

def test_refundable_amount():
    assert refundable_amount(Decimal("100"), None) == Decimal("100")
    assert refundable_amount(Decimal("100"), Decimal("30")) == Decimal("70")
    assert refundable_amount(Decimal("100"), Decimal("120")) == Decimal("0")


def test_refund_returns_new_total():
    total = validate_refund(
        P.COMPLETED, Decimal("100"), Decimal("20"), Decimal("30"), "Dropped out",
    )
    assert total == Decimal("50")


def test_refund_only_for_completed_payments():
    with pytest.raises(BusinessRuleError) as exc:
        validate_refund(P.PENDING, Decimal("100"), None, Decimal("10"), "reason")
    assert exc.value.code == "PAYMENT_NOT_REFUNDABLE"


def test_refund_amount_must_be_positive():
    with pytest.raises(ValidationError) as exc:
        validate_refund(P.COMPLETED, Decimal("100"), None, Decimal("0"), "reason")
    assert exc.value.code == "INVALID_REFUND_AMOUNT"


def test_refund_cannot_exceed_refundable():
    with pytest.raises(ValidationError) as exc:
        validate_refund(
            P.COMPLETED, Decimal("100"), Decimal("80"), Decimal("30"), "reason",
        )
    assert exc.value.code == "REFUND_AMOUNT_TOO_LARGE"
    assert exc.value.details["refundable"] == "20"


def test_refund_reason_minimum_length():
    with pytest.raises(ValidationError) as exc:
        validate_refund(P.COMPLETED, Decimal("100"), None, Decimal("10"), " ab ")
    assert exc.value.code == "INVALID_REFUND_REASON"
    with pytest.raises(ValidationError):
        validate_refund(P.COMPLETED, Decimal("100"), None, Decimal("10"), None)


def test_status_after_refund():
    assert status_after_refund(Decimal("100"), Decimal("40")) == P.COMPLETED
    assert status_after_refund(Decimal("100"), Decimal("100")) == P.REFUNDED


# ─── Create / update guards ──────────────────────────────────────

def test_initial_status_excludes_refunded():
    for status in (P.PENDING, P.COMPLETED, P.FAILED, P.CANCELLED):
        validate_initial_status(status)
    with pytest.raises(ValidationError) as exc:
        validate_initial_status(P.REFUNDED)
    assert exc.value.code == "INVALID_PAYMENT_STATUS"


def test_amount_must_cover_refunds():
    validate_amount_covers_refunds(Decimal("500"), Decimal("500"))
    validate_amount_covers_refunds(Decimal("500"), None)
    with pytest.raises(ValidationError) as exc:
        validate_amount_covers_refunds(Decimal("100"), Decimal("1000"))
    assert exc.value.code == "AMOUNT_BELOW_REFUNDED"
