"""Payment Enforcement — pure validation for payment amounts, status changes, refunds.

Invariants:
    - 0 < amount <= MAX_PAYMENT_AMOUNT
    - An amount is never set below what has already been refunded
    - New payments start pending, completed, failed or cancelled; refunded is reached
      only through a refund
    - Transitions: pending -> completed|failed|cancelled; completed -> refunded;
      failed -> pending; refunded and cancelled are terminal
    - refundable = max(0, amount - refunded_amount); 0 < refund <= refundable
    - Refund reason has at least MIN_REFUND_REASON_LENGTH characters
    - A payment is fully refunded once refunded_amount >= amount

Design Decisions:
    - Decimal arithmetic throughout: money never goes through float
    - Status sync driven by enrollment changes bypasses this table on purpose
      (see core/enforce_enrollment.py): it mirrors the enrollment, not a cashier action
"""

from decimal import Decimal

from courseportal.core.domain_types import PaymentStatus
from courseportal.core.errors import BusinessRuleError, ValidationError


MAX_PAYMENT_AMOUNT = Decimal("1000000")
MIN_REFUND_REASON_LENGTH = 3

VALID_PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({
        PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED,
    }),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING}),
    PaymentStatus.REFUNDED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}

CREATABLE_PAYMENT_STATUSES = frozenset({
    PaymentStatus.PENDING, PaymentStatus.COMPLETED,
    PaymentStatus.FAILED, PaymentStatus.CANCELLED,
})


def validate_payment_amount(amount: Decimal) -> None:
    if amount <= 0:
        raise ValidationError(
            "Amount must be greater than zero", "INVALID_AMOUNT",
            details={"amount": str(amount)},
        )
    if amount > MAX_PAYMENT_AMOUNT:
        raise ValidationError(
            "Amount cannot exceed 1,000,000", "AMOUNT_TOO_LARGE",
            details={"amount": str(amount)},
        )


def validate_initial_status(status: PaymentStatus) -> None:
    if status not in CREATABLE_PAYMENT_STATUSES:
        raise ValidationError(
            f"A payment cannot be created as {status.value}",
            "INVALID_PAYMENT_STATUS",
            details={
                "status": status.value,
                "allowed": sorted(s.value for s in CREATABLE_PAYMENT_STATUSES),
            },
        )


def validate_amount_covers_refunds(amount: Decimal, refunded: Decimal | None) -> None:
    refunded = refunded or Decimal("0")
    if amount < refunded:
        raise ValidationError(
            "Amount cannot be lower than the amount already refunded",
            "AMOUNT_BELOW_REFUNDED",
            details={"amount": str(amount), "refunded_amount": str(refunded)},
        )


def validate_payment_transition(
    current: PaymentStatus, target: PaymentStatus,
) -> None:
    allowed = VALID_PAYMENT_TRANSITIONS[current]
    if target not in allowed:
        raise BusinessRuleError(
            f"Cannot transition from {current.value} to {target.value}",
            "INVALID_STATUS_TRANSITION",
            details={
                "from": current.value,
                "to": target.value,
                "allowed": sorted(s.value for s in allowed),
            },
        )


def refundable_amount(amount: Decimal, refunded: Decimal | None) -> Decimal:
    return max(Decimal("0"), amount - (refunded or Decimal("0")))


def validate_refund(
    status: PaymentStatus,
    amount: Decimal,
    refunded: Decimal | None,
    refund_amount: Decimal,
    reason: str | None,
) -> Decimal:
    """Validate a refund request. Returns the new refunded total."""
    if status != PaymentStatus.COMPLETED:
        raise BusinessRuleError(
            "Only completed payments can be refunded",
            "PAYMENT_NOT_REFUNDABLE",
            details={"status": status.value},
        )
    max_amount = refundable_amount(amount, refunded)
    if refund_amount <= 0:
        raise ValidationError(
            "Refund amount must be greater than zero",
            "INVALID_REFUND_AMOUNT",
            details={"amount": str(refund_amount)},
        )
    if refund_amount > max_amount:
        raise ValidationError(
            "Refund amount cannot exceed the refundable amount",
            "REFUND_AMOUNT_TOO_LARGE",
            details={"amount": str(refund_amount), "refundable": str(max_amount)},
        )
    if not reason or len(reason.strip()) < MIN_REFUND_REASON_LENGTH:
        raise ValidationError(
            "Refund reason must be at least 3 characters long",
            "INVALID_REFUND_REASON",
        )
    return (refunded or Decimal("0")) + refund_amount


def status_after_refund(amount: Decimal, refunded_total: Decimal) -> PaymentStatus:
    if refunded_total >= amount:
        return PaymentStatus.REFUNDED
    return PaymentStatus.COMPLETED
