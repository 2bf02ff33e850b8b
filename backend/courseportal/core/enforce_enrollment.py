"""Enrollment Enforcement — pure rules for the enrollment lifecycle.

Invariants:
    - Transitions: requested -> enrolled|cancelled; enrolled -> completed|cancelled;
      completed is terminal; cancelled -> requested (re-enrollment)
    - A cancelled enrollment holds no seat; every other status holds exactly one
    - Completed enrollments can never be deleted
    - All functions are PURE: they raise or return, the service layer applies effects

Design Decisions:
    - Seat accounting expressed as a delta (-1/0/+1) so status changes, intake moves
      and deletes share one rule (ADR: single source of truth for total_registered)
    - Payment sync is a lookup table, not branching: statuses with no entry leave
      the payment untouched
"""

from courseportal.core.domain_types import EnrollmentStatus, PaymentStatus
from courseportal.core.errors import BusinessRuleError


VALID_TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.REQUESTED: frozenset({
        EnrollmentStatus.ENROLLED, EnrollmentStatus.CANCELLED,
    }),
    EnrollmentStatus.ENROLLED: frozenset({
        EnrollmentStatus.COMPLETED, EnrollmentStatus.CANCELLED,
    }),
    EnrollmentStatus.COMPLETED: frozenset(),
    EnrollmentStatus.CANCELLED: frozenset({EnrollmentStatus.REQUESTED}),
}

PAYMENT_STATUS_FOR_ENROLLMENT: dict[EnrollmentStatus, PaymentStatus] = {
    EnrollmentStatus.ENROLLED: PaymentStatus.COMPLETED,
    EnrollmentStatus.COMPLETED: PaymentStatus.COMPLETED,
    EnrollmentStatus.CANCELLED: PaymentStatus.CANCELLED,
}


def validate_status_transition(
    current: EnrollmentStatus, target: EnrollmentStatus,
) -> None:
    """Raise INVALID_STATUS_TRANSITION unless current -> target is allowed."""
    allowed = VALID_TRANSITIONS[current]
    if target not in allowed:
        raise BusinessRuleError(
            f"Invalid status transition from {current.value} to {target.value}",
            "INVALID_STATUS_TRANSITION",
            details={
                "from": current.value,
                "to": target.value,
                "allowed": sorted(s.value for s in allowed),
            },
        )


def holds_seat(status: EnrollmentStatus) -> bool:
    return status != EnrollmentStatus.CANCELLED


def seat_delta(current: EnrollmentStatus, target: EnrollmentStatus) -> int:
    """Change to intake.total_registered when moving current -> target."""
    return int(holds_seat(target)) - int(holds_seat(current))


def payment_status_for(target: EnrollmentStatus) -> PaymentStatus | None:
    """Payment status implied by an enrollment status, or None to leave it."""
    return PAYMENT_STATUS_FOR_ENROLLMENT.get(target)


def validate_deletable(status: EnrollmentStatus) -> None:
    if status == EnrollmentStatus.COMPLETED:
        raise BusinessRuleError(
            "Cannot delete completed enrollments",
            "CANNOT_DELETE_COMPLETED",
        )


def notification_for(
    previous: EnrollmentStatus, target: EnrollmentStatus,
) -> EnrollmentStatus | None:
    """Status whose user email should go out after a change, if any.

    Only confirmations (enrolled) and cancellations send mail, and never when
    the status did not actually change.
    """
    if previous == target:
        return None
    if target in (EnrollmentStatus.ENROLLED, EnrollmentStatus.CANCELLED):
        return target
    return None
