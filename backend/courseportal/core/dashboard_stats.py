"""Dashboard Stats — pure aggregation of grouped counts into the admin summary.

Invariants:
    - Every enrollment and payment status appears in the summary (zero-filled)
    - total_income is the amount of completed payments only
    - Statuses are reported in enum declaration order
"""

from dataclasses import dataclass, field
from decimal import Decimal

from courseportal.core.domain_types import EnrollmentStatus, PaymentStatus


@dataclass
class StatusCount:
    status: str
    count: int


@dataclass
class PaymentStatusTotal:
    status: str
    count: int
    total_amount: Decimal


@dataclass
class DashboardSummary:
    total_users: int
    total_enrollments: int
    total_income: Decimal
    enrollments_by_status: list[StatusCount] = field(default_factory=list)
    payments_by_status: list[PaymentStatusTotal] = field(default_factory=list)


def summarize(
    total_users: int,
    enrollment_groups: list[tuple[str, int]],
    payment_groups: list[tuple[str, int, Decimal | None]],
) -> DashboardSummary:
    """Build the summary from GROUP BY rows (status, count[, sum(amount)])."""
    enrollment_counts = {status: count for status, count in enrollment_groups}
    payment_totals = {
        status: (count, amount or Decimal("0"))
        for status, count, amount in payment_groups
    }

    by_status = [
        StatusCount(s.value, enrollment_counts.get(s.value, 0))
        for s in EnrollmentStatus
    ]
    payments = [
        PaymentStatusTotal(
            s.value,
            payment_totals.get(s.value, (0, Decimal("0")))[0],
            payment_totals.get(s.value, (0, Decimal("0")))[1],
        )
        for s in PaymentStatus
    ]
    income = payment_totals.get(PaymentStatus.COMPLETED.value, (0, Decimal("0")))[1]

    return DashboardSummary(
        total_users=total_users,
        total_enrollments=sum(c.count for c in by_status),
        total_income=Decimal(income),
        enrollments_by_status=by_status,
        payments_by_status=payments,
    )
