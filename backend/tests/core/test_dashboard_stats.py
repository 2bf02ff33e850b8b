"""Dashboard Stats — tests for aggregating grouped counts into the summary.

Tests cover:
    - Missing statuses are zero-filled
    - total_enrollments sums every status
    - total_income counts completed payments only
    - None sums (no rows) become zero
"""

from decimal import Decimal

from courseportal.core.dashboard_stats import summarize


def test_summary_zero_fills_statuses():
    summary = summarize(0, [], [])
    assert [s.status for s in summary.enrollments_by_status] == [
        "requested", "enrolled", "cancelled", "completed",
    ]
    assert all(s.count == 0 for s in summary.enrollments_by_status)
    assert len(summary.payments_by_status) == 5
    assert summary.total_income == Decimal("0")


def test_summary_totals():
    summary = summarize(
        7,
        [("requested", 3), ("enrolled", 2)],
        [
            ("completed", 2, Decimal("1500.00")),
            ("pending", 1, Decimal("300.00")),
            ("failed", 1, None),
        ],
    )
    assert summary.total_users == 7
    assert summary.total_enrollments == 5
    assert summary.total_income == Decimal("1500.00")
    failed = next(p for p in summary.payments_by_status if p.status == "failed")
    assert failed.count == 1
    assert failed.total_amount == Decimal("0")
