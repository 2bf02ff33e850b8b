"""Initial schema — profiles, catalog, intakes, enrollments, payments, contact, audit.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]
    if updated:
        columns.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("role", sa.String(30), nullable=False, server_default="authenticated"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deletion_scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deletion_count", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])

    op.create_table(
        "course_categories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "affiliations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "courses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("category_id", UUID(as_uuid=True), sa.ForeignKey("course_categories.id"), nullable=True),
        sa.Column("affiliation_id", UUID(as_uuid=True), sa.ForeignKey("affiliations.id"), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True),
        sa.Column("course_highlights", sa.Text, nullable=True),
        sa.Column("course_overview", sa.Text, nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("level", sa.Integer, nullable=False, server_default="1"),
        sa.Column("duration_type", sa.String(10), nullable=False, server_default="month"),
        sa.Column("duration_value", sa.Integer, nullable=False, server_default="1"),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_courses_category_id", "courses", ["category_id"])
    op.create_index("ix_courses_affiliation_id", "courses", ["affiliation_id"])

    op.create_table(
        "intakes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("course_id", UUID(as_uuid=True), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False, server_default="20"),
        sa.Column("is_open", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("total_registered", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("start_date < end_date", name="ck_intakes_date_order"),
        sa.CheckConstraint(
            "total_registered >= 0 AND total_registered <= capacity",
            name="ck_intakes_seat_bounds",
        ),
    )
    op.create_index("ix_intakes_course_id", "intakes", ["course_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("intake_id", UUID(as_uuid=True), sa.ForeignKey("intakes.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="requested"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("cancelled_reason", sa.Text, nullable=True),
        sa.Column("enrollment_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "intake_id", name="uq_enrollments_user_intake"),
    )
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"])
    op.create_index("ix_enrollments_intake_id", "enrollments", ["intake_id"])

    op.create_table(
        "payments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "enrollment_id", UUID(as_uuid=True),
            sa.ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("method", sa.String(20), nullable=False, server_default="cash"),
        sa.Column("remarks", sa.Text, nullable=True),
        sa.Column("is_refunded", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("refunded_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_payments_enrollment_id", "payments", ["enrollment_id"])

    op.create_table(
        "refunds",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "payment_id", UUID(as_uuid=True),
            sa.ForeignKey("payments.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "enrollment_id", UUID(as_uuid=True),
            sa.ForeignKey("enrollments.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_refunds_payment_id", "refunds", ["payment_id"])
    op.create_index("ix_refunds_user_id", "refunds", ["user_id"])

    op.create_table(
        "customer_contact_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        *_timestamps(),
    )

    op.create_table(
        "customer_contact_replies",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "contact_request_id", UUID(as_uuid=True),
            sa.ForeignKey("customer_contact_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("reply_to_email", sa.String(255), nullable=False),
        sa.Column("reply_to_name", sa.String(255), nullable=True),
        sa.Column("provider_email_id", sa.String(255), nullable=True),
        sa.Column("email_status", sa.String(20), nullable=False, server_default="sending"),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("batch_id", UUID(as_uuid=True), nullable=True),
        sa.Column("is_batch_reply", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("admin_id", UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("admin_email", sa.String(255), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_customer_contact_replies_contact_request_id",
        "customer_contact_replies", ["contact_request_id"],
    )
    op.create_index(
        "ix_customer_contact_replies_batch_id",
        "customer_contact_replies", ["batch_id"],
    )

    op.create_table(
        "email_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("provider_email_id", sa.String(255), nullable=True),
        sa.Column("batch_id", UUID(as_uuid=True), nullable=True),
        sa.Column("from_email", sa.String(255), nullable=False),
        sa.Column("to_emails", sa.JSON, nullable=False),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("html_content", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("email_type", sa.String(50), nullable=False),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=True),
        sa.Column("admin_id", UUID(as_uuid=True), nullable=True),
        sa.Column("related_entity_type", sa.String(50), nullable=True),
        sa.Column("related_entity_id", UUID(as_uuid=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_email_logs_user_id", "email_logs", ["user_id"])

    op.create_table(
        "user_deletion_history",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", UUID(as_uuid=True), nullable=True),
        sa.Column("restored_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("restored_by", UUID(as_uuid=True), nullable=True),
        sa.Column("deletion_reason", sa.Text, nullable=True),
        sa.Column("scheduled_deletion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("email_notification_sent", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("restoration_count", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(updated=False),
    )
    op.create_index(
        "ix_user_deletion_history_user_id", "user_deletion_history", ["user_id"],
    )


def downgrade() -> None:
    op.drop_table("user_deletion_history")
    op.drop_table("email_logs")
    op.drop_table("customer_contact_replies")
    op.drop_table("customer_contact_requests")
    op.drop_table("refunds")
    op.drop_table("payments")
    op.drop_table("enrollments")
    op.drop_table("intakes")
    op.drop_table("courses")
    op.drop_table("affiliations")
    op.drop_table("course_categories")
    op.drop_table("profiles")
