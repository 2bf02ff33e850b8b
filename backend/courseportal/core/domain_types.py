"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - All valid states encoded as Enums — no raw string matching in domain logic
    - Enum values equal the strings stored in the DB status/type columns
    - ADMIN_ROLE is the only role granted back-office access

Design Decisions:
    - str Enums: serialize to JSON without custom encoders, compare equal to DB strings
"""

from enum import Enum


# ─── Roles ───────────────────────────────────────────────────────

ADMIN_ROLE = "service_role"
DEFAULT_ROLE = "authenticated"


# ─── Enums ───────────────────────────────────────────────────────

class DurationType(str, Enum):
    """Unit of a course's duration_value."""
    DAYS = "days"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle — see core/enforce_enrollment.py for transitions."""
    REQUESTED = "requested"
    ENROLLED = "enrolled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Payment lifecycle — see core/enforce_payment.py for transitions."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_WALLETS = "mobile_wallets"
    FONEPAY = "fonepay"


class ContactStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"


class EmailStatus(str, Enum):
    """Delivery status of an outbound email (reply rows and email logs)."""
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    BOUNCED = "bounced"
    FAILED = "failed"


class EmailType(str, Enum):
    """Kind of transactional email — stored in email_logs.email_type."""
    ENROLLMENT_REQUESTED = "enrollment_requested"
    ENROLLMENT_ADMIN_ALERT = "enrollment_admin_alert"
    ENROLLMENT_CONFIRMED = "enrollment_confirmed"
    ENROLLMENT_CANCELLED = "enrollment_cancelled"
    CONTACT_RECEIVED = "contact_received"
    CONTACT_REPLY = "contact_reply"
    ACCOUNT_DELETED = "account_deleted"
    ACCOUNT_DELETION_SCHEDULED = "account_deletion_scheduled"
    ACCOUNT_RESTORED = "account_restored"


class IntakePlan(str, Enum):
    """Yearly intake generation plan."""
    STANDARD = "standard"
    ADVANCED = "advanced"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
