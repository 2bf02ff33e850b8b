"""Email Templates — plain functional bodies for every transactional email.

Invariants:
    - Every user-supplied value is HTML-escaped before interpolation
    - Each render_* function is PURE: returns RenderedEmail, sends nothing
    - Reply subjects are prefixed exactly once with "Re: "

Design Decisions:
    - Minimal markup (paragraphs only): presentation is owned by the marketing team,
      the backend guarantees content and escaping
"""

from dataclasses import dataclass
from datetime import datetime
from html import escape


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str


def _paragraphs(*lines: str) -> str:
    return "".join(f"<p>{line}</p>" for line in lines if line)


def _date(value: datetime | None) -> str:
    return value.strftime("%d %B %Y") if value else "to be announced"


def reply_subject(subject: str) -> str:
    stripped = subject.strip()
    if stripped.lower().startswith("re:"):
        return stripped
    return f"Re: {stripped}"


# ─── Enrollments ─────────────────────────────────────────────────

def render_enrollment_requested(
    full_name: str, course_title: str, start_date: datetime | None,
) -> RenderedEmail:
    return RenderedEmail(
        subject="Enrollment Request Received",
        html=_paragraphs(
            f"Dear {escape(full_name)},",
            f"We have received your enrollment request for "
            f"<strong>{escape(course_title)}</strong> "
            f"(intake starting {_date(start_date)}).",
            "Our admissions team will review it and contact you shortly.",
        ),
    )


def render_enrollment_admin_alert(
    full_name: str, email: str, course_title: str, start_date: datetime | None,
) -> RenderedEmail:
    return RenderedEmail(
        subject="New Enrollment Request",
        html=_paragraphs(
            "A new enrollment request was submitted.",
            f"Student: {escape(full_name)} ({escape(email)})",
            f"Course: {escape(course_title)}",
            f"Intake start: {_date(start_date)}",
        ),
    )


def render_enrollment_confirmed(
    full_name: str, course_title: str, start_date: datetime | None,
) -> RenderedEmail:
    return RenderedEmail(
        subject="Enrollment Confirmed",
        html=_paragraphs(
            f"Dear {escape(full_name)},",
            f"Your enrollment in <strong>{escape(course_title)}</strong> "
            f"is confirmed. Classes start on {_date(start_date)}.",
        ),
    )


def render_enrollment_cancelled(
    full_name: str, course_title: str, reason: str | None,
) -> RenderedEmail:
    return RenderedEmail(
        subject="Enrollment Cancelled",
        html=_paragraphs(
            f"Dear {escape(full_name)},",
            f"Your enrollment in <strong>{escape(course_title)}</strong> "
            "has been cancelled.",
            f"Reason: {escape(reason)}" if reason else "",
            "If you have any questions, please contact our admissions team.",
        ),
    )


# ─── Customer contact ────────────────────────────────────────────

def render_contact_received(
    name: str, email: str, phone: str | None, message: str,
) -> RenderedEmail:
    return RenderedEmail(
        subject=f"New contact request from {name}",
        html=_paragraphs(
            f"Name: {escape(name)}",
            f"Email: {escape(email)}",
            f"Phone: {escape(phone)}" if phone else "",
            f"Message: {escape(message)}",
        ),
    )


def render_contact_reply(
    recipient_name: str, subject: str, message: str, original_message: str,
) -> RenderedEmail:
    body = escape(message).replace("\n", "<br>")
    return RenderedEmail(
        subject=reply_subject(subject),
        html=(
            _paragraphs(f"Dear {escape(recipient_name)},", body)
            + "<hr>"
            + _paragraphs(f"Your original message: {escape(original_message)}")
        ),
    )


# ─── Accounts ────────────────────────────────────────────────────

def render_account_deleted(full_name: str, reason: str | None) -> RenderedEmail:
    return RenderedEmail(
        subject="Your account has been deactivated",
        html=_paragraphs(
            f"Dear {escape(full_name)},",
            "Your account has been deactivated by an administrator.",
            f"Reason: {escape(reason)}" if reason else "",
            "Contact us if you believe this was a mistake.",
        ),
    )


def render_account_deletion_scheduled(
    full_name: str, scheduled_for: datetime, reason: str | None,
) -> RenderedEmail:
    return RenderedEmail(
        subject="Your account is scheduled for deactivation",
        html=_paragraphs(
            f"Dear {escape(full_name)},",
            f"Your account will be deactivated on {_date(scheduled_for)}.",
            f"Reason: {escape(reason)}" if reason else "",
        ),
    )


def render_account_restored(full_name: str) -> RenderedEmail:
    return RenderedEmail(
        subject="Your account has been restored",
        html=_paragraphs(
            f"Dear {escape(full_name)},",
            "Your account has been restored. You can sign in again.",
        ),
    )
