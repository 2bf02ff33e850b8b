"""Course Rules — pure validation and slug generation for courses.

Invariants:
    - Title length 3..255
    - Slug matches ^[a-z0-9_-]+$ (lowercase ASCII, digits, hyphen, underscore)
    - price >= 0, duration_value > 0, level >= 1
    - slugify(title) always yields a valid slug for any title with at least
      one ASCII letter or digit

Design Decisions:
    - Rules live here rather than only in pydantic schemas so partial updates
      (PATCH-style, fields optional) share the same checks as creates
"""

import re
import unicodedata
from decimal import Decimal

from courseportal.core.errors import ValidationError


SLUG_PATTERN = re.compile(r"^[a-z0-9_-]+$")
MIN_TITLE_LENGTH = 3
MAX_TITLE_LENGTH = 255


def slugify(title: str) -> str:
    """Lowercase ASCII slug with hyphens between words."""
    normalized = unicodedata.normalize("NFKD", title)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_text).strip("-")
    return slug


def validate_title(title: str) -> None:
    length = len(title.strip())
    if length < MIN_TITLE_LENGTH:
        raise ValidationError(
            "Course title must be at least 3 characters long",
            "INVALID_TITLE", details={"length": length},
        )
    if length > MAX_TITLE_LENGTH:
        raise ValidationError(
            "Course title cannot exceed 255 characters",
            "INVALID_TITLE", details={"length": length},
        )


def validate_slug(slug: str) -> None:
    if not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "Invalid slug format. Only lowercase letters, numbers, "
            "hyphens, and underscores allowed.",
            "INVALID_SLUG", details={"slug": slug},
        )


def validate_course_fields(
    *,
    title: str | None = None,
    slug: str | None = None,
    price: Decimal | None = None,
    duration_value: int | None = None,
    level: int | None = None,
) -> None:
    """Validate whichever fields are present (None means "not supplied")."""
    if title is not None:
        validate_title(title)
    if slug is not None:
        validate_slug(slug)
    if price is not None and price < 0:
        raise ValidationError(
            "Price cannot be negative", "INVALID_PRICE",
            details={"price": str(price)},
        )
    if duration_value is not None and duration_value <= 0:
        raise ValidationError(
            "Invalid duration type or value", "INVALID_DURATION",
            details={"duration_value": duration_value},
        )
    if level is not None and level < 1:
        raise ValidationError(
            "Level must be at least 1", "INVALID_LEVEL",
            details={"level": level},
        )


def resolve_slug(title: str, slug: str | None) -> str:
    """Return the supplied slug or one generated from the title, validated."""
    candidate = slug if slug else slugify(title)
    validate_slug(candidate)
    return candidate
