"""Utility functions for time, rounding and sanitization."""

import html
import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

import bleach

PERFORMANCE_BANDS = [
    (90, "Excellent!"),
    (80, "Very Good!"),
    (70, "Good!"),
    (60, "Satisfactory"),
    (50, "Needs Improvement"),
]


def utcnow() -> datetime:
    """Naive UTC timestamp; all stored datetimes are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def round_half_up(value: float, places: int) -> float:
    """Round like ``Math.round(x * 10**places) / 10**places`` rather than banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round2(value: float) -> float:
    return round_half_up(value, 2)


def round1(value: float) -> float:
    return round_half_up(value, 1)


def performance_label(percentage: float) -> str:
    for threshold, label in PERFORMANCE_BANDS:
        if percentage >= threshold:
            return label
    return "Keep Practicing"


def sanitize_text(text: str) -> str:
    """Strip all HTML tags from quiz text (titles, questions, options).

    bleach escapes the characters it keeps; the API stores and returns plain
    text, so entities are decoded again after the tags are gone.
    """
    sanitized = bleach.clean(text, tags=[], strip=True)
    return html.unescape(sanitized).strip()


def format_marks(value: float) -> str:
    """Plain decimal rendering of a score: 90.0 -> "90", 55.5 -> "55.5"."""
    return f"{value:.2f}".rstrip("0").rstrip(".")


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", text.lower())
