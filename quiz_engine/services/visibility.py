"""Visibility guard: is a quiz currently accepting submissions?

Only submission is gated here. Reading a quiz, its results and its export
stays available after the window closes.
"""

from datetime import datetime
from typing import Optional

from quiz_engine.errors import WindowClosedError
from quiz_engine.models import Quiz


def is_open_for_submission(quiz: Quiz, now: datetime) -> bool:
    return (
        quiz.is_published
        and quiz.visible_from <= now
        and (quiz.visible_until is None or now <= quiz.visible_until)
    )


def is_expired(quiz: Quiz, now: datetime) -> bool:
    return quiz.visible_until is not None and quiz.visible_until < now


def closed_reason(quiz: Quiz, now: datetime) -> Optional[WindowClosedError]:
    """Return the error to raise when the window is closed, or None when open."""
    if is_open_for_submission(quiz, now):
        return None
    if quiz.visible_from > now:
        return WindowClosedError("Quiz has not started yet", not_yet_open=True)
    return WindowClosedError("Quiz deadline has passed")
