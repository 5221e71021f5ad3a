"""Attempt policy evaluator: may the student start another attempt?"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Union

from quiz_engine.errors import DenyReason, PolicyDeniedError
from quiz_engine.models import Quiz, QuizSubmission

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass(frozen=True)
class Allow:
    attempt_number: int


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    message: str

    def to_error(self) -> PolicyDeniedError:
        return PolicyDeniedError(self.reason, self.message)


Decision = Union[Allow, Deny]


@dataclass(frozen=True)
class AttemptStatus:
    attempts_used: int
    attempts_remaining: int
    max_attempts: int
    can_retake: bool
    reason: Optional[DenyReason] = None
    message: str = ""


def _days_since(moment: datetime, now: datetime) -> float:
    return (now - moment).total_seconds() / SECONDS_PER_DAY


def can_attempt(
    quiz: Quiz, history: Sequence[QuizSubmission], now: datetime
) -> Decision:
    """Decide on the next attempt.

    `history` must be ordered by attempt number, highest first. The checks
    run in a fixed order: attempt limit, retake permission, cooldown,
    already passed.
    """
    latest = history[0] if history else None
    next_attempt = latest.attempt_number + 1 if latest else 1

    if next_attempt > quiz.max_attempts:
        return Deny(
            DenyReason.MAX_ATTEMPTS_REACHED,
            f"Maximum attempts ({quiz.max_attempts}) reached for this quiz",
        )

    if latest is not None and quiz.max_attempts > 1:
        policy = quiz.retake_policy
        if not policy["allow_retake"]:
            return Deny(
                DenyReason.RETAKE_NOT_ALLOWED, "Retakes are not allowed for this quiz"
            )

        days_since = _days_since(latest.submitted_at, now)
        cooldown = policy["days_between_attempts"]
        if days_since < cooldown:
            return Deny(
                DenyReason.COOLDOWN_ACTIVE,
                f"Please wait {cooldown - days_since:.1f} more days before attempting again",
            )

        last_percentage = latest.score / quiz.total_marks * 100
        if last_percentage >= policy["min_score_to_pass"]:
            return Deny(
                DenyReason.ALREADY_PASSED,
                f"You already passed this quiz with {last_percentage:.1f}% score",
            )

    return Allow(next_attempt)


def attempts_remaining(
    quiz: Quiz, history: Sequence[QuizSubmission], now: datetime
) -> AttemptStatus:
    """Read-only view of `can_attempt` for status polling."""
    attempts_used = history[0].attempt_number if history else 0
    decision = can_attempt(quiz, history, now)
    if isinstance(decision, Deny):
        return AttemptStatus(
            attempts_used=attempts_used,
            attempts_remaining=max(0, quiz.max_attempts - attempts_used),
            max_attempts=quiz.max_attempts,
            can_retake=False,
            reason=decision.reason,
            message=decision.message,
        )
    return AttemptStatus(
        attempts_used=attempts_used,
        attempts_remaining=max(0, quiz.max_attempts - attempts_used),
        max_attempts=quiz.max_attempts,
        can_retake=True,
    )
