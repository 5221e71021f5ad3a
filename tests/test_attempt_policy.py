"""Unit tests for the attempt policy evaluator."""

from datetime import datetime, timedelta

import pytest

from quiz_engine.errors import DenyReason, PolicyDeniedError
from quiz_engine.models import Quiz, QuizSubmission
from quiz_engine.services.attempt_policy import (
    Allow,
    Deny,
    attempts_remaining,
    can_attempt,
)

NOW = datetime(2024, 5, 10, 12, 0, 0)


def _quiz(max_attempts=2, allow_retake=True, min_score_to_pass=60, days_between_attempts=1):
    return Quiz(
        id=1,
        course_id=1,
        school_id=1,
        title="Q",
        questions=[],
        total_marks=100,
        visible_from=NOW - timedelta(days=30),
        max_attempts=max_attempts,
        retake_policy={
            "allow_retake": allow_retake,
            "min_score_to_pass": min_score_to_pass,
            "days_between_attempts": days_between_attempts,
        },
        created_by=1,
    )


def _attempt(number, score, days_ago):
    return QuizSubmission(
        quiz_id=1,
        course_id=1,
        student_id=1,
        answers=[],
        score=score,
        percentage=score,
        total_marks=100,
        attempt_number=number,
        submitted_at=NOW - timedelta(days=days_ago),
    )


def test_first_attempt_allowed():
    assert can_attempt(_quiz(max_attempts=1), [], NOW) == Allow(1)


def test_single_attempt_quiz_denies_second():
    decision = can_attempt(_quiz(max_attempts=1), [_attempt(1, 10, days_ago=5)], NOW)

    assert isinstance(decision, Deny)
    assert decision.reason is DenyReason.MAX_ATTEMPTS_REACHED
    assert decision.message == "Maximum attempts (1) reached for this quiz"


def test_retake_disabled():
    decision = can_attempt(_quiz(allow_retake=False), [_attempt(1, 10, days_ago=5)], NOW)
    assert decision.reason is DenyReason.RETAKE_NOT_ALLOWED


def test_failed_attempt_within_cooldown_is_denied():
    decision = can_attempt(_quiz(), [_attempt(1, 40, days_ago=0.5)], NOW)

    assert decision.reason is DenyReason.COOLDOWN_ACTIVE
    assert decision.message == "Please wait 0.5 more days before attempting again"


def test_failed_attempt_after_cooldown_is_allowed():
    assert can_attempt(_quiz(), [_attempt(1, 40, days_ago=1)], NOW) == Allow(2)


def test_passed_attempt_is_locked():
    decision = can_attempt(_quiz(), [_attempt(1, 70, days_ago=3)], NOW)

    assert decision.reason is DenyReason.ALREADY_PASSED
    assert decision.message == "You already passed this quiz with 70.0% score"


def test_score_exactly_at_pass_mark_counts_as_passed():
    decision = can_attempt(_quiz(), [_attempt(1, 60, days_ago=3)], NOW)
    assert decision.reason is DenyReason.ALREADY_PASSED


def test_attempt_limit_checked_before_retake_rules():
    history = [_attempt(2, 10, days_ago=0.1), _attempt(1, 10, days_ago=3)]
    decision = can_attempt(_quiz(max_attempts=2), history, NOW)
    assert decision.reason is DenyReason.MAX_ATTEMPTS_REACHED


def test_zero_cooldown_allows_immediate_retake():
    quiz = _quiz(max_attempts=3, days_between_attempts=0)
    history = [_attempt(2, 10, days_ago=0), _attempt(1, 5, days_ago=0)]
    assert can_attempt(quiz, history, NOW) == Allow(3)


def test_deny_converts_to_policy_error():
    error = Deny(DenyReason.COOLDOWN_ACTIVE, "wait").to_error()
    assert isinstance(error, PolicyDeniedError)
    assert error.reason is DenyReason.COOLDOWN_ACTIVE
    assert error.to_payload() == {"success": False, "message": "wait", "reason": "CooldownActive"}


def test_attempts_remaining_without_history():
    status = attempts_remaining(_quiz(max_attempts=3), [], NOW)

    assert status.attempts_used == 0
    assert status.attempts_remaining == 3
    assert status.can_retake is True
    assert status.reason is None
    assert status.message == ""


@pytest.mark.parametrize(
    "score,days_ago,reason",
    [
        (40, 0.25, DenyReason.COOLDOWN_ACTIVE),
        (80, 2, DenyReason.ALREADY_PASSED),
    ],
)
def test_attempts_remaining_reports_denial(score, days_ago, reason):
    status = attempts_remaining(_quiz(max_attempts=3), [_attempt(1, score, days_ago)], NOW)

    assert status.attempts_used == 1
    assert status.attempts_remaining == 2
    assert status.can_retake is False
    assert status.reason is reason
    assert status.message


def test_attempts_remaining_exhausted():
    status = attempts_remaining(_quiz(max_attempts=1), [_attempt(1, 10, days_ago=2)], NOW)

    assert status.attempts_remaining == 0
    assert status.can_retake is False
    assert status.reason is DenyReason.MAX_ATTEMPTS_REACHED
