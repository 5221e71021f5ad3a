"""Submission orchestrator: the single write path for quiz attempts.

One call runs visibility -> attempt policy -> grading -> ledger append inside
one unit of work. Attempt numbers are allocated optimistically: the unique
(quiz, student, attempt_number) constraint makes the loser of a concurrent
race fail on flush, and the whole read-decide-write sequence is re-run from
the history read. Any other failure rolls the unit of work back, so a
submission is either fully recorded or not recorded at all.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from quiz_engine.caller import Caller, Role
from quiz_engine.config import settings
from quiz_engine.database import UnitOfWork
from quiz_engine.errors import (
    ConcurrencyConflictError,
    ForbiddenError,
    NotPublishedError,
    ValidationError,
)
from quiz_engine.models import QuizSubmission
from quiz_engine.services.attempt_policy import Deny, can_attempt
from quiz_engine.services.grader import grade
from quiz_engine.services.ledger import AttemptLedger
from quiz_engine.services.quiz_store import load_quiz, require_same_school
from quiz_engine.services.visibility import closed_reason
from quiz_engine.utils import performance_label, utcnow

logger = logging.getLogger(__name__)

LedgerFactory = Callable[[Session], AttemptLedger]


@dataclass(frozen=True)
class SubmissionOutcome:
    submission: QuizSubmission
    score: float
    total: int
    percentage: float
    attempt_number: int
    max_attempts: int
    performance_label: str


def _submit_once(
    bind: Engine,
    caller: Caller,
    quiz_id: int,
    answers: Any,
    now: datetime,
    ledger_factory: LedgerFactory,
) -> SubmissionOutcome:
    with UnitOfWork(bind) as uow:
        quiz = load_quiz(uow.session, quiz_id)
        require_same_school(caller, quiz.school_id)
        if caller.role is not Role.STUDENT:
            raise ForbiddenError("Only students can submit quizzes")
        if not quiz.is_published:
            raise NotPublishedError()
        if not isinstance(answers, list):
            raise ValidationError("Answers array is required")

        closed = closed_reason(quiz, now)
        if closed is not None:
            raise closed

        ledger = ledger_factory(uow.session)
        history = ledger.history(quiz.id, caller.user_id)
        decision = can_attempt(quiz, history, now)
        if isinstance(decision, Deny):
            logger.info(
                "Attempt denied (%s): student %s, quiz %s",
                decision.reason.value,
                caller.user_id,
                quiz.id,
            )
            raise decision.to_error()

        result = grade(quiz, answers)
        submission = QuizSubmission(
            quiz_id=quiz.id,
            course_id=quiz.course_id,
            student_id=caller.user_id,
            answers=result.answers,
            score=result.score,
            percentage=result.percentage,
            total_marks=result.total_marks,
            attempt_number=decision.attempt_number,
            submitted_at=now,
        )
        ledger.append(submission)
        uow.commit()
        uow.session.refresh(submission)

        logger.info(
            "Quiz submitted: student %s, quiz %s, score %s/%s (%s%%), attempt %s/%s",
            caller.user_id,
            quiz.id,
            result.score,
            quiz.total_marks,
            result.percentage,
            submission.attempt_number,
            quiz.max_attempts,
        )
        return SubmissionOutcome(
            submission=submission,
            score=result.score,
            total=quiz.total_marks,
            percentage=result.percentage,
            attempt_number=submission.attempt_number,
            max_attempts=quiz.max_attempts,
            performance_label=performance_label(result.percentage),
        )


def submit_quiz(
    bind: Engine,
    caller: Caller,
    quiz_id: int,
    answers: Any,
    now: Optional[datetime] = None,
    retries: Optional[int] = None,
    ledger_factory: LedgerFactory = AttemptLedger,
) -> SubmissionOutcome:
    """Grade and record one attempt for the calling student.

    Raises the taxonomy errors from quiz_engine.errors; a lost race on the
    attempt number is retried `retries` times before ConcurrencyConflictError.
    """
    if retries is None:
        retries = settings.submit_conflict_retries

    for round_no in range(retries + 1):
        try:
            return _submit_once(
                bind, caller, quiz_id, answers, now or utcnow(), ledger_factory
            )
        except IntegrityError:
            logger.warning(
                "Attempt number conflict for student %s on quiz %s (round %d)",
                caller.user_id,
                quiz_id,
                round_no + 1,
            )

    logger.error(
        "Giving up on submission for student %s on quiz %s after %d conflicts",
        caller.user_id,
        quiz_id,
        retries + 1,
    )
    raise ConcurrencyConflictError("Duplicate submission detected. Please refresh and try again.")
