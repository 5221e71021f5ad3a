"""Attempt ledger: append-only store of quiz submissions.

The ledger does not own a transaction. The submission orchestrator hands it
the session of its unit of work so the history read and the append share one
transaction boundary; read-side callers pass an ordinary request session.
"""

from typing import List, Optional

from sqlmodel import Session, select

from quiz_engine.models import QuizSubmission


class AttemptLedger:
    def __init__(self, session: Session):
        self.session = session

    def history(self, quiz_id: int, student_id: int) -> List[QuizSubmission]:
        """The student's submissions for a quiz, highest attempt number first."""
        stmt = (
            select(QuizSubmission)
            .where(
                (QuizSubmission.quiz_id == quiz_id)
                & (QuizSubmission.student_id == student_id)
            )
            .order_by(QuizSubmission.attempt_number.desc())
        )
        return list(self.session.exec(stmt).all())

    def latest(self, quiz_id: int, student_id: int) -> Optional[QuizSubmission]:
        history = self.history(quiz_id, student_id)
        return history[0] if history else None

    def for_quiz(self, quiz_id: int) -> List[QuizSubmission]:
        stmt = (
            select(QuizSubmission)
            .where(QuizSubmission.quiz_id == quiz_id)
            .order_by(
                QuizSubmission.attempt_number.desc(),
                QuizSubmission.submitted_at.desc(),
            )
        )
        return list(self.session.exec(stmt).all())

    def append(self, submission: QuizSubmission) -> QuizSubmission:
        """Stage a new attempt and flush it.

        Flushing here makes a clash on (quiz, student, attempt_number) raise
        IntegrityError inside the caller's transaction instead of at commit.
        """
        self.session.add(submission)
        self.session.flush()
        return submission
