"""Read-side projections over the attempt ledger: results, rosters and CSV export.

None of these consult the visibility window; expired quizzes stay reviewable
and exportable.
"""

import csv
import io
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlmodel import Session

from quiz_engine.caller import Caller
from quiz_engine.directory import Directory
from quiz_engine.models import Quiz, QuizSubmission
from quiz_engine.schemas import SubmissionRead
from quiz_engine.services.attempt_policy import AttemptStatus, attempts_remaining
from quiz_engine.services.ledger import AttemptLedger
from quiz_engine.services.quiz_store import (
    load_quiz,
    require_course_staff,
    require_same_school,
)
from quiz_engine.utils import format_marks, slugify, utcnow

CSV_HEADERS = [
    "Student Name",
    "Student ID",
    "Email",
    "Obtained Marks",
    "Total Marks",
    "Percentage",
    "Correct Answers",
    "Incorrect Answers",
    "Total Questions",
    "Submitted At",
]


def my_latest_result(
    session: Session, caller: Caller, quiz_id: int
) -> Optional[SubmissionRead]:
    """The caller's highest-numbered attempt, or None when there is none yet."""
    quiz = load_quiz(session, quiz_id)
    latest = AttemptLedger(session).latest(quiz.id, caller.user_id)
    return SubmissionRead.from_submission(latest) if latest else None


def latest_submissions(submissions: List[QuizSubmission]) -> List[QuizSubmission]:
    """Keep each student's max-attempt row, most recently submitted first."""
    latest: Dict[int, QuizSubmission] = {}
    for submission in submissions:
        current = latest.get(submission.student_id)
        if current is None or submission.attempt_number > current.attempt_number:
            latest[submission.student_id] = submission
    return sorted(latest.values(), key=lambda s: s.submitted_at, reverse=True)


def _latest_for_staff(
    session: Session, caller: Caller, quiz_id: int, action: str
) -> Tuple[Quiz, List[QuizSubmission]]:
    quiz = load_quiz(session, quiz_id)
    require_course_staff(caller, quiz.school_id, quiz.course_id, action)
    return quiz, latest_submissions(AttemptLedger(session).for_quiz(quiz.id))


def latest_per_student(
    session: Session, directory: Directory, caller: Caller, quiz_id: int
) -> List[SubmissionRead]:
    _, rows = _latest_for_staff(session, caller, quiz_id, "view submissions")
    users = directory.get_users(s.student_id for s in rows)
    return [SubmissionRead.from_submission(s, users.get(s.student_id)) for s in rows]


def student_attempts(
    session: Session,
    directory: Directory,
    caller: Caller,
    quiz_id: int,
    student_id: int,
) -> List[SubmissionRead]:
    """Every attempt of one student, in attempt order."""
    quiz = load_quiz(session, quiz_id)
    require_course_staff(
        caller, quiz.school_id, quiz.course_id, "view student attempts"
    )
    history = AttemptLedger(session).history(quiz.id, student_id)
    student = directory.get_user(student_id)
    return [SubmissionRead.from_submission(s, student) for s in reversed(history)]


def attempt_status(
    session: Session, caller: Caller, quiz_id: int, now: Optional[datetime] = None
) -> Tuple[Quiz, AttemptStatus]:
    quiz = load_quiz(session, quiz_id)
    require_same_school(caller, quiz.school_id)
    history = AttemptLedger(session).history(quiz.id, caller.user_id)
    return quiz, attempts_remaining(quiz, history, now or utcnow())


def export_csv(
    session: Session, directory: Directory, caller: Caller, quiz_id: int
) -> Tuple[str, str]:
    """Render the latest-attempt roster as CSV; return (filename, content)."""
    quiz, rows = _latest_for_staff(session, caller, quiz_id, "export submissions")
    users = directory.get_users(s.student_id for s in rows)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for submission in rows:
        student = users.get(submission.student_id)
        correct = sum(1 for a in submission.answers if a.get("is_correct"))
        writer.writerow(
            [
                student.name if student else "Unknown",
                submission.student_id,
                (student.email if student else None) or "N/A",
                format_marks(submission.score),
                submission.total_marks,
                f"{submission.percentage:.1f}%",
                correct,
                len(submission.answers) - correct,
                len(quiz.questions),
                submission.submitted_at.strftime("%Y-%m-%d %H:%M:%S"),
            ]
        )

    filename = f"quiz-submissions-{slugify(quiz.title)}.csv"
    return filename, buffer.getvalue()
