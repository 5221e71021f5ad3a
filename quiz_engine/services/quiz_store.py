"""Quiz definition store: create, list and fetch quizzes."""

import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from quiz_engine.caller import Caller
from quiz_engine.directory import Directory
from quiz_engine.errors import (
    ForbiddenError,
    NotFoundError,
    NotPublishedError,
    ValidationError,
)
from quiz_engine.models import Course, Quiz
from quiz_engine.notifier import Notifier, QuizPublishedEvent
from quiz_engine.schemas import DEFAULT_RETAKE_POLICY, QuizCreate, QuizRead
from quiz_engine.services.visibility import is_expired
from quiz_engine.utils import sanitize_text, utcnow

logger = logging.getLogger(__name__)

# Validation constraints
TITLE_MAX_LENGTH = 200
QUESTION_MAX_LENGTH = 5000
OPTION_MAX_LENGTH = 1000
MIN_OPTIONS = 2


def load_quiz(session: Session, quiz_id: int) -> Quiz:
    """Get quiz by ID or raise NotFoundError."""
    quiz = session.get(Quiz, quiz_id)
    if not quiz:
        raise NotFoundError("Quiz not found")
    return quiz


def _load_course(directory: Directory, course_id: int) -> Course:
    course = directory.get_course(course_id)
    if not course:
        raise NotFoundError("Course not found")
    return course


def require_same_school(caller: Caller, school_id: int) -> None:
    if caller.school_id != school_id:
        raise ForbiddenError("Access denied")


def require_course_staff(caller: Caller, school_id: int, course_id: int, action: str) -> None:
    """Admins of the school or teachers of the course only."""
    require_same_school(caller, school_id)
    if not caller.can_manage_course(course_id):
        raise ForbiddenError(f"Only course teachers or admins can {action}")


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_question(index: int, question, errors: dict[str, str]) -> Optional[dict]:
    key = f"questions[{index}]"
    text = sanitize_text(question.text or "")
    options = question.options
    if not text or not isinstance(options, list) or len(options) < MIN_OPTIONS:
        errors[key] = f"Invalid question at index {index}"
        return None
    if len(text) > QUESTION_MAX_LENGTH:
        errors[key] = f"Question text must be at most {QUESTION_MAX_LENGTH} characters."
        return None

    clean_options = []
    for option in options:
        clean = sanitize_text(option) if isinstance(option, str) else ""
        if not clean:
            errors[key] = f"All options must be non-empty text at question {index}"
            return None
        if len(clean) > OPTION_MAX_LENGTH:
            errors[key] = f"Options must be at most {OPTION_MAX_LENGTH} characters."
            return None
        clean_options.append(clean)

    correct = question.correct_option_index
    if not _is_index(correct):
        errors[key] = f"Invalid question at index {index}"
        return None
    if correct < 0 or correct >= len(clean_options):
        errors[key] = f"correctAnswer out of range at question {index}"
        return None

    return {
        "text": text,
        "options": clean_options,
        "correct_option_index": correct,
        "marks": question.marks,
    }


def _validate_quiz_inputs(
    payload: QuizCreate, now: datetime
) -> tuple[dict[str, str], List[dict]]:
    """Validate a quiz definition; return (errors, cleaned questions)."""
    errors: dict[str, str] = {}

    title = sanitize_text(payload.title or "")
    if not title:
        errors["title"] = "Title is required"
    elif len(title) > TITLE_MAX_LENGTH:
        errors["title"] = f"Title must be at most {TITLE_MAX_LENGTH} characters."

    if not payload.questions:
        errors["questions"] = "At least one question is required"

    if not payload.total_marks or payload.total_marks <= 0:
        errors["totalMarks"] = "Total marks must be greater than 0"

    if payload.visible_until is not None and payload.visible_until <= now:
        errors["visibleUntil"] = "End date must be in the future"

    if payload.max_attempts < 1:
        errors["maxAttempts"] = "Max attempts must be at least 1"

    # The retake policy only matters when a second attempt is possible.
    if payload.max_attempts > 1 and payload.retake_policy is not None:
        policy = payload.retake_policy
        if policy.min_score_to_pass < 0 or policy.min_score_to_pass > 100:
            errors["retakePolicy.minScoreToPass"] = (
                "Minimum pass score must be between 0-100%"
            )
        if policy.days_between_attempts < 0:
            errors["retakePolicy.daysBetweenAttempts"] = (
                "Days between attempts cannot be negative"
            )

    cleaned = []
    for i, question in enumerate(payload.questions):
        clean = _validate_question(i, question, errors)
        if clean is not None:
            cleaned.append(clean)

    return errors, cleaned


def create_quiz(
    session: Session,
    directory: Directory,
    notifier: Notifier,
    caller: Caller,
    course_id: int,
    payload: QuizCreate,
    now: Optional[datetime] = None,
) -> Quiz:
    """Validate and persist a quiz, published immediately, then notify the course."""
    now = now or utcnow()
    course = _load_course(directory, course_id)
    require_course_staff(caller, course.school_id, course.id, "create quizzes")

    errors, questions = _validate_quiz_inputs(payload, now)
    if errors:
        raise ValidationError(next(iter(errors.values())), errors=errors)

    if payload.max_attempts > 1:
        retake_policy = payload.retake_policy or DEFAULT_RETAKE_POLICY
    else:
        retake_policy = DEFAULT_RETAKE_POLICY

    quiz = Quiz(
        course_id=course.id,
        school_id=course.school_id,
        title=sanitize_text(payload.title),
        description=sanitize_text(payload.description) if payload.description else None,
        questions=questions,
        total_marks=payload.total_marks,
        duration_minutes=payload.duration_minutes or None,
        visible_from=now,
        visible_until=payload.visible_until,
        max_attempts=payload.max_attempts,
        retake_policy=retake_policy.model_dump(),
        is_published=True,
        created_by=caller.user_id,
        created_at=now,
    )
    session.add(quiz)
    session.commit()
    session.refresh(quiz)
    logger.info(
        "Quiz %s created for course %s by user %s", quiz.id, course.id, caller.user_id
    )

    try:
        event = QuizPublishedEvent(
            quiz_id=quiz.id,
            course_id=course.id,
            course_name=course.name,
            title=quiz.title,
            created_by=caller.user_id,
            visible_until=quiz.visible_until,
            recipient_ids=frozenset(directory.course_student_ids(course.id)),
        )
        notifier.quiz_published(event)
    except Exception:
        # Quiz creation stands even when notification fails.
        logger.exception("Failed to create quiz notifications for quiz %s", quiz.id)

    return quiz


def list_quizzes(
    session: Session,
    directory: Directory,
    caller: Caller,
    course_id: int,
    now: Optional[datetime] = None,
) -> List[QuizRead]:
    """Published quizzes of a course, newest first, answers stripped.

    Students additionally stop seeing a quiz once its window has closed.
    """
    now = now or utcnow()
    course = _load_course(directory, course_id)
    require_same_school(caller, course.school_id)

    stmt = select(Quiz).where((Quiz.course_id == course.id) & (Quiz.is_published == True))  # noqa: E712
    if not caller.is_staff:
        stmt = stmt.where(or_(Quiz.visible_until.is_(None), Quiz.visible_until >= now))
    stmt = stmt.order_by(Quiz.created_at.desc(), Quiz.id.desc())

    quizzes = session.exec(stmt).all()
    return [QuizRead.from_quiz(q, hide_answers=True) for q in quizzes]


def get_quiz(
    session: Session,
    caller: Caller,
    quiz_id: int,
    now: Optional[datetime] = None,
) -> QuizRead:
    """A single quiz, flagged `is_expired` instead of failing once its window has passed."""
    now = now or utcnow()
    quiz = load_quiz(session, quiz_id)
    require_same_school(caller, quiz.school_id)
    if not quiz.is_published:
        raise NotPublishedError()

    can_see_answers = caller.can_manage_course(quiz.course_id)
    return QuizRead.from_quiz(
        quiz, hide_answers=not can_see_answers, is_expired=is_expired(quiz, now)
    )
