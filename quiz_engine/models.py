"""SQLModel models for the quiz engine."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from quiz_engine.utils import utcnow


# ===================== DIRECTORY TABLES =====================
# Owned by the directory collaborator; the engine only reads them.


class School(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str


class User(SQLModel, table=True):
    """Any account known to the directory (admin / teacher / student)."""

    __table_args__ = (UniqueConstraint("email", name="uq_user_email"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: Optional[str] = None
    role: str = Field(default="student")  # "admin", "teacher", "student"
    school_id: int = Field(foreign_key="school.id")


class Course(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: Optional[str] = None
    name: str
    school_id: int = Field(foreign_key="school.id")


class CourseTeacher(SQLModel, table=True):
    """Junction table between Course and teachers (User with role='teacher')."""

    __table_args__ = (
        UniqueConstraint("course_id", "teacher_id", name="uq_course_teacher"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id")
    teacher_id: int = Field(foreign_key="user.id")


class Enrollment(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("course_id", "student_id", name="uq_course_student"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id")
    student_id: int = Field(foreign_key="user.id")
    enrolled_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime, nullable=False)
    )


# ===================== QUIZ ENGINE TABLES =====================
# Timestamps are naive UTC (see utils.utcnow) in plain DateTime columns.


class Quiz(SQLModel, table=True):
    """A timed multiple-choice quiz belonging to a course.

    `questions` is a list of ``{text, options, correct_option_index, marks}``
    dicts and `retake_policy` is ``{allow_retake, min_score_to_pass,
    days_between_attempts}``. Quizzes are immutable once created.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    school_id: int = Field(foreign_key="school.id")
    title: str
    description: Optional[str] = None
    questions: list[dict[str, Any]] = Field(sa_column=Column(JSON, nullable=False))
    total_marks: int
    duration_minutes: Optional[int] = None  # informational only
    visible_from: datetime = Field(sa_column=Column(DateTime, nullable=False))
    visible_until: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime, nullable=True)
    )
    max_attempts: int = Field(default=1)
    retake_policy: dict[str, Any] = Field(sa_column=Column(JSON, nullable=False))
    is_published: bool = Field(default=True)
    created_by: int = Field(foreign_key="user.id")
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime, nullable=False)
    )


class QuizSubmission(SQLModel, table=True):
    """One graded attempt. Never updated or deleted after insert.

    `answers` holds a self-contained snapshot per question (text, options,
    correct index, marks) so later quiz edits cannot change a past grade.
    """

    __table_args__ = (
        UniqueConstraint(
            "quiz_id", "student_id", "attempt_number", name="uq_submission_attempt"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key="quiz.id", index=True)
    course_id: int = Field(foreign_key="course.id")
    student_id: int = Field(foreign_key="user.id", index=True)
    answers: list[dict[str, Any]] = Field(sa_column=Column(JSON, nullable=False))
    score: float
    percentage: float
    total_marks: int
    attempt_number: int
    submitted_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime, nullable=False)
    )
