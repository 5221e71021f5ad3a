"""Request bodies and camelCase read models for the quiz API."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from quiz_engine.models import Quiz, QuizSubmission, User
from quiz_engine.utils import to_naive_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ===================== REQUEST BODIES =====================
# Field types are kept loose on purpose: semantic checks live in
# quiz_store._validate_quiz_inputs so they come back as 400s with field messages.


class RetakePolicy(CamelModel):
    allow_retake: bool = False
    min_score_to_pass: float = 60
    days_between_attempts: float = 1


DEFAULT_RETAKE_POLICY = RetakePolicy(
    allow_retake=False, min_score_to_pass=60, days_between_attempts=1
)


class QuestionIn(CamelModel):
    text: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("text", "question")
    )
    options: Optional[List[Any]] = None
    correct_option_index: Any = Field(
        default=None,
        validation_alias=AliasChoices(
            "correctOptionIndex", "correct_option_index", "correctAnswer"
        ),
    )
    marks: Optional[float] = None


class QuizCreate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    questions: List[QuestionIn] = []
    total_marks: Optional[int] = None
    duration_minutes: Optional[int] = None
    visible_until: Optional[datetime] = None
    max_attempts: int = 1
    retake_policy: Optional[RetakePolicy] = None

    @field_validator("visible_until")
    @classmethod
    def _normalize_visible_until(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None


class SubmitRequest(CamelModel):
    answers: Any = None


# ===================== READ MODELS =====================


class QuestionRead(CamelModel):
    text: str
    options: List[str]
    correct_option_index: Optional[int] = None
    marks: Optional[float] = None


class QuizRead(CamelModel):
    id: int
    course_id: int
    school_id: int
    title: str
    description: Optional[str] = None
    questions: List[QuestionRead]
    total_marks: int
    duration_minutes: Optional[int] = None
    visible_from: datetime
    visible_until: Optional[datetime] = None
    max_attempts: int
    retake_policy: RetakePolicy
    is_published: bool
    created_by: int
    created_at: datetime
    is_expired: Optional[bool] = None
    answers_hidden: bool = Field(default=False, exclude=True)

    @classmethod
    def from_quiz(
        cls, quiz: Quiz, *, hide_answers: bool, is_expired: Optional[bool] = None
    ) -> "QuizRead":
        questions = [QuestionRead.model_validate(q) for q in quiz.questions]
        if hide_answers:
            questions = [q.model_copy(update={"correct_option_index": None}) for q in questions]
        return cls(
            id=quiz.id,
            course_id=quiz.course_id,
            school_id=quiz.school_id,
            title=quiz.title,
            description=quiz.description,
            questions=questions,
            total_marks=quiz.total_marks,
            duration_minutes=quiz.duration_minutes,
            visible_from=quiz.visible_from,
            visible_until=quiz.visible_until,
            max_attempts=quiz.max_attempts,
            retake_policy=RetakePolicy.model_validate(quiz.retake_policy),
            is_published=quiz.is_published,
            created_by=quiz.created_by,
            created_at=quiz.created_at,
            is_expired=is_expired,
            answers_hidden=hide_answers,
        )

    def to_response(self) -> dict:
        data = self.model_dump(by_alias=True, mode="json")
        if self.answers_hidden:
            for question in data["questions"]:
                question.pop("correctOptionIndex", None)
        if self.is_expired is None:
            data.pop("isExpired", None)
        return data


class AnswerRead(CamelModel):
    question_index: int
    selected_option: int
    correct_answer: int
    is_correct: bool
    marks_awarded: float
    question_text: str
    options: List[str]
    question_marks: float


class StudentRef(CamelModel):
    id: int
    name: str
    email: Optional[str] = None


class SubmissionRead(CamelModel):
    id: int
    quiz_id: int
    course_id: int
    student_id: int
    answers: List[AnswerRead]
    score: float
    percentage: float
    total_marks: int
    attempt_number: int
    submitted_at: datetime
    student: Optional[StudentRef] = None

    @classmethod
    def from_submission(
        cls, submission: QuizSubmission, student: Optional[User] = None
    ) -> "SubmissionRead":
        read = cls.model_validate(submission)
        if student is not None:
            read.student = StudentRef.model_validate(student)
        return read

    def to_response(self) -> dict:
        data = self.model_dump(by_alias=True, mode="json")
        if self.student is None:
            data.pop("student", None)
        return data
