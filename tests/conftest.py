import copy
import os

os.environ.setdefault("QUIZ_ENGINE_DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine, text

# ============================================================================
# IN-MEMORY DATABASE FOR TESTING
# ============================================================================

# Use sqlite:///:memory: with poolclass=StaticPool to share the same in-memory DB across threads
from sqlalchemy.pool import StaticPool

from quiz_engine.main import app
from quiz_engine.database import get_engine, get_session
from quiz_engine.models import (
    Course,
    CourseTeacher,
    Enrollment,
    Quiz,
    QuizSubmission,
    School,
    User,
)
from quiz_engine.utils import utcnow

test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # all connections share the same in-memory database
)


@pytest.fixture(scope="session")
def engine():
    """Provide test engine as a fixture."""
    return test_engine


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create all tables in the test database once per session."""
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(autouse=True)
def cleanup_db_between_tests():
    """Clean up test data after each test."""
    yield  # run the test

    # Clean up in FK-safe order
    with Session(test_engine) as session:
        session.exec(text("DELETE FROM quizsubmission"))
        session.exec(text("DELETE FROM quiz"))
        session.exec(text("DELETE FROM enrollment"))
        session.exec(text("DELETE FROM courseteacher"))
        session.exec(text("DELETE FROM course"))
        session.exec(text("DELETE FROM user"))
        session.exec(text("DELETE FROM school"))
        session.commit()


# ============================================================================
# FASTAPI APP & TEST CLIENT
# ============================================================================


@pytest.fixture
def client():
    """Test client wired to the in-memory engine."""

    def override_get_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_engine] = lambda: test_engine

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def session():
    """Provide a database session for tests."""
    with Session(test_engine) as session:
        yield session


def auth(user) -> dict:
    """Headers the upstream auth layer would inject for `user`."""
    return {"X-User-Id": str(user.id)}


def persist(bind, *objs):
    """Insert rows and return them detached with their attributes loaded."""
    with Session(bind) as s:
        s.add_all(objs)
        s.commit()
        for obj in objs:
            s.refresh(obj)
    return objs[0] if len(objs) == 1 else objs


# ============================================================================
# ENTITY FIXTURES
# ============================================================================

# Four questions, no per-question marks: each is worth total_marks / 4.
SAMPLE_QUESTIONS = [
    {"text": "2 + 2 = ?", "options": ["4", "5", "6"], "correct_option_index": 0, "marks": None},
    {"text": "Capital of France?", "options": ["Rome", "Paris", "Berlin"], "correct_option_index": 1, "marks": None},
    {"text": "Largest planet?", "options": ["Mars", "Venus", "Jupiter"], "correct_option_index": 2, "marks": None},
    {"text": "Water boils at?", "options": ["100 C", "50 C", "0 C"], "correct_option_index": 0, "marks": None},
]

ALL_CORRECT = [0, 1, 2, 0]
THREE_CORRECT = [0, 1, 0, 0]  # 75%
ONE_CORRECT = [0, 0, 0, 1]  # 25%


def build_quiz(course, creator, **overrides) -> Quiz:
    values = dict(
        course_id=course.id,
        school_id=course.school_id,
        title="Unit 1 Check",
        description="Warm-up quiz",
        questions=copy.deepcopy(SAMPLE_QUESTIONS),
        total_marks=100,
        visible_from=utcnow() - timedelta(hours=1),
        visible_until=None,
        max_attempts=1,
        retake_policy={"allow_retake": False, "min_score_to_pass": 60, "days_between_attempts": 1},
        is_published=True,
        created_by=creator.id,
    )
    values.update(overrides)
    return Quiz(**values)


@pytest.fixture
def school():
    return persist(test_engine, School(name="Northside High"))


@pytest.fixture
def other_school():
    return persist(test_engine, School(name="Southside High"))


@pytest.fixture
def admin_user(school):
    return persist(test_engine, User(name="Ada Admin", email="admin@north.test", role="admin", school_id=school.id))


@pytest.fixture
def teacher_user(school):
    return persist(test_engine, User(name="Tom Teacher", email="tom@north.test", role="teacher", school_id=school.id))


@pytest.fixture
def other_teacher(school):
    """Same school, but does not teach the course."""
    return persist(test_engine, User(name="Olga Other", email="olga@north.test", role="teacher", school_id=school.id))


@pytest.fixture
def student_user(school):
    return persist(test_engine, User(name="Alice Student", email="alice@north.test", role="student", school_id=school.id))


@pytest.fixture
def second_student(school):
    return persist(test_engine, User(name="Bob Student", email=None, role="student", school_id=school.id))


@pytest.fixture
def foreign_student(other_school):
    return persist(test_engine, User(name="Carl Away", email="carl@south.test", role="student", school_id=other_school.id))


@pytest.fixture
def course(school, teacher_user, student_user, second_student):
    """A course taught by teacher_user with both students enrolled."""
    course = persist(test_engine, Course(code="SCI101", name="General Science", school_id=school.id))
    persist(
        test_engine,
        CourseTeacher(course_id=course.id, teacher_id=teacher_user.id),
        Enrollment(course_id=course.id, student_id=student_user.id),
        Enrollment(course_id=course.id, student_id=second_student.id),
    )
    return course


@pytest.fixture
def make_quiz(course, teacher_user):
    """Factory inserting a quiz on `course`; keyword overrides go straight to Quiz."""

    def _make(**overrides) -> Quiz:
        return persist(test_engine, build_quiz(course, teacher_user, **overrides))

    return _make


@pytest.fixture
def quiz(make_quiz):
    return make_quiz()


@pytest.fixture
def retake_quiz(make_quiz):
    """Two attempts, retakes allowed, 60% pass mark, one day between attempts."""
    return make_quiz(
        max_attempts=2,
        retake_policy={"allow_retake": True, "min_score_to_pass": 60, "days_between_attempts": 1},
    )


def make_submission(quiz, student, attempt_number, score, submitted_at: datetime, **overrides) -> QuizSubmission:
    values = dict(
        quiz_id=quiz.id,
        course_id=quiz.course_id,
        student_id=student.id,
        answers=[],
        score=score,
        percentage=round(100 * score / quiz.total_marks, 1),
        total_marks=quiz.total_marks,
        attempt_number=attempt_number,
        submitted_at=submitted_at,
    )
    values.update(overrides)
    return QuizSubmission(**values)
