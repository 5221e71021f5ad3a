"""FastAPI entrypoint for the quiz assessment and retake-policy engine."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session, select

from quiz_engine.config import settings
from quiz_engine.database import create_db_and_tables, engine
from quiz_engine.errors import QuizEngineError
from quiz_engine.logging_config import configure_logging
from quiz_engine.models import Course, CourseTeacher, Enrollment, School, User
from quiz_engine.routers import quizzes as quizzes_router_module

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QuizEngineError)
async def quiz_engine_exception_handler(request: Request, exc: QuizEngineError):
    """Map the service error taxonomy onto HTTP status codes."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and non-integer ids are client errors (400), not 422s."""
    errors_dict = {}
    field_name_mapping = {
        "quiz_id": "Quiz ID",
        "course_id": "Course ID",
        "student_id": "Student ID",
        "totalMarks": "Total marks",
        "maxAttempts": "Max attempts",
        "visibleUntil": "End date",
        "durationMinutes": "Duration",
    }

    for error in exc.errors():
        field_path = error.get("loc", [])
        if not field_path:
            continue
        field_name = str(field_path[-1])
        display_name = field_name_mapping.get(
            field_name, field_name.replace("_", " ").title()
        )
        if error.get("type", "") == "missing":
            errors_dict[field_name] = f"{display_name} is required."
        else:
            errors_dict[field_name] = f"{display_name}: {error.get('msg', 'Invalid input')}"

    message = next(iter(errors_dict.values()), "Invalid request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message, "errors": errors_dict},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code, content={"success": False, "message": exc.detail}
    )


app.include_router(quizzes_router_module.router, prefix="/quizzes", tags=["quizzes"])


def seed_demo_data(session: Session) -> None:
    """Seed one school with an admin, a teacher, a student and a course."""
    if session.exec(select(School)).first():
        return
    school = School(name="Demo School")
    session.add(school)
    session.commit()
    session.refresh(school)

    admin = User(name="System Admin", email="admin@example.com", role="admin", school_id=school.id)
    teacher = User(name="Demo Teacher", email="teacher@example.com", role="teacher", school_id=school.id)
    student = User(name="Demo Student", email="student@example.com", role="student", school_id=school.id)
    course = Course(code="DEMO101", name="Demo Course", school_id=school.id)
    session.add_all([admin, teacher, student, course])
    session.commit()

    session.add(CourseTeacher(course_id=course.id, teacher_id=teacher.id))
    session.add(Enrollment(course_id=course.id, student_id=student.id))
    session.commit()


@app.on_event("startup")
def on_startup():
    """Configure logging, initialize database schema and optionally seed demo data."""
    logger = configure_logging(settings.log_level)
    create_db_and_tables()
    if settings.seed_demo_data:
        with Session(engine) as session:
            seed_demo_data(session)
        logger.info("Seeded demo school, course and users")
