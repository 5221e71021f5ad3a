"""Quiz routes: authoring, listing, submission, results and export."""

from fastapi import APIRouter, Depends, Response
from fastapi import status as http_status
from sqlalchemy.engine import Engine
from sqlmodel import Session

from quiz_engine.caller import Caller, Role
from quiz_engine.database import get_engine, get_session
from quiz_engine.deps import get_caller, get_directory, get_notifier, require_role
from quiz_engine.directory import Directory
from quiz_engine.notifier import Notifier
from quiz_engine.schemas import QuizCreate, QuizRead, RetakePolicy, SubmissionRead, SubmitRequest
from quiz_engine.services import quiz_store, results
from quiz_engine.services.submission import submit_quiz

router = APIRouter()


@router.post("/{course_id}", status_code=http_status.HTTP_201_CREATED)
def create_quiz(
    course_id: int,
    payload: QuizCreate,
    session: Session = Depends(get_session),
    directory: Directory = Depends(get_directory),
    notifier: Notifier = Depends(get_notifier),
    caller: Caller = Depends(get_caller),
):
    """Create a quiz for a course (teacher of the course or admin); published immediately."""
    quiz = quiz_store.create_quiz(session, directory, notifier, caller, course_id, payload)
    return {
        "success": True,
        "data": QuizRead.from_quiz(quiz, hide_answers=False).to_response(),
        "message": "Quiz created and published successfully",
    }


@router.get("/quiz/{quiz_id}")
def get_quiz(
    quiz_id: int,
    session: Session = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    """Quiz details; expired quizzes are returned with `isExpired` rather than an error."""
    quiz = quiz_store.get_quiz(session, caller, quiz_id)
    return {"success": True, "data": quiz.to_response()}


@router.get("/{course_id}")
def list_quizzes(
    course_id: int,
    session: Session = Depends(get_session),
    directory: Directory = Depends(get_directory),
    caller: Caller = Depends(get_caller),
):
    quizzes = quiz_store.list_quizzes(session, directory, caller, course_id)
    return {"success": True, "data": [q.to_response() for q in quizzes]}


@router.post("/{quiz_id}/submit")
def submit(
    quiz_id: int,
    payload: SubmitRequest,
    bind: Engine = Depends(get_engine),
    caller: Caller = Depends(get_caller),
):
    """Grade and record one attempt for the calling student."""
    outcome = submit_quiz(bind, caller, quiz_id, payload.answers)
    return {
        "success": True,
        "data": SubmissionRead.from_submission(outcome.submission).to_response(),
        "message": "Quiz submitted and graded successfully",
        "score": outcome.score,
        "total": outcome.total,
        "percentage": outcome.percentage,
        "attemptNumber": outcome.attempt_number,
        "maxAttempts": outcome.max_attempts,
        "performance": outcome.performance_label,
    }


@router.get("/{quiz_id}/my-result")
def my_result(
    quiz_id: int,
    session: Session = Depends(get_session),
    caller: Caller = Depends(require_role([Role.STUDENT])),
):
    latest = results.my_latest_result(session, caller, quiz_id)
    return {"success": True, "data": latest.to_response() if latest else None}


@router.get("/{quiz_id}/submissions")
def quiz_submissions(
    quiz_id: int,
    session: Session = Depends(get_session),
    directory: Directory = Depends(get_directory),
    caller: Caller = Depends(get_caller),
):
    """Latest attempt per student, most recent first (staff only)."""
    rows = results.latest_per_student(session, directory, caller, quiz_id)
    return {"success": True, "data": [r.to_response() for r in rows]}


@router.get("/{quiz_id}/attempts-remaining")
def attempts_remaining(
    quiz_id: int,
    session: Session = Depends(get_session),
    caller: Caller = Depends(require_role([Role.STUDENT])),
):
    quiz, status = results.attempt_status(session, caller, quiz_id)
    data = {
        "attemptsUsed": status.attempts_used,
        "attemptsRemaining": status.attempts_remaining,
        "maxAttempts": status.max_attempts,
        "canRetake": status.can_retake,
        "retakeMessage": status.message,
        "retakePolicy": RetakePolicy.model_validate(quiz.retake_policy).model_dump(by_alias=True),
    }
    if status.reason is not None:
        data["reason"] = status.reason.value
    return {"success": True, "data": data}


@router.get("/{quiz_id}/student/{student_id}/attempts")
def student_attempts(
    quiz_id: int,
    student_id: int,
    session: Session = Depends(get_session),
    directory: Directory = Depends(get_directory),
    caller: Caller = Depends(get_caller),
):
    rows = results.student_attempts(session, directory, caller, quiz_id, student_id)
    return {"success": True, "data": [r.to_response() for r in rows]}


@router.get("/{quiz_id}/export")
def export_submissions(
    quiz_id: int,
    session: Session = Depends(get_session),
    directory: Directory = Depends(get_directory),
    caller: Caller = Depends(get_caller),
):
    filename, content = results.export_csv(session, directory, caller, quiz_id)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
