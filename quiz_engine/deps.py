"""Shared FastAPI dependencies for database access, collaborators and caller identity."""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from quiz_engine.caller import AdminCaller, Caller, Role, StudentCaller, TeacherCaller
from quiz_engine.database import get_session
from quiz_engine.directory import Directory, SqlDirectory
from quiz_engine.notifier import LoggingNotifier, Notifier

_notifier = LoggingNotifier()


def get_directory(session: Session = Depends(get_session)) -> Directory:
    return SqlDirectory(session)


def get_notifier() -> Notifier:
    return _notifier


def get_caller(
    x_user_id: Optional[int] = Header(default=None),
    directory: Directory = Depends(get_directory),
) -> Caller:
    """Build the caller from the user id injected by the upstream auth layer."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    user = directory.get_user(x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if user.role == Role.ADMIN.value:
        return AdminCaller(user_id=user.id, school_id=user.school_id)
    if user.role == Role.TEACHER.value:
        return TeacherCaller(
            user_id=user.id,
            school_id=user.school_id,
            taught_course_ids=frozenset(directory.teacher_course_ids(user.id)),
        )
    return StudentCaller(user_id=user.id, school_id=user.school_id)


def require_role(required_roles: list[Role]):
    """Dependency factory that enforces one of the given roles."""

    def wrapper(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role not in required_roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return caller

    return wrapper
