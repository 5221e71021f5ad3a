"""Directory collaborator: users, courses and their teacher/student relationships."""

from typing import Dict, Iterable, Optional, Protocol, Set

from sqlmodel import Session, select

from quiz_engine.models import Course, CourseTeacher, Enrollment, User


class Directory(Protocol):
    def get_user(self, user_id: int) -> Optional[User]: ...

    def get_users(self, user_ids: Iterable[int]) -> Dict[int, User]: ...

    def get_course(self, course_id: int) -> Optional[Course]: ...

    def teacher_course_ids(self, user_id: int) -> Set[int]: ...

    def course_student_ids(self, course_id: int) -> Set[int]: ...


class SqlDirectory:
    """Directory backed by the directory tables in the same database."""

    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_users(self, user_ids: Iterable[int]) -> Dict[int, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        users = self.session.exec(select(User).where(User.id.in_(ids))).all()
        return {u.id: u for u in users}

    def get_course(self, course_id: int) -> Optional[Course]:
        return self.session.get(Course, course_id)

    def teacher_course_ids(self, user_id: int) -> Set[int]:
        rows = self.session.exec(
            select(CourseTeacher.course_id).where(CourseTeacher.teacher_id == user_id)
        ).all()
        return set(rows)

    def course_student_ids(self, course_id: int) -> Set[int]:
        rows = self.session.exec(
            select(Enrollment.student_id).where(Enrollment.course_id == course_id)
        ).all()
        return set(rows)
