"""Caller identity passed into the services in place of a framework request object."""

import enum
from dataclasses import dataclass, field
from typing import FrozenSet


class Role(str, enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    user_id: int
    school_id: int

    role = None  # set on each variant

    @property
    def is_staff(self) -> bool:
        return False

    def can_manage_course(self, course_id: int) -> bool:
        """True when the caller may author quizzes and see answers/results for the course."""
        return False


@dataclass(frozen=True)
class StudentCaller(Caller):
    role = Role.STUDENT


@dataclass(frozen=True)
class TeacherCaller(Caller):
    role = Role.TEACHER
    taught_course_ids: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_staff(self) -> bool:
        return True

    def can_manage_course(self, course_id: int) -> bool:
        return course_id in self.taught_course_ids


@dataclass(frozen=True)
class AdminCaller(Caller):
    role = Role.ADMIN

    @property
    def is_staff(self) -> bool:
        return True

    def can_manage_course(self, course_id: int) -> bool:
        return True
