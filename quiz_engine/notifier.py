"""Notifier collaborator: fire-and-forget "quiz published" events."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizPublishedEvent:
    quiz_id: int
    course_id: int
    course_name: str
    title: str
    created_by: int
    visible_until: Optional[datetime] = None
    recipient_ids: FrozenSet[int] = field(default_factory=frozenset)


class Notifier(Protocol):
    def quiz_published(self, event: QuizPublishedEvent) -> None: ...


class LoggingNotifier:
    """Default notifier; records the event in the application log."""

    def quiz_published(self, event: QuizPublishedEvent) -> None:
        logger.info(
            "Quiz %s '%s' published for course %s (%s): notifying %d student(s)",
            event.quiz_id,
            event.title,
            event.course_id,
            event.course_name,
            len(event.recipient_ids),
        )
