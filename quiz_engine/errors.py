"""Error taxonomy raised by the quiz services and mapped to HTTP responses in main."""

import enum
from typing import Optional


class DenyReason(str, enum.Enum):
    MAX_ATTEMPTS_REACHED = "MaxAttemptsReached"
    RETAKE_NOT_ALLOWED = "RetakeNotAllowed"
    COOLDOWN_ACTIVE = "CooldownActive"
    ALREADY_PASSED = "AlreadyPassed"


class QuizEngineError(Exception):
    """Base class; `status_code` is the HTTP status the error surfaces as."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"success": False, "message": self.message}


class ValidationError(QuizEngineError):
    """Malformed request. Never retried automatically."""

    status_code = 400

    def __init__(
        self,
        message: str,
        errors: Optional[dict[str, str]] = None,
        question_index: Optional[int] = None,
    ):
        super().__init__(message)
        self.errors = errors or {}
        self.question_index = question_index

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        if self.question_index is not None:
            payload["questionIndex"] = self.question_index
        return payload


class NotPublishedError(ValidationError):
    def __init__(self, message: str = "This quiz is not published"):
        super().__init__(message)


class NotFoundError(QuizEngineError):
    status_code = 404


class ForbiddenError(QuizEngineError):
    status_code = 403


class PolicyDeniedError(QuizEngineError):
    """The retake policy refused a new attempt."""

    status_code = 400

    def __init__(self, reason: DenyReason, message: str):
        super().__init__(message)
        self.reason = reason

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["reason"] = self.reason.value
        return payload


class WindowClosedError(QuizEngineError):
    """Submission outside the quiz's visibility window."""

    status_code = 400

    def __init__(self, message: str, not_yet_open: bool = False):
        super().__init__(message)
        self.not_yet_open = not_yet_open


class ConcurrencyConflictError(QuizEngineError):
    """Lost the attempt-number race more times than the retry limit allows."""

    status_code = 500
