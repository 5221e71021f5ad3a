"""Quiz assessment and retake-policy engine."""

from .main import app  # noqa: F401
