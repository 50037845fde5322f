"""
Domain error taxonomy

Services raise these; main.py maps them to JSON responses of the form
{"error": <kind>, "reason": <discriminant | null>, "message": <text>}
"""

from enum import Enum
from typing import Optional


class ConflictReason(str, Enum):
    NOT_YET_OPEN = "NotYetOpen"
    ALREADY_ENDED = "AlreadyEnded"
    NOT_ENROLLED = "NotEnrolled"
    ALREADY_STARTED = "AlreadyStarted"
    SUBMISSION_WINDOW_CLOSED = "SubmissionWindowClosed"


class ClasslabError(Exception):
    status_code = 500
    kind = "Internal"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "reason": self.reason,
            "message": self.message
        }


class ValidationError(ClasslabError):
    status_code = 400
    kind = "ValidationError"


class Unauthorized(ClasslabError):
    status_code = 401
    kind = "Unauthorized"


class PermissionDenied(ClasslabError):
    status_code = 403
    kind = "PermissionDenied"


class NotFound(ClasslabError):
    status_code = 404
    kind = "NotFound"


class StateConflict(ClasslabError):
    """Lifecycle precondition violated; always carries a ConflictReason"""
    status_code = 409
    kind = "StateConflict"

    def __init__(self, reason: ConflictReason, message: str):
        super().__init__(message, reason=ConflictReason(reason).value)


class UpstreamFailure(ClasslabError):
    status_code = 502
    kind = "UpstreamFailure"


class JudgeTimeout(UpstreamFailure):
    """The judge did not answer in time. Not evidence that the code is wrong."""
    status_code = 504
    kind = "JudgeTimeout"
