from typing import Any, Dict, Optional


class StitchError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(StitchError):
    status_code = 400
    message = "Missing required fields"


class DecodeError(ValidationError):
    message = "Invalid audio encoding"


class NotFoundError(StitchError):
    status_code = 404
    message = "Not found"


class ExpiredError(StitchError):
    status_code = 410
    message = "Prompt has expired"


class ModerationRejection(StitchError):
    """Expected business outcome: the submission was not approved."""

    status_code = 422
    message = "Content not approved"

    def __init__(self, reason: Optional[str], escalated: bool):
        super().__init__()
        self.reason = reason
        self.escalated = escalated

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "reason": self.reason, "escalated": self.escalated}


class DependencyUnavailable(StitchError):
    """Raised inside an adapter when its upstream service cannot be used.

    Adapters convert this to their degraded value; it never reaches callers.
    """

    status_code = 503
    message = "Dependency unavailable"


class InternalError(StitchError):
    status_code = 500
    message = "Internal server error"
