"""
Generation error taxonomy.

Every failure surfaced by the generation client is a GenerationError with
a machine-readable code and, when an HTTP response was involved, its
status and parsed body.
"""

from typing import Any, Optional


class ErrorCode:
    """Machine-readable generation error codes."""

    NO_API_KEY = "NO_API_KEY"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_API_KEY = "INVALID_API_KEY"
    CONTENT_MODERATION = "CONTENT_MODERATION"
    RATE_LIMIT = "RATE_LIMIT"
    MAX_RETRIES = "MAX_RETRIES"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    GENERATION_FAILED = "GENERATION_FAILED"
    TIMEOUT = "TIMEOUT"


# Non-2xx status -> code; anything unlisted is API_ERROR
STATUS_CODES = {
    401: ErrorCode.INVALID_API_KEY,
    422: ErrorCode.CONTENT_MODERATION,
    429: ErrorCode.RATE_LIMIT,
}


class GenerationError(Exception):
    """A classified generation failure."""

    def __init__(self, message: str, code: str,
                 status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details

    @classmethod
    def from_status(cls, status_code: int, details: Any = None) -> 'GenerationError':
        code = STATUS_CODES.get(status_code, ErrorCode.API_ERROR)
        return cls(_message_for(status_code, details), code,
                   status_code=status_code, details=details)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "status": self.status_code,
            "details": self.details,
        }

    def __repr__(self):
        return f"GenerationError({self.code}, status={self.status_code}, {self.message!r})"


def _message_for(status_code: int, details: Any) -> str:
    if isinstance(details, dict):
        error = details.get("error")
        if isinstance(error, dict):
            error = error.get("message")
        if error:
            return str(error)
        if details.get("message"):
            return str(details["message"])
    if status_code == 401:
        return "Invalid API key"
    if status_code == 422:
        return "Request blocked by content moderation"
    return f"Generation service returned HTTP {status_code}"
