"""
Domain exceptions raised by the voting services.

Each carries the HTTP status it maps to; a single exception handler in
`main.py` renders them as `{"detail": ..., "hint": ..., **extra}`.
"""

from typing import Any, Optional


class VotingError(Exception):
    """Base class for expected, client-visible failures."""

    status_code = 400

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message}
        if self.hint:
            body["hint"] = self.hint
        body.update(self.extra)
        return body


class NotFoundError(VotingError):
    status_code = 404


class InvalidStateError(VotingError):
    status_code = 400


class OtpMismatchError(VotingError):
    status_code = 401


class RateLimitedError(VotingError):
    """Too many requests; `retry_after` is in whole seconds."""

    status_code = 429

    def __init__(self, message: str, retry_after: int, hint: Optional[str] = None):
        super().__init__(message, hint=hint, extra={"retryAfter": retry_after})
        self.retry_after = retry_after


class VotingInternalError(VotingError):
    """Persistence failed after validation passed. The message is always generic."""

    status_code = 500

