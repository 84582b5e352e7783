"""Custom exception classes for the Vibbit classroom backend.

Every application error derives from VibbitError and carries the HTTP status
the routes answer with.
"""

from typing import Optional


class VibbitError(Exception):
    """Base exception for all Vibbit backend errors."""

    status_code: int = 500


class ValidationError(VibbitError):
    """Raised when request data is missing or malformed."""

    status_code = 400


class InvalidJoinCodeError(ValidationError):
    """Raised when a join code is unknown or its classroom is inactive."""

    def __init__(self, message: str = "Invalid or inactive join code"):
        super().__init__(message)


class ClassroomFullError(ValidationError):
    """Raised when a classroom already holds max_students active students."""

    def __init__(self, message: str = "Classroom is full"):
        super().__init__(message)


class UnauthorizedError(VibbitError):
    """Raised when a credential is missing or does not resolve."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(VibbitError):
    """Raised when a valid credential has been revoked or paused."""

    status_code = 403


class RateLimitedError(VibbitError):
    """Raised when a student has used up the classroom request limit."""

    status_code = 429

    def __init__(self, limit: int):
        """Initialize the exception.

        Args:
            limit: The per-student request limit that was reached.
        """
        self.limit = limit
        super().__init__(
            f"Request limit reached ({limit}). Ask your teacher for more."
        )


class ConfigurationError(VibbitError):
    """Raised when there is a configuration error."""

    status_code = 500


class ProviderError(VibbitError):
    """Raised when the upstream generation provider fails."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        """Initialize the exception.

        Args:
            message: Human-readable description.
            upstream_status: HTTP status returned by the provider, if any.
        """
        self.upstream_status = upstream_status
        super().__init__(message)


class ProviderTimeoutError(VibbitError):
    """Raised when a generation call exceeds its deadline."""

    status_code = 504
