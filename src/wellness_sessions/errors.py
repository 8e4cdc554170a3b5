"""Error taxonomy shared by the session store and its clients."""

from dataclasses import dataclass


class WellnessSessionsError(Exception):
    """Base class for application errors."""


@dataclass(frozen=True)
class FieldError:
    """A single failed validation rule."""

    field: str
    message: str


class SessionValidationError(WellnessSessionsError):
    """Raised when a session payload breaks a validation rule."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = errors
        details = ", ".join(f"{error.field}: {error.message}" for error in errors)
        message = "Validation failed"
        super().__init__(f"{message}: {details}" if details else message)


class SessionNotFoundError(WellnessSessionsError):
    """Raised when a session does not exist or is hidden from the caller."""

    def __init__(self, message: str = "Session not found") -> None:
        super().__init__(message)


class AuthorizationError(WellnessSessionsError):
    """Raised when the caller may not act on a session."""


class SessionNotFoundOrUnauthorizedError(AuthorizationError):
    """Raised when a write targets a missing session or someone else's."""

    def __init__(self, message: str = "Session not found or not authorized") -> None:
        super().__init__(message)


class AuthenticationError(AuthorizationError):
    """Raised when a bearer token is missing or rejected."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class TransportError(WellnessSessionsError):
    """Raised when the session store is unreachable or fails unexpectedly."""
