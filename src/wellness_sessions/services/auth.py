"""Bearer token authentication for authors."""

from dataclasses import dataclass
from typing import Protocol

from wellness_sessions.domain.models import UserRecord
from wellness_sessions.errors import AuthenticationError


class TokenVerifier(Protocol):
    """Interface for resolving an access token to a user."""

    def verify(self, token: str) -> UserRecord | None:
        """Return the user owning the token, or None if it is rejected."""


@dataclass
class AuthService:
    """Application service for authenticating API callers."""

    verifier: TokenVerifier

    def authenticate(self, token: str | None) -> UserRecord:
        """Resolve a bearer token to its user or raise."""
        if not token or not token.strip():
            raise AuthenticationError()
        user = self.verifier.verify(token.strip())
        if user is None:
            raise AuthenticationError("Invalid or expired token")
        return user
