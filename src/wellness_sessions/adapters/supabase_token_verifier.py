"""Supabase Auth token verification."""

import logging
from dataclasses import dataclass
from uuid import UUID

from supabase import AuthError, Client

from wellness_sessions.domain.models import UserRecord
from wellness_sessions.services.auth import TokenVerifier

logger = logging.getLogger(__name__)


@dataclass
class SupabaseTokenVerifier(TokenVerifier):
    """Verify access tokens issued by Supabase Auth."""

    client: Client

    def verify(self, token: str) -> UserRecord | None:
        """Return the user for a valid access token."""
        try:
            response = self.client.auth.get_user(token)
        except AuthError as exc:
            logger.info("Rejected access token: %s", exc)
            return None
        if response is None or response.user is None:
            return None
        return UserRecord(id=UUID(str(response.user.id)), email=response.user.email)
