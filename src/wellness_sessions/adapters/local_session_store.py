"""In-process document store backed directly by the session service."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from wellness_sessions.domain.sessions import SessionPage, SessionQuery, SessionRecord
from wellness_sessions.errors import (
    SessionNotFoundError,
    SessionNotFoundOrUnauthorizedError,
)
from wellness_sessions.services.autosave import DocumentStore
from wellness_sessions.services.sessions import SessionService


@dataclass
class LocalSessionStore(DocumentStore):
    """Document store that calls ``SessionService`` on behalf of one author."""

    service: SessionService
    author_id: UUID

    async def create(self, fields: dict[str, object]) -> SessionRecord:
        return self.service.create_session(self.author_id, fields)

    async def partial_update(
        self, session_id: str, fields: dict[str, object]
    ) -> datetime:
        return self.service.autosave_session(
            self.author_id, _owned_id(session_id), fields
        )

    async def full_update(
        self, session_id: str, fields: dict[str, object]
    ) -> SessionRecord:
        return self.service.update_session(
            self.author_id, _owned_id(session_id), fields
        )

    async def publish(self, session_id: str) -> SessionRecord:
        return self.service.publish_session(self.author_id, _owned_id(session_id))

    async def delete(self, session_id: str) -> None:
        self.service.delete_session(self.author_id, _owned_id(session_id))

    async def get(self, session_id: str) -> SessionRecord:
        try:
            parsed = UUID(session_id)
        except ValueError as exc:
            raise SessionNotFoundError() from exc
        return self.service.get_session(parsed, viewer_id=self.author_id)

    async def list(self, query: SessionQuery) -> SessionPage:
        return self.service.list_published(query)

    async def list_mine(self, query: SessionQuery) -> SessionPage:
        return self.service.list_author_sessions(self.author_id, query)


def _owned_id(session_id: str) -> UUID:
    try:
        return UUID(session_id)
    except ValueError as exc:
        raise SessionNotFoundOrUnauthorizedError() from exc
