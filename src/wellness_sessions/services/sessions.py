"""Document store for authored wellness sessions."""

import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from wellness_sessions.domain.payloads import (
    SessionAutoSave,
    SessionCreate,
    SessionUpdate,
    changed_fields,
    parse_payload,
)
from wellness_sessions.domain.sessions import (
    SessionPage,
    SessionQuery,
    SessionRecord,
    SessionStatus,
)
from wellness_sessions.errors import (
    FieldError,
    SessionNotFoundError,
    SessionNotFoundOrUnauthorizedError,
    SessionValidationError,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class SessionRepository(Protocol):
    """Persistence interface for wellness sessions."""

    def create_session(
        self, author_id: UUID, fields: dict[str, object], now: datetime
    ) -> SessionRecord:
        """Create a new session and return it."""

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""

    def update_session(
        self, session_id: UUID, fields: dict[str, object]
    ) -> SessionRecord:
        """Apply column updates to a session and return it."""

    def delete_session(self, session_id: UUID) -> None:
        """Delete a session."""

    def list_sessions(self, query: SessionQuery) -> tuple[list[SessionRecord], int]:
        """Return one page of matching sessions and the total match count."""


class Clock(Protocol):
    """Source of the current time."""

    def __call__(self) -> datetime:
        """Return an aware UTC datetime."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionService:
    """Application service enforcing validation and ownership for sessions."""

    repository: SessionRepository
    clock: Clock = field(default=_utcnow)

    def create_session(
        self,
        author_id: UUID,
        payload: dict[str, object],
        author_email: str | None = None,
    ) -> SessionRecord:
        """Validate and create a session owned by the author."""
        data = parse_payload(SessionCreate, payload)
        fields = _create_fields(data)
        if author_email is not None:
            fields["author_email"] = author_email
        session = self.repository.create_session(author_id, fields, now=self.clock())
        logger.info("Created session %s for author %s", session.id, author_id)
        return session

    def update_session(
        self, author_id: UUID, session_id: UUID, payload: dict[str, object]
    ) -> SessionRecord:
        """Apply a full update from an explicit save."""
        data = parse_payload(SessionUpdate, payload)
        session = self._owned_session(author_id, session_id)
        fields = changed_fields(data)
        if (
            session.status == SessionStatus.PUBLISHED
            and fields.get("status") == SessionStatus.DRAFT
        ):
            raise SessionValidationError(
                [FieldError("status", "Published sessions cannot return to draft")]
            )
        now = self.clock()
        return self.repository.update_session(
            session_id, fields | {"updated_at": now, "last_saved": now}
        )

    def autosave_session(
        self, author_id: UUID, session_id: UUID, payload: dict[str, object]
    ) -> datetime:
        """Persist the auto-save field set and return the new save time."""
        data = parse_payload(SessionAutoSave, payload)
        self._owned_session(author_id, session_id)
        now = self.clock()
        updated = self.repository.update_session(
            session_id, changed_fields(data) | {"updated_at": now, "last_saved": now}
        )
        logger.debug("Auto-saved session %s", session_id)
        return updated.last_saved

    def publish_session(self, author_id: UUID, session_id: UUID) -> SessionRecord:
        """Mark a session as published."""
        self._owned_session(author_id, session_id)
        now = self.clock()
        session = self.repository.update_session(
            session_id,
            {
                "status": SessionStatus.PUBLISHED.value,
                "updated_at": now,
                "last_saved": now,
            },
        )
        logger.info("Published session %s", session_id)
        return session

    def delete_session(self, author_id: UUID, session_id: UUID) -> None:
        """Delete a session owned by the author."""
        self._owned_session(author_id, session_id)
        self.repository.delete_session(session_id)
        logger.info("Deleted session %s", session_id)

    def get_session(
        self, session_id: UUID, viewer_id: UUID | None = None
    ) -> SessionRecord:
        """Return a session visible to the viewer.

        Published sessions are public; drafts are only visible to their author.
        """
        session = self.repository.get_session(session_id)
        if session is None:
            raise SessionNotFoundError()
        if session.status != SessionStatus.PUBLISHED and session.author_id != viewer_id:
            raise SessionNotFoundError()
        return session

    def list_published(self, query: SessionQuery) -> SessionPage:
        """List published sessions, newest first."""
        scoped = replace(
            _clamp(query),
            status=SessionStatus.PUBLISHED,
            author_id=None,
            order_by="created_at",
        )
        return self._page(scoped)

    def list_author_sessions(self, author_id: UUID, query: SessionQuery) -> SessionPage:
        """List every session of an author, most recently edited first."""
        scoped = replace(_clamp(query), author_id=author_id, order_by="updated_at")
        return self._page(scoped)

    def _page(self, query: SessionQuery) -> SessionPage:
        items, total = self.repository.list_sessions(query)
        return SessionPage(items=items, total=total, page=query.page, limit=query.limit)

    def _owned_session(self, author_id: UUID, session_id: UUID) -> SessionRecord:
        session = self.repository.get_session(session_id)
        if session is None or session.author_id != author_id:
            raise SessionNotFoundOrUnauthorizedError()
        return session


def _create_fields(data: SessionCreate) -> dict[str, object]:
    """Fill columns the creator left unset with their model defaults."""
    return {
        "description": data.description,
        "tags": data.tags,
        "content": data.content,
        "status": data.status.value,
        "difficulty": data.difficulty.value,
        "category": data.category.value,
    } | changed_fields(data)


def _clamp(query: SessionQuery) -> SessionQuery:
    page = max(query.page, 1)
    limit = min(max(query.limit, 1), MAX_PAGE_SIZE)
    tags = [tag.strip().lower() for tag in query.tags if tag.strip()]
    return replace(query, page=page, limit=limit, tags=tags)
