"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from wellness_sessions.domain.sessions import (
    Category,
    Difficulty,
    SessionQuery,
    SessionRecord,
    SessionStatus,
)
from wellness_sessions.services.sessions import SessionRepository

_COLUMNS = (
    "id, author_id, author_email, title, description, tags, json_url, content, "
    "status, duration, difficulty, category, created_at, updated_at, last_saved"
)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for wellness sessions."""

    client: Client
    table_name: str = "wellness_sessions"

    def create_session(
        self, author_id: UUID, fields: dict[str, object], now: datetime
    ) -> SessionRecord:
        """Create a session row and return it."""
        timestamp = now.isoformat()
        response = (
            self.client.table(self.table_name)
            .insert(
                {
                    **_serialize(fields),
                    "author_id": str(author_id),
                    "created_at": timestamp,
                    "updated_at": timestamp,
                    "last_saved": timestamp,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create session")
        return _parse_session(response.data[0])

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""
        response = (
            self.client.table(self.table_name)
            .select(_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def update_session(
        self, session_id: UUID, fields: dict[str, object]
    ) -> SessionRecord:
        """Update session columns and return the stored row."""
        response = (
            self.client.table(self.table_name)
            .update(_serialize(fields))
            .eq("id", str(session_id))
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to update session")
        return _parse_session(response.data[0])

    def delete_session(self, session_id: UUID) -> None:
        """Delete a session row."""
        self.client.table(self.table_name).delete().eq("id", str(session_id)).execute()

    def list_sessions(self, query: SessionQuery) -> tuple[list[SessionRecord], int]:
        """Return one page of matching sessions and the exact match count."""
        request = self.client.table(self.table_name).select(_COLUMNS, count="exact")
        if query.status is not None:
            request = request.eq("status", query.status.value)
        if query.category is not None:
            request = request.eq("category", query.category.value)
        if query.author_id is not None:
            request = request.eq("author_id", str(query.author_id))
        if query.tags:
            request = request.overlaps("tags", query.tags)
        if query.search:
            pattern = _ilike_pattern(query.search)
            request = request.or_(
                f"title.ilike.{pattern},description.ilike.{pattern}"
            )
        response = (
            request.order(query.order_by, desc=True)
            .range(query.offset, query.offset + query.limit - 1)
            .execute()
        )
        rows = response.data or []
        total = response.count if response.count is not None else len(rows)
        return [_parse_session(row) for row in rows], total


def _ilike_pattern(search: str) -> str:
    """Build an ilike pattern safe to embed in a PostgREST or-filter."""
    cleaned = search.strip()
    for reserved in (",", "(", ")", "%", "*"):
        cleaned = cleaned.replace(reserved, " ")
    return f"*{cleaned}*"


def _serialize(fields: dict[str, object]) -> dict[str, object]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in fields.items()
    }


def _parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw))


def _parse_session(row: dict[str, object]) -> SessionRecord:
    """Parse a session row into a domain model."""
    duration = row.get("duration")
    content = row.get("content")
    return SessionRecord(
        id=UUID(str(row["id"])),
        author_id=UUID(str(row["author_id"])),
        title=str(row.get("title", "")),
        description=str(row.get("description") or ""),
        tags=list(row.get("tags") or []),
        json_url=row.get("json_url") or None,
        content=content if content is not None else {},
        status=SessionStatus(row.get("status", SessionStatus.DRAFT)),
        duration=float(duration) if duration is not None else None,
        difficulty=Difficulty(row.get("difficulty", Difficulty.BEGINNER)),
        category=Category(row.get("category", Category.OTHER)),
        created_at=_parse_timestamp(row["created_at"]),
        updated_at=_parse_timestamp(row["updated_at"]),
        last_saved=_parse_timestamp(row["last_saved"]),
        author_email=row.get("author_email"),
    )
