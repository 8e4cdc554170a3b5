"""JSON wire format for sessions exchanged over HTTP."""

from datetime import datetime
from uuid import UUID

from wellness_sessions.domain.sessions import (
    Category,
    Difficulty,
    SessionPage,
    SessionRecord,
    SessionStatus,
)


def session_to_wire(session: SessionRecord) -> dict[str, object]:
    """Render a session with the camelCase keys used by editing clients."""
    return {
        "id": str(session.id),
        "title": session.title,
        "description": session.description,
        "tags": session.tags,
        "jsonUrl": session.json_url,
        "content": session.content,
        "author": {"id": str(session.author_id), "email": session.author_email},
        "status": session.status.value,
        "duration": session.duration,
        "difficulty": session.difficulty.value,
        "category": session.category.value,
        "createdAt": session.created_at.isoformat(),
        "updatedAt": session.updated_at.isoformat(),
        "lastSaved": session.last_saved.isoformat(),
    }


def session_from_wire(data: dict[str, object]) -> SessionRecord:
    """Parse a session rendered by ``session_to_wire``."""
    duration = data.get("duration")
    content = data.get("content")
    author = data["author"]
    if not isinstance(author, dict):
        author = {"id": author}
    return SessionRecord(
        id=UUID(str(data["id"])),
        author_id=UUID(str(author["id"])),
        title=str(data.get("title", "")),
        description=str(data.get("description") or ""),
        tags=list(data.get("tags") or []),
        json_url=data.get("jsonUrl") or None,
        content=content if content is not None else {},
        status=SessionStatus(data.get("status", SessionStatus.DRAFT)),
        duration=float(duration) if duration is not None else None,
        difficulty=Difficulty(data.get("difficulty", Difficulty.BEGINNER)),
        category=Category(data.get("category", Category.OTHER)),
        created_at=datetime.fromisoformat(str(data["createdAt"])),
        updated_at=datetime.fromisoformat(str(data["updatedAt"])),
        last_saved=datetime.fromisoformat(str(data["lastSaved"])),
        author_email=author.get("email"),
    )


def page_to_wire(page: SessionPage) -> dict[str, object]:
    return {
        "sessions": [session_to_wire(session) for session in page.items],
        "totalPages": page.page_count,
        "currentPage": page.page,
        "total": page.total,
    }


def page_from_wire(data: dict[str, object], limit: int) -> SessionPage:
    sessions = data.get("sessions") or []
    return SessionPage(
        items=[session_from_wire(item) for item in sessions],
        total=int(data.get("total", 0)),
        page=int(data.get("currentPage", 1)),
        limit=limit,
    )
