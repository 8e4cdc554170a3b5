"""Session API endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Header, Query, Request, status

from wellness_sessions.domain.models import UserRecord  # noqa: TC001
from wellness_sessions.domain.sessions import (
    Category,
    SessionQuery,
    SessionStatus,
)
from wellness_sessions.domain.wire import page_to_wire, session_to_wire
from wellness_sessions.errors import (
    AuthenticationError,
    SessionNotFoundError,
    SessionNotFoundOrUnauthorizedError,
)

if TYPE_CHECKING:
    from wellness_sessions.containers import AppContainer

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> UserRecord:
    """Resolve the calling author from the bearer token."""
    container: AppContainer = request.app.state.container
    return container.auth_service.authenticate(_bearer_token(authorization))


async def optional_user(
    request: Request, authorization: str | None = Header(default=None)
) -> UserRecord | None:
    """Resolve the caller if a valid token was sent."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    container: AppContainer = request.app.state.container
    try:
        return container.auth_service.authenticate(token)
    except AuthenticationError:
        return None


def _visible_id(raw: str) -> UUID:
    """Parse a path id for reads; malformed ids are unknown sessions."""
    try:
        return UUID(raw)
    except ValueError as exc:
        raise SessionNotFoundError() from exc


def _owned_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError as exc:
        raise SessionNotFoundOrUnauthorizedError() from exc


def _split_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [tag.strip().lower() for tag in raw.split(",") if tag.strip()]


@router.get("")
async def list_published_sessions(  # noqa: PLR0913
    request: Request,
    page: int = 1,
    limit: int = 10,
    category: Category | None = None,
    tags: str | None = None,
    search: str | None = None,
) -> dict[str, object]:
    """Return published sessions, newest first."""
    container: AppContainer = request.app.state.container
    query = SessionQuery(
        category=category,
        tags=_split_tags(tags),
        search=search,
        page=page,
        limit=limit,
    )
    return page_to_wire(container.session_service.list_published(query))


@router.get("/my-sessions")
async def list_my_sessions(
    request: Request,
    user: UserRecord = Depends(require_user),
    status_filter: SessionStatus | None = Query(default=None, alias="status"),
    page: int = 1,
    limit: int = 10,
) -> dict[str, object]:
    """Return the caller's sessions, most recently edited first."""
    container: AppContainer = request.app.state.container
    query = SessionQuery(status=status_filter, page=page, limit=limit)
    return page_to_wire(container.session_service.list_author_sessions(user.id, query))


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    request: Request,
    viewer: UserRecord | None = Depends(optional_user),
) -> dict[str, object]:
    """Return a published session, or a draft to its author."""
    container: AppContainer = request.app.state.container
    session = container.session_service.get_session(
        _visible_id(session_id), viewer_id=viewer.id if viewer else None
    )
    return session_to_wire(session)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    request: Request,
    payload: dict[str, object] = Body(...),
    user: UserRecord = Depends(require_user),
) -> dict[str, object]:
    """Create a session owned by the caller."""
    container: AppContainer = request.app.state.container
    session = container.session_service.create_session(
        user.id, payload, author_email=user.email
    )
    return {
        "message": "Session created successfully",
        "session": session_to_wire(session),
    }


@router.put("/{session_id}")
async def update_session(
    session_id: str,
    request: Request,
    payload: dict[str, object] = Body(...),
    user: UserRecord = Depends(require_user),
) -> dict[str, object]:
    """Apply an explicit full update."""
    container: AppContainer = request.app.state.container
    session = container.session_service.update_session(
        user.id, _owned_id(session_id), payload
    )
    return {
        "message": "Session updated successfully",
        "session": session_to_wire(session),
    }


@router.patch("/{session_id}/autosave")
async def autosave_session(
    session_id: str,
    request: Request,
    payload: dict[str, object] = Body(...),
    user: UserRecord = Depends(require_user),
) -> dict[str, object]:
    """Persist the auto-save field set."""
    container: AppContainer = request.app.state.container
    last_saved = container.session_service.autosave_session(
        user.id, _owned_id(session_id), payload
    )
    return {"message": "Session auto-saved", "lastSaved": last_saved.isoformat()}


@router.patch("/{session_id}/publish")
async def publish_session(
    session_id: str,
    request: Request,
    user: UserRecord = Depends(require_user),
) -> dict[str, object]:
    """Publish one of the caller's sessions."""
    container: AppContainer = request.app.state.container
    session = container.session_service.publish_session(user.id, _owned_id(session_id))
    return {
        "message": "Session published successfully",
        "session": session_to_wire(session),
    }


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    request: Request,
    user: UserRecord = Depends(require_user),
) -> dict[str, str]:
    """Delete one of the caller's sessions."""
    container: AppContainer = request.app.state.container
    container.session_service.delete_session(user.id, _owned_id(session_id))
    return {"message": "Session deleted successfully"}
