"""Tests for HTTP-based adapters."""

import asyncio
import json
from uuid import uuid4

import httpx
import pytest

from wellness_sessions.adapters.session_store_client import HttpxSessionStoreClient
from wellness_sessions.domain.sessions import Category, SessionQuery, SessionStatus
from wellness_sessions.errors import (
    SessionNotFoundError,
    SessionNotFoundOrUnauthorizedError,
    SessionValidationError,
    TransportError,
)

SESSION_ID = str(uuid4())
AUTHOR_ID = str(uuid4())


def _wire_session(**overrides: object) -> dict[str, object]:
    timestamp = "2024-05-01T08:00:00+00:00"
    session: dict[str, object] = {
        "id": SESSION_ID,
        "title": "Morning Flow",
        "description": "",
        "tags": [],
        "jsonUrl": None,
        "content": {},
        "author": {"id": AUTHOR_ID, "email": "author@example.com"},
        "status": "draft",
        "duration": 30,
        "difficulty": "beginner",
        "category": "meditation",
        "createdAt": timestamp,
        "updatedAt": timestamp,
        "lastSaved": timestamp,
    }
    return session | overrides


def _client(handler) -> HttpxSessionStoreClient:  # type: ignore[no-untyped-def]
    transport = httpx.MockTransport(handler)
    return HttpxSessionStoreClient(
        base_url="https://api.example.com",
        access_token="token-1",
        http_client=httpx.AsyncClient(transport=transport),
    )


def test_session_store_client_create_and_autosave() -> None:
    seen: list[tuple[str, str, dict[str, object]]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer token-1"
        payload = json.loads(request.content.decode())
        seen.append((request.method, request.url.path, payload))
        if request.method == "POST":
            return httpx.Response(
                201,
                json={
                    "message": "Session created successfully",
                    "session": _wire_session(title=payload["title"]),
                },
            )
        return httpx.Response(
            200,
            json={
                "message": "Session auto-saved",
                "lastSaved": "2024-05-01T09:00:00+00:00",
            },
        )

    client = _client(handler)
    created = asyncio.run(client.create({"title": "Morning Flow"}))
    last_saved = asyncio.run(
        client.partial_update(SESSION_ID, {"description": "Slow start"})
    )

    assert str(created.id) == SESSION_ID
    assert created.category == Category.MEDITATION
    assert created.author_email == "author@example.com"
    assert last_saved.hour == 9
    assert seen[0][:2] == ("POST", "/sessions")
    assert seen[1] == (
        "PATCH",
        f"/sessions/{SESSION_ID}/autosave",
        {"description": "Slow start"},
    )


def test_session_store_client_maps_validation_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "message": "Validation failed",
                "errors": [{"field": "jsonUrl", "message": "Please enter a valid URL"}],
            },
        )

    client = _client(handler)

    with pytest.raises(SessionValidationError) as excinfo:
        asyncio.run(client.partial_update(SESSION_ID, {"jsonUrl": "nope"}))

    assert excinfo.value.errors[0].field == "jsonUrl"
    assert excinfo.value.errors[0].message == "Please enter a valid URL"


@pytest.mark.parametrize("status_code", [401, 403, 404])
def test_session_store_client_maps_authorization_errors(status_code: int) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code, json={"message": "Session not found or not authorized"}
        )

    client = _client(handler)

    with pytest.raises(SessionNotFoundOrUnauthorizedError):
        asyncio.run(client.partial_update(SESSION_ID, {"title": "Mine"}))


def test_session_store_client_maps_server_and_network_errors() -> None:
    def failing(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"message": "Server error"})

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError, match="Server error"):
        asyncio.run(_client(failing).create({"title": "Morning Flow"}))
    with pytest.raises(TransportError, match="connection refused"):
        asyncio.run(_client(unreachable).create({"title": "Morning Flow"}))


def test_session_store_client_get_missing_session() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Session not found"})

    with pytest.raises(SessionNotFoundError):
        asyncio.run(_client(handler).get(SESSION_ID))


def test_session_store_client_lists_and_publishes() -> None:
    seen_params: list[dict[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PATCH":
            assert request.url.path == f"/sessions/{SESSION_ID}/publish"
            return httpx.Response(
                200,
                json={
                    "message": "Session published successfully",
                    "session": _wire_session(status="published"),
                },
            )
        if request.method == "DELETE":
            return httpx.Response(200, json={"message": "Session deleted successfully"})
        seen_params.append(dict(request.url.params))
        return httpx.Response(
            200,
            json={
                "sessions": [_wire_session()],
                "totalPages": 3,
                "currentPage": 2,
                "total": 11,
            },
        )

    client = _client(handler)
    query = SessionQuery(
        category=Category.YOGA, tags=["calm", "sleep"], page=2, limit=5
    )
    page = asyncio.run(client.list(query))
    mine = asyncio.run(client.list_mine(SessionQuery(status=SessionStatus.DRAFT)))
    published = asyncio.run(client.publish(SESSION_ID))
    asyncio.run(client.delete(SESSION_ID))

    assert page.total == 11
    assert page.page == 2
    assert page.page_count == 3
    assert seen_params[0] == {
        "page": "2",
        "limit": "5",
        "category": "yoga",
        "tags": "calm,sleep",
    }
    assert seen_params[1]["status"] == "draft"
    assert len(mine.items) == 1
    assert published.status == SessionStatus.PUBLISHED
