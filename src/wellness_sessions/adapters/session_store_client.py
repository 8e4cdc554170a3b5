"""HTTP client for the wellness sessions API."""

from dataclasses import dataclass
from datetime import datetime

import httpx

from wellness_sessions.domain.sessions import SessionPage, SessionQuery, SessionRecord
from wellness_sessions.domain.wire import page_from_wire, session_from_wire
from wellness_sessions.errors import (
    FieldError,
    SessionNotFoundError,
    SessionNotFoundOrUnauthorizedError,
    SessionValidationError,
    TransportError,
)
from wellness_sessions.services.autosave import DocumentStore

_AUTH_FAILURE_CODES = {401, 403, 404}


@dataclass
class HttpxSessionStoreClient(DocumentStore):
    """Document store that talks to the sessions API over httpx."""

    base_url: str
    access_token: str
    http_client: httpx.AsyncClient
    timeout: float = 10.0

    @classmethod
    def connect(
        cls, base_url: str, access_token: str, timeout: float = 10.0
    ) -> "HttpxSessionStoreClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            access_token=access_token,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def create(self, fields: dict[str, object]) -> SessionRecord:
        """Create a session and return it."""
        data = await self._request("POST", "/sessions", json=fields)
        return session_from_wire(data["session"])

    async def partial_update(
        self, session_id: str, fields: dict[str, object]
    ) -> datetime:
        """Auto-save fields and return the server save time."""
        data = await self._request(
            "PATCH", f"/sessions/{session_id}/autosave", json=fields
        )
        return datetime.fromisoformat(str(data["lastSaved"]))

    async def full_update(
        self, session_id: str, fields: dict[str, object]
    ) -> SessionRecord:
        """Apply a full update and return the stored session."""
        data = await self._request("PUT", f"/sessions/{session_id}", json=fields)
        return session_from_wire(data["session"])

    async def publish(self, session_id: str) -> SessionRecord:
        """Publish a session."""
        data = await self._request("PATCH", f"/sessions/{session_id}/publish")
        return session_from_wire(data["session"])

    async def delete(self, session_id: str) -> None:
        """Delete a session."""
        await self._request("DELETE", f"/sessions/{session_id}")

    async def get(self, session_id: str) -> SessionRecord:
        """Fetch a session visible to the caller."""
        try:
            data = await self._request("GET", f"/sessions/{session_id}")
        except SessionNotFoundOrUnauthorizedError as exc:
            raise SessionNotFoundError() from exc
        return session_from_wire(data)

    async def list(self, query: SessionQuery) -> SessionPage:
        """List published sessions."""
        params: dict[str, object] = {"page": query.page, "limit": query.limit}
        if query.category is not None:
            params["category"] = query.category.value
        if query.tags:
            params["tags"] = ",".join(query.tags)
        if query.search:
            params["search"] = query.search
        data = await self._request("GET", "/sessions", params=params)
        return page_from_wire(data, limit=query.limit)

    async def list_mine(self, query: SessionQuery) -> SessionPage:
        """List the caller's own sessions."""
        params: dict[str, object] = {"page": query.page, "limit": query.limit}
        if query.status is not None:
            params["status"] = query.status.value
        data = await self._request("GET", "/sessions/my-sessions", params=params)
        return page_from_wire(data, limit=query.limit)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, object] | None = None,
        params: dict[str, object] | None = None,
    ) -> dict[str, object]:
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc
        if response.status_code == 400:
            raise SessionValidationError(_field_errors(response))
        if response.status_code in _AUTH_FAILURE_CODES:
            raise SessionNotFoundOrUnauthorizedError(_message(response))
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(_message(response)) from exc
        return response.json()


def _message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


def _field_errors(response: httpx.Response) -> list[FieldError]:
    try:
        body = response.json()
    except ValueError:
        return []
    errors = body.get("errors") if isinstance(body, dict) else None
    return [
        FieldError(
            field=str(item.get("field", "")), message=str(item.get("message", ""))
        )
        for item in errors or []
        if isinstance(item, dict)
    ]
