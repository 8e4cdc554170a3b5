"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from wellness_sessions.config import Settings
from wellness_sessions.containers import AppContainer
from wellness_sessions.domain.models import UserRecord
from wellness_sessions.domain.sessions import (
    Category,
    Difficulty,
    SessionPage,
    SessionQuery,
    SessionRecord,
    SessionStatus,
)
from wellness_sessions.services.auth import AuthService, TokenVerifier
from wellness_sessions.services.autosave import DocumentStore
from wellness_sessions.services.sessions import SessionRepository, SessionService

AUTHOR_ID = UUID("00000000-0000-0000-0000-0000000000a1")
OTHER_ID = UUID("00000000-0000-0000-0000-0000000000b2")
AUTHOR_TOKEN = "author-token"
OTHER_TOKEN = "other-token"


@dataclass
class StepClock:
    """Clock that advances one second per reading."""

    current: datetime = field(
        default_factory=lambda: datetime(2024, 5, 1, 8, 0, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


def _coerce(fields: dict[str, object]) -> dict[str, object]:
    converters = {
        "status": SessionStatus,
        "difficulty": Difficulty,
        "category": Category,
    }
    values = dict(fields)
    for key, converter in converters.items():
        if key in values:
            values[key] = converter(values[key])
    if values.get("duration") is not None:
        values["duration"] = float(values["duration"])
    return values


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    sessions: dict[UUID, SessionRecord] = field(default_factory=dict)

    def create_session(
        self, author_id: UUID, fields: dict[str, object], now: datetime
    ) -> SessionRecord:
        values = _coerce(fields)
        session = SessionRecord(
            id=uuid4(),
            author_id=author_id,
            title=str(values["title"]),
            description=str(values.get("description", "")),
            tags=list(values.get("tags", [])),
            json_url=values.get("json_url"),
            content=values.get("content", {}),
            status=values.get("status", SessionStatus.DRAFT),
            duration=values.get("duration"),
            difficulty=values.get("difficulty", Difficulty.BEGINNER),
            category=values.get("category", Category.OTHER),
            created_at=now,
            updated_at=now,
            last_saved=now,
            author_email=values.get("author_email"),
        )
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        return self.sessions.get(session_id)

    def update_session(
        self, session_id: UUID, fields: dict[str, object]
    ) -> SessionRecord:
        session = replace(self.sessions[session_id], **_coerce(fields))
        self.sessions[session_id] = session
        return session

    def delete_session(self, session_id: UUID) -> None:
        self.sessions.pop(session_id, None)

    def list_sessions(self, query: SessionQuery) -> tuple[list[SessionRecord], int]:
        matches = [
            session
            for session in self.sessions.values()
            if _matches(session, query)
        ]
        matches.sort(key=lambda session: getattr(session, query.order_by), reverse=True)
        return matches[query.offset : query.offset + query.limit], len(matches)


def _matches(session: SessionRecord, query: SessionQuery) -> bool:
    if query.status is not None and session.status != query.status:
        return False
    if query.category is not None and session.category != query.category:
        return False
    if query.author_id is not None and session.author_id != query.author_id:
        return False
    if query.tags and not set(query.tags) & set(session.tags):
        return False
    if query.search:
        needle = query.search.lower()
        haystacks = (session.title.lower(), session.description.lower())
        if not any(needle in haystack for haystack in haystacks):
            return False
    return True


@dataclass
class FakeTokenVerifier(TokenVerifier):
    """Token verifier backed by a static token table."""

    users: dict[str, UserRecord] = field(
        default_factory=lambda: {
            AUTHOR_TOKEN: UserRecord(id=AUTHOR_ID, email="author@example.com"),
            OTHER_TOKEN: UserRecord(id=OTHER_ID, email="other@example.com"),
        }
    )

    def verify(self, token: str) -> UserRecord | None:
        return self.users.get(token)


@dataclass
class RecordingDocumentStore(DocumentStore):
    """Document store fake that records calls and can fail or block."""

    calls: list[tuple[str, str | None, dict[str, object]]] = field(
        default_factory=list
    )
    failures: list[Exception] = field(default_factory=list)
    gate: asyncio.Event | None = None
    next_id: UUID = field(default_factory=lambda: UUID(int=1))
    saved_at: datetime = field(
        default_factory=lambda: datetime(2024, 5, 1, 9, 0, tzinfo=UTC)
    )

    async def create(self, fields: dict[str, object]) -> SessionRecord:
        self.calls.append(("create", None, dict(fields)))
        await self._settle()
        return self._record(fields)

    async def partial_update(
        self, session_id: str, fields: dict[str, object]
    ) -> datetime:
        self.calls.append(("partial_update", session_id, dict(fields)))
        await self._settle()
        return self.saved_at

    async def full_update(
        self, session_id: str, fields: dict[str, object]
    ) -> SessionRecord:
        self.calls.append(("full_update", session_id, dict(fields)))
        await self._settle()
        return self._record(fields)

    def _record(self, fields: dict[str, object]) -> SessionRecord:
        return SessionRecord(
            id=self.next_id,
            author_id=AUTHOR_ID,
            title=str(fields["title"]),
            description=str(fields.get("description", "")),
            tags=list(fields.get("tags", [])),
            json_url=fields.get("jsonUrl"),
            content=fields.get("content", {}),
            status=SessionStatus(fields.get("status", "draft")),
            duration=fields.get("duration"),
            difficulty=Difficulty(fields.get("difficulty", "beginner")),
            category=Category(fields.get("category", "other")),
            created_at=self.saved_at,
            updated_at=self.saved_at,
            last_saved=self.saved_at,
        )

    async def publish(self, session_id: str) -> SessionRecord:
        raise NotImplementedError

    async def delete(self, session_id: str) -> None:
        raise NotImplementedError

    async def get(self, session_id: str) -> SessionRecord:
        raise NotImplementedError

    async def list(self, query: SessionQuery) -> SessionPage:
        raise NotImplementedError

    async def list_mine(self, query: SessionQuery) -> SessionPage:
        raise NotImplementedError

    async def _settle(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
    )


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def session_service(session_repository: InMemorySessionRepository) -> SessionService:
    return SessionService(session_repository, clock=StepClock())


@pytest.fixture
def container(settings: Settings, session_service: SessionService) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        session_service=session_service,
        auth_service=AuthService(FakeTokenVerifier()),
        close_resources=close_resources,
    )
