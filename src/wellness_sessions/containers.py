"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from wellness_sessions.adapters.session_store_client import HttpxSessionStoreClient
from wellness_sessions.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from wellness_sessions.adapters.supabase_token_verifier import SupabaseTokenVerifier
from wellness_sessions.config import ClientSettings, Settings
from wellness_sessions.services.auth import AuthService
from wellness_sessions.services.autosave import (
    AutoSaveCoordinator,
    AutoSavePolicy,
    AutoSaveStatus,
)
from wellness_sessions.services.sessions import SessionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_service: SessionService
    auth_service: AuthService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(
        supabase_client, table_name=resolved_settings.sessions_table
    )
    session_service = SessionService(session_repository)
    auth_service = AuthService(SupabaseTokenVerifier(supabase_client))

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        session_service=session_service,
        auth_service=auth_service,
        close_resources=close_resources,
    )


@dataclass
class EditorContainer:
    """Dependencies of one editing client talking to the API."""

    store: HttpxSessionStoreClient
    policy: AutoSavePolicy

    def open_editor(
        self,
        document: dict[str, object] | None = None,
        remote_id: str | None = None,
        on_status: Callable[[AutoSaveStatus], None] | None = None,
    ) -> AutoSaveCoordinator:
        """Create a coordinator for one editing session."""
        return AutoSaveCoordinator(
            self.store,
            document=document,
            remote_id=remote_id,
            policy=self.policy,
            on_status=on_status,
        )

    async def close(self) -> None:
        await self.store.close()


def build_editor_container(
    access_token: str, settings: ClientSettings | None = None
) -> EditorContainer:
    """Create the client-side container for an authenticated author."""
    resolved_settings = settings or ClientSettings()
    store = HttpxSessionStoreClient.connect(
        resolved_settings.api_base_url,
        access_token,
        timeout=resolved_settings.http_timeout_seconds,
    )
    return EditorContainer(
        store=store, policy=AutoSavePolicy.from_settings(resolved_settings)
    )
