"""Client-side auto-save coordination for a session being edited.

The coordinator owns the timing policy for persisting an in-progress edit:

- every edit re-arms a trailing-edge debounce timer;
- an independent periodic timer saves whatever the debounce keeps deferring;
- a suspend signal fires one detached best-effort flush;
- ``force_save`` persists every pending change right away;
- ``save_draft`` and ``publish`` back the editor's explicit buttons and send
  the whole document with its status.

The auto-save channel only ever sends the fields in ``AUTOSAVE_KEYS``. Changes
to any other field stay dirty until an explicit save sends them.

Dispatches are serialized. A trigger that arrives while a save is in flight
does not start a second request; the debounce is re-armed once the in-flight
save settles so the newest snapshot always goes out after the older one.
"""

import asyncio
import copy
import hashlib
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from types import TracebackType
from typing import Protocol

from wellness_sessions.config import ClientSettings
from wellness_sessions.domain.sessions import (
    SessionPage,
    SessionQuery,
    SessionRecord,
    SessionStatus,
)
from wellness_sessions.errors import AuthorizationError, SessionValidationError

logger = logging.getLogger(__name__)

# Keys of the editor document the auto-save channel is allowed to send.
AUTOSAVE_KEYS = ("title", "description", "content", "tags", "jsonUrl")
FULL_SAVE_KEYS = (*AUTOSAVE_KEYS, "category", "difficulty", "duration", "status")

CREATE_DEFAULTS: dict[str, object] = {
    "category": "meditation",
    "difficulty": "beginner",
    "duration": 30,
    "status": "draft",
}

MIN_INTERVAL_SECONDS = 5.0
MAX_INTERVAL_SECONDS = 30.0


class DocumentStore(Protocol):
    """Session store operations consumed by editing clients."""

    async def create(self, fields: dict[str, object]) -> SessionRecord:
        """Create a session and return it with its assigned id."""

    async def partial_update(
        self, session_id: str, fields: dict[str, object]
    ) -> datetime:
        """Auto-save a subset of fields and return the server save time."""

    async def full_update(
        self, session_id: str, fields: dict[str, object]
    ) -> SessionRecord:
        """Replace session fields from an explicit save."""

    async def publish(self, session_id: str) -> SessionRecord:
        """Publish a session."""

    async def delete(self, session_id: str) -> None:
        """Delete a session."""

    async def get(self, session_id: str) -> SessionRecord:
        """Fetch a session."""

    async def list(self, query: SessionQuery) -> SessionPage:
        """List published sessions matching a query."""

    async def list_mine(self, query: SessionQuery) -> SessionPage:
        """List the caller's own sessions."""


class AutoSaveState(StrEnum):
    """Auto-save lifecycle shown by the editor."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


@dataclass(frozen=True)
class AutoSaveStatus:
    """Snapshot of the coordinator status."""

    state: AutoSaveState = AutoSaveState.IDLE
    last_saved: datetime | None = None
    error: str | None = None


@dataclass(frozen=True)
class AutoSavePolicy:
    """Timing policy, in seconds."""

    debounce_seconds: float = 5.0
    interval_seconds: float = 30.0
    saved_display_seconds: float = 2.0
    error_cooldown_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "AutoSavePolicy":
        """Build a policy from settings, keeping the interval within 5-30s."""
        interval = min(
            max(settings.autosave_interval_seconds, MIN_INTERVAL_SECONDS),
            MAX_INTERVAL_SECONDS,
        )
        return cls(
            debounce_seconds=settings.autosave_debounce_seconds,
            interval_seconds=interval,
            saved_display_seconds=settings.autosave_saved_display_seconds,
            error_cooldown_seconds=settings.autosave_error_cooldown_seconds,
        )


def fingerprint(document: Mapping[str, object]) -> str:
    """Return a deterministic digest of a document's content."""
    encoded = json.dumps(
        document, sort_keys=True, separators=(",", ":"), default=str
    ).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def has_title(document: Mapping[str, object]) -> bool:
    title = document.get("title")
    return isinstance(title, str) and bool(title.strip())


def create_payload(document: Mapping[str, object]) -> dict[str, object]:
    """Normalize an editor document for the first create call."""
    payload: dict[str, object] = {
        "title": document.get("title"),
        "description": document.get("description") or "",
        "tags": list(document.get("tags") or []),
    }
    content = document.get("content")
    payload["content"] = {} if content is None else content
    for key, default in CREATE_DEFAULTS.items():
        value = document.get(key)
        payload[key] = default if value is None or value == "" else value
    json_url = document.get("jsonUrl")
    if isinstance(json_url, str) and json_url.strip():
        payload["jsonUrl"] = json_url.strip()
    return payload


def autosave_payload(document: Mapping[str, object]) -> dict[str, object]:
    """Select the fields the auto-save channel may touch."""
    return {key: document[key] for key in AUTOSAVE_KEYS if key in document}


def full_payload(document: Mapping[str, object]) -> dict[str, object]:
    """Select the fields an explicit save sends as a full update."""
    return {key: document[key] for key in FULL_SAVE_KEYS if key in document}


def _metadata(document: Mapping[str, object]) -> dict[str, object]:
    return {key: value for key, value in document.items() if key not in AUTOSAVE_KEYS}


class _Timer:
    """Coordinator-owned timer backed by an asyncio task.

    The callback is synchronous so that cancelling or re-arming the timer can
    never interrupt work the callback started.
    """

    def __init__(
        self, delay: float, callback: Callable[[], None], *, repeat: bool = False
    ) -> None:
        self.delay = delay
        self.callback = callback
        self.repeat = repeat
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, delay: float | None = None) -> None:
        if self.active:
            return
        wait = self.delay if delay is None else delay
        self._task = asyncio.get_running_loop().create_task(self._run(wait))

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def reset(self, delay: float | None = None) -> None:
        self.cancel()
        self.start(delay)

    async def _run(self, delay: float) -> None:
        while True:
            await asyncio.sleep(delay)
            if not self.repeat:
                self._task = None
                self.callback()
                return
            self.callback()


class AutoSaveCoordinator:
    """Keeps a document store converging on the latest edit of one session."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        document: Mapping[str, object] | None = None,
        remote_id: str | None = None,
        policy: AutoSavePolicy | None = None,
        on_status: Callable[[AutoSaveStatus], None] | None = None,
    ) -> None:
        self.store = store
        self.policy = policy or AutoSavePolicy()
        self.pending_document: dict[str, object] = dict(document or {})
        self.remote_id = remote_id
        # Auto-save fields and the remaining metadata are persisted separately.
        self.last_persisted_fingerprint: str | None = None
        self.last_persisted_metadata_fingerprint: str | None = None
        if remote_id is not None:
            self._mark_persisted(self.pending_document, metadata=True)
        self._on_status = on_status
        self._status = AutoSaveStatus()
        self._debounce = _Timer(self.policy.debounce_seconds, self._on_debounce)
        self._periodic = _Timer(
            self.policy.interval_seconds, self._on_interval, repeat=True
        )
        self._status_reset = _Timer(0, self._return_to_idle)
        self._inflight: asyncio.Task[None] | None = None
        self._resave_requested = False
        self._deferred = False
        self._halted = False
        self._closed = False
        self._detached: set[asyncio.Task[None]] = set()

    @property
    def status(self) -> AutoSaveStatus:
        return self._status

    @property
    def is_dirty(self) -> bool:
        """Whether any field differs from what the store last acknowledged."""
        return self._autosave_dirty(self.pending_document) or self._metadata_dirty(
            self.pending_document
        )

    @property
    def is_saving(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> None:
        """Arm the periodic safety-net timer."""
        if self._closed:
            raise RuntimeError("Coordinator has been closed")
        self._periodic.start()

    def close(self) -> None:
        """Cancel every timer; results of in-flight saves are ignored."""
        self._closed = True
        self._debounce.cancel()
        self._periodic.cancel()
        self._status_reset.cancel()

    async def __aenter__(self) -> "AutoSaveCoordinator":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def on_edit(self, delta: Mapping[str, object]) -> None:
        """Merge a field-level edit and re-arm the debounce timer."""
        self.pending_document.update(delta)
        if self._closed or self._halted:
            return
        self._debounce.reset()

    async def on_periodic_tick(self) -> None:
        """Save if the document changed and nothing else is in progress."""
        if not self._tick_due():
            return
        task = self._dispatch()
        if task is not None:
            await asyncio.shield(task)

    def on_suspend(self) -> None:
        """Tear down and fire one detached best-effort flush, without waiting."""
        self.close()
        if self._halted or not has_title(self.pending_document):
            return
        if not self._needs_save(self.pending_document, full=False):
            return
        snapshot = copy.deepcopy(self.pending_document)
        task = asyncio.get_running_loop().create_task(self._flush(snapshot))
        self._detached.add(task)
        task.add_done_callback(self._detached.discard)

    async def force_save(self) -> AutoSaveStatus:
        """Persist every pending change now, after any save already in flight.

        Metadata changes go out as a full update; otherwise the auto-save
        channel is used.
        """
        return await self._explicit_save(None)

    async def save_draft(self) -> AutoSaveStatus:
        """Send the whole document as a draft."""
        return await self._explicit_save(SessionStatus.DRAFT)

    async def publish(self) -> AutoSaveStatus:
        """Send the whole document and mark the session published."""
        return await self._explicit_save(SessionStatus.PUBLISHED)

    async def _explicit_save(self, status: SessionStatus | None) -> AutoSaveStatus:
        self._debounce.cancel()
        if self._closed or self._halted:
            return self._status
        while self._inflight is not None and not self._inflight.done():
            await asyncio.shield(self._inflight)
        self._debounce.cancel()
        self._deferred = False
        task = self._dispatch(status, full=True)
        if task is not None:
            await asyncio.shield(task)
        return self._status

    def _on_debounce(self) -> None:
        if self._status.state == AutoSaveState.ERROR:
            self._deferred = True
            return
        self._dispatch()

    def _on_interval(self) -> None:
        if self._tick_due():
            self._dispatch()

    def _tick_due(self) -> bool:
        if self._closed or self._halted or self.is_saving:
            return False
        if self._status.state == AutoSaveState.ERROR:
            return False
        return self._needs_save(self.pending_document, full=False)

    def _autosave_dirty(self, document: Mapping[str, object]) -> bool:
        return (
            fingerprint(autosave_payload(document)) != self.last_persisted_fingerprint
        )

    def _metadata_dirty(self, document: Mapping[str, object]) -> bool:
        return (
            fingerprint(_metadata(document))
            != self.last_persisted_metadata_fingerprint
        )

    def _needs_save(self, document: Mapping[str, object], *, full: bool) -> bool:
        if self.remote_id is None or self._autosave_dirty(document):
            return True
        return full and self._metadata_dirty(document)

    def _mark_persisted(
        self, document: Mapping[str, object], *, metadata: bool
    ) -> None:
        self.last_persisted_fingerprint = fingerprint(autosave_payload(document))
        if metadata:
            self.last_persisted_metadata_fingerprint = fingerprint(
                _metadata(document)
            )

    def _dispatch(
        self, status: SessionStatus | None = None, *, full: bool = False
    ) -> asyncio.Task[None] | None:
        if self.is_saving:
            self._resave_requested = True
            return None
        self._resave_requested = False
        self._inflight = asyncio.get_running_loop().create_task(
            self._save(status, full=full)
        )
        return self._inflight

    async def _save(self, status: SessionStatus | None, *, full: bool) -> None:
        if self._closed or self._halted:
            return
        snapshot = copy.deepcopy(self.pending_document)
        if not has_title(snapshot):
            if status is not None:
                self._fail("Title is required", halt=False)
            return
        if status is not None:
            snapshot["status"] = status.value
        elif not self._needs_save(snapshot, full=full):
            return
        full_update = status is not None or (full and self._metadata_dirty(snapshot))

        self._status_reset.cancel()
        self._set_status(
            AutoSaveStatus(AutoSaveState.SAVING, last_saved=self._status.last_saved)
        )
        try:
            last_saved, sent_all = await self._persist(snapshot, full_update)
        except SessionValidationError as exc:
            self._fail(str(exc), halt=False)
        except AuthorizationError as exc:
            self._fail(str(exc), halt=True)
        except Exception as exc:  # noqa: BLE001
            self._fail(str(exc) or "Auto-save failed", halt=False)
        else:
            if self._closed:
                return
            if status is not None:
                self.pending_document["status"] = status.value
            self._mark_persisted(snapshot, metadata=sent_all)
            self._set_status(
                AutoSaveStatus(AutoSaveState.SAVED, last_saved=last_saved)
            )
            self._status_reset.reset(self.policy.saved_display_seconds)
        if self._resave_requested and not self._closed:
            if self._status.state == AutoSaveState.ERROR:
                self._deferred = True
            elif self._needs_save(self.pending_document, full=False):
                self._debounce.reset()
        self._resave_requested = False

    async def _persist(
        self, snapshot: dict[str, object], full_update: bool
    ) -> tuple[datetime, bool]:
        """Send a snapshot; report whether every field reached the store."""
        if self.remote_id is None:
            created = await self.store.create(create_payload(snapshot))
            self.remote_id = str(created.id)
            logger.debug("Created remote session %s", self.remote_id)
            return created.last_saved, True
        if full_update:
            updated = await self.store.full_update(
                self.remote_id, full_payload(snapshot)
            )
            return updated.last_saved, True
        last_saved = await self.store.partial_update(
            self.remote_id, autosave_payload(snapshot)
        )
        return last_saved, False

    async def _flush(self, snapshot: dict[str, object]) -> None:
        if self._inflight is not None and not self._inflight.done():
            await asyncio.shield(self._inflight)
        if not self._needs_save(snapshot, full=False):
            return
        try:
            await self._persist(snapshot, full_update=False)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Best-effort flush failed: %s", exc)

    def _fail(self, message: str, *, halt: bool) -> None:
        if self._closed:
            return
        self._set_status(
            AutoSaveStatus(
                AutoSaveState.ERROR,
                last_saved=self._status.last_saved,
                error=message,
            )
        )
        if halt:
            self._halted = True
            self.close()
            return
        self._status_reset.reset(self.policy.error_cooldown_seconds)

    def _return_to_idle(self) -> None:
        if self._status.state not in {AutoSaveState.SAVED, AutoSaveState.ERROR}:
            return
        was_error = self._status.state == AutoSaveState.ERROR
        self._set_status(
            AutoSaveStatus(AutoSaveState.IDLE, last_saved=self._status.last_saved)
        )
        if was_error and self._deferred:
            self._deferred = False
            self._debounce.start()

    def _set_status(self, status: AutoSaveStatus) -> None:
        self._status = status
        if self._on_status is not None:
            self._on_status(status)
