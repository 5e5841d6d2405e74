"""
Sync Engine - keeps one client's copy of a session document in step with the store.

Remote snapshots arrive through the gateway subscription and are queued as
events for a single reducer task. Local edits change the in-memory state at
once and are persisted by a debounced, last-write-wins save. A snapshot that
was just applied from the store is never saved straight back (echo suppression).
The echo of one of our own earlier saves never overwrites edits made after it.
"""

import asyncio
import contextlib
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from pydantic import ValidationError

from ..config import settings
from ..models import DayLog, SessionState
from ..storage.interface import Document, DocumentGateway, Unsubscribe
from ..storage.sanitize import sanitize
from . import day_log
from .errors import ErrorKind
from .logging_config import LoggerAdapter

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    LOADING = "loading"
    SYNCED = "synced"
    SAVING = "saving"
    NOT_FOUND = "not_found"
    ERRORED = "errored"


TERMINAL_STATUSES = {SyncStatus.NOT_FOUND, SyncStatus.ERRORED}

# Documents of recent saves whose echo may still arrive
SENT_HISTORY = 8


@dataclass
class SnapshotEvent:
    document: Document


@dataclass
class ErrorEvent:
    kind: ErrorKind


SyncEvent = Union[SnapshotEvent, ErrorEvent]
Listener = Callable[["SyncEngine"], None]


class SyncEngine:
    """
    Owns the in-memory session state for one active session view.

    Usage:
        async with SyncEngine(gateway, "SARAH-42") as engine:
            await engine.wait_ready()
            engine.toggle_task(engine.current_date(0), key)
    """

    def __init__(
        self,
        gateway: DocumentGateway,
        session_id: str,
        debounce_seconds: Optional[float] = None,
        notice_seconds: Optional[float] = None,
    ):
        """
        Args:
            gateway: Remote document gateway
            session_id: Session to sync
            debounce_seconds: Quiet period after the last local edit before saving
                (default: settings.sync_debounce_seconds)
            notice_seconds: How long the "update received" notice stays up
                (default: settings.sync_notice_seconds)
        """
        self.gateway = gateway
        self.session_id = session_id
        self.debounce_seconds = settings.sync_debounce_seconds if debounce_seconds is None else debounce_seconds
        self.notice_seconds = settings.sync_notice_seconds if notice_seconds is None else notice_seconds

        self.state: Optional[SessionState] = None
        self.status = SyncStatus.LOADING
        self.error_kind: Optional[ErrorKind] = None
        self.update_notice = False

        self._echo_pending = False
        self._sent: deque = deque(maxlen=SENT_HISTORY)
        self._save_timer: Optional[asyncio.TimerHandle] = None
        self._notice_timer: Optional[asyncio.TimerHandle] = None
        self._saves: Set[asyncio.Task] = set()
        self._events: Optional[asyncio.Queue] = None
        self._reducer: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Unsubscribe] = None
        self._ready: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started = False
        self._closed = False
        self._listeners: List[Listener] = []
        self.log = LoggerAdapter(logger, {"session_id": session_id})

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to the session document. Status stays LOADING until the first event."""
        if self._started:
            raise RuntimeError(f"Sync engine for {self.session_id} already started")
        self._started = True
        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        self._ready = asyncio.Event()
        self._reducer = self._loop.create_task(self._run())
        self._unsubscribe = self.gateway.subscribe(self.session_id, self._on_change, self._on_error)
        self.log.info(f"Sync started for session {self.session_id}")

    async def stop(self) -> None:
        """
        Tear down the subscription and pending timers. Idempotent.

        A save already sent to the store is left to finish on its own.
        """
        if self._closed:
            return
        self._closed = True

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_save_timer()
        if self._notice_timer is not None:
            self._notice_timer.cancel()
            self._notice_timer = None

        if self._reducer is not None:
            self._reducer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reducer
            self._reducer = None
        if self._ready is not None:
            self._ready.set()
        self.log.info(f"Sync stopped for session {self.session_id}")

    async def __aenter__(self) -> "SyncEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def wait_ready(self) -> None:
        """Wait until the first snapshot or error has been handled."""
        if self._ready is None:
            raise RuntimeError("Sync engine not started")
        await self._ready.wait()

    async def wait_idle(self) -> None:
        """Wait for saves currently in flight."""
        while self._saves:
            await asyncio.gather(*list(self._saves))

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback run after every visible change. Returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    @property
    def is_saving(self) -> bool:
        return self.status == SyncStatus.SAVING

    @property
    def save_pending(self) -> bool:
        return self._save_timer is not None

    # ------------------------------------------------------------------
    # Remote events
    # ------------------------------------------------------------------

    def _on_change(self, document: Document) -> None:
        if not self._closed:
            self._events.put_nowait(SnapshotEvent(document))

    def _on_error(self, kind: ErrorKind) -> None:
        if not self._closed:
            self._events.put_nowait(ErrorEvent(kind))

    async def _run(self) -> None:
        while True:
            event = await self._events.get()
            self._apply(event)

    def _apply(self, event: SyncEvent) -> None:
        if self._closed or self.status in TERMINAL_STATUSES:
            return

        if isinstance(event, ErrorEvent):
            self._fail(event.kind)
            return

        try:
            incoming = SessionState.model_validate(event.document)
        except ValidationError as e:
            self.log.error(f"Received malformed session document: {e}")
            self._fail(ErrorKind.UNKNOWN)
            return

        if self.state is None:
            self.state = incoming
            self.status = SyncStatus.SYNCED
            self._ready.set()
            self.log.info("Session loaded")
            self._notify()
            return

        document = incoming.to_document()
        if document == self.state.to_document():
            self._is_own_echo(document)
            return
        if self._is_own_echo(document):
            # Our earlier save landed; local edits made since then still stand
            self.log.debug("Ignored echo of an earlier save")
            return

        self._echo_pending = True
        self.state = incoming
        self._show_notice()
        self._schedule_save()
        self.log.debug("Applied remote update")
        self._notify()

    def _is_own_echo(self, document: Document) -> bool:
        """Drop sent documents up to and including ``document``; True if it was one of them."""
        for index, sent in enumerate(self._sent):
            if sent == document:
                for _ in range(index + 1):
                    self._sent.popleft()
                return True
        return False

    def _fail(self, kind: ErrorKind) -> None:
        self._cancel_save_timer()
        if kind == ErrorKind.NOT_FOUND:
            self.status = SyncStatus.NOT_FOUND
            self.log.warning("Session not found or deleted")
        else:
            self.status = SyncStatus.ERRORED
            self.error_kind = kind
            self.log.error(f"Sync error: {kind.value}")
        self._ready.set()
        self._notify()

    def _show_notice(self) -> None:
        self.update_notice = True
        if self._notice_timer is not None:
            self._notice_timer.cancel()
        self._notice_timer = self._loop.call_later(self.notice_seconds, self._clear_notice)

    def _clear_notice(self) -> None:
        self._notice_timer = None
        self.update_notice = False
        self._notify()

    # ------------------------------------------------------------------
    # Debounced save
    # ------------------------------------------------------------------

    def _cancel_save_timer(self) -> None:
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None

    def _schedule_save(self) -> None:
        self._cancel_save_timer()
        self._save_timer = self._loop.call_later(self.debounce_seconds, self._fire_save)

    def _fire_save(self) -> None:
        self._save_timer = None
        if self._closed or self.status in TERMINAL_STATUSES:
            return
        if self._echo_pending:
            # Latest change came from the store; nothing of ours to send
            self._echo_pending = False
            self.log.debug("Skipped save of remote update")
            return

        task = self._loop.create_task(self._save(self.state))
        self._saves.add(task)
        task.add_done_callback(self._saves.discard)

    async def _save(self, snapshot: SessionState) -> None:
        sent = snapshot.to_document()
        self._sent.append(sent)
        self.status = SyncStatus.SAVING
        self._notify()
        try:
            await self.gateway.set_merged(self.session_id, sanitize(snapshot))
            self.log.debug("Session saved")
        except Exception as e:
            if sent in self._sent:
                self._sent.remove(sent)
            # Local state stays authoritative; the next edit resubmits it
            self.log.error(f"Save failed: {e}", exc_info=True)
        finally:
            others_in_flight = any(task is not asyncio.current_task() for task in self._saves)
            if not self._closed and self.status == SyncStatus.SAVING and not others_in_flight:
                self.status = SyncStatus.SYNCED
                self._notify()

    # ------------------------------------------------------------------
    # Local edits
    # ------------------------------------------------------------------

    def current_date(self, day_index: int) -> str:
        self._require_loaded()
        return day_log.resolve_current_date(self.state, day_index)

    def current_log(self, date_str: str) -> DayLog:
        self._require_loaded()
        return day_log.get_or_default_log(self.state, date_str)

    def _require_loaded(self) -> None:
        if self.state is None:
            raise RuntimeError(f"Session {self.session_id} is not loaded")

    def update_log(self, date_str: str, change: Callable[[DayLog], DayLog]) -> DayLog:
        """
        Apply a local edit to the log for ``date_str`` and schedule a save.

        Returns:
            DayLog: The updated log
        """
        self._require_loaded()
        if self._closed or self.status in TERMINAL_STATUSES:
            raise RuntimeError(f"Session {self.session_id} is no longer editable")

        log = change(day_log.get_or_default_log(self.state, date_str))
        self.state = day_log.with_log(self.state, log)
        self._echo_pending = False
        self._schedule_save()
        self._notify()
        return log

    def toggle_task(self, date_str: str, key: str) -> DayLog:
        return self.update_log(date_str, lambda log: day_log.toggle_task(log, key))

    def complete_all_in_slot(self, date_str: str, slot_id: str) -> DayLog:
        dogs = self.state.dogs if self.state is not None else []
        return self.update_log(date_str, lambda log: day_log.complete_all_in_slot(log, slot_id, dogs))

    def set_comment(self, date_str: str, dog_name: str, text: str) -> DayLog:
        return self.update_log(date_str, lambda log: day_log.set_comment(log, dog_name, text))

    def add_photos(self, date_str: str, photos: Iterable[str]) -> DayLog:
        photos = list(photos)
        return self.update_log(date_str, lambda log: day_log.add_photos(log, photos))

    def remove_photo(self, date_str: str, index: int) -> DayLog:
        return self.update_log(date_str, lambda log: day_log.remove_photo(log, index))

    def set_ai_summary(self, date_str: str, text: Optional[str]) -> DayLog:
        return self.update_log(date_str, lambda log: day_log.set_ai_summary(log, text))

    async def generate_summary(self, date_str: str, summarizer: Any) -> Optional[str]:
        """
        Generate the AI summary for a day and store it on the log.

        The result is dropped if the engine was stopped while waiting.
        """
        self._require_loaded()
        log = day_log.get_or_default_log(self.state, date_str)
        text = await summarizer.generate(self.state, log)
        if self._closed or self.status in TERMINAL_STATUSES:
            return None
        self.set_ai_summary(date_str, text)
        return text

    async def delete_session(self) -> None:
        """Delete the session document and stop syncing."""
        self._cancel_save_timer()
        await self.gateway.delete(self.session_id)
        await self.stop()

    def snapshot(self) -> Dict[str, Any]:
        """View-facing summary of the engine's state."""
        return {
            "session_id": self.session_id,
            "status": self.status.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "update_notice": self.update_notice,
            "save_pending": self.save_pending,
        }

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                self.log.error(f"Sync listener failed: {e}", exc_info=True)
