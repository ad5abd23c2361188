"""Editing session state machine: source image, active result, history, and the in-flight edit."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from .ai.base import ImageEditor
from .errors import SessionBusyError, SnapCleanError
from .history import EditedImage, EditHistory
from .imaging import (
    ImageRef,
    extension_for_mime,
    mime_for_filename,
    read_image,
    resolve_mime_type,
    trigger_download,
)
from .instructions import Instruction

logger = logging.getLogger(__name__)

PROCESSING_MESSAGE = "Analyzing and editing image..."
FAILURE_NOTICE = "Failed to edit image. Please try again."
DOWNLOAD_PREFIX = "snapclean-edit"

Notifier = Callable[[str], None]
Downloader = Callable[[ImageRef, str], object]


class SessionStatus(str, Enum):
    IDLE = "idle"
    READY = "ready"
    PROCESSING = "processing"


@dataclass(frozen=True)
class ProcessingState:
    is_processing: bool = False
    message: str = ""


@dataclass
class SessionState:
    source: Optional[ImageRef] = None
    active_item: Optional[EditedImage] = None
    processing: ProcessingState = field(default_factory=ProcessingState)
    history: EditHistory = field(default_factory=EditHistory)
    draft: str = ""
    last_error: Optional[str] = None

    @property
    def status(self) -> SessionStatus:
        if self.processing.is_processing:
            return SessionStatus.PROCESSING
        if self.source is None:
            return SessionStatus.IDLE
        return SessionStatus.READY


@dataclass(frozen=True)
class DownloadTarget:
    image: ImageRef
    filename: str


class EditorSession:
    """Owns one user's editing state and serializes edit requests to a single in-flight task.

    All state changes happen synchronously on the event loop; the edit
    client's network call is the only suspension point, so no locking is
    needed. ``reset`` cancels an in-flight task and discards its outcome.
    """

    def __init__(
        self,
        editor: ImageEditor,
        notify: Optional[Notifier] = None,
        download_dir: Path | str = "downloads",
        timeout_seconds: float = 0.0,
    ) -> None:
        self._editor = editor
        self._notify = notify
        self._download_dir = Path(download_dir)
        self._timeout_seconds = max(0.0, float(timeout_seconds or 0.0))
        self._state = SessionState()
        self._inflight: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def pending(self) -> Optional[asyncio.Task]:
        return self._inflight

    def select_image(
        self,
        data: Union[bytes, bytearray, Path, str],
        mime_type: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> ImageRef:
        if self._state.processing.is_processing:
            raise SessionBusyError("An edit is in progress; wait for it to finish.")
        if isinstance(data, (str, Path)) and filename is None:
            filename = Path(data).name
        payload = read_image(data)
        declared = mime_type or (mime_for_filename(filename) if filename else None)
        source = ImageRef(
            data=payload,
            mime_type=resolve_mime_type(declared, payload),
            filename=filename,
        )
        self._state.source = source
        self._state.active_item = None
        self._state.last_error = None
        logger.info("Source image selected (%s, %d bytes)", source.mime_type, source.size)
        return source

    def set_draft(self, text: str) -> None:
        self._state.draft = text or ""

    def start_edit(
        self, instruction: Union[Instruction, str, None] = None
    ) -> Optional[asyncio.Task]:
        """Dispatches an edit as a task, or returns None when the session cannot accept one."""
        if self._state.processing.is_processing:
            logger.info("Edit ignored: another edit is in flight")
            return None
        source = self._state.source
        if source is None:
            logger.info("Edit ignored: no source image selected")
            return None
        resolved = Instruction.coerce(instruction if instruction is not None else self._state.draft)
        if resolved.is_blank:
            logger.info("Edit ignored: blank instruction")
            return None

        self._state.processing = ProcessingState(is_processing=True, message=PROCESSING_MESSAGE)
        self._state.last_error = None
        self._inflight = asyncio.get_running_loop().create_task(
            self._perform(resolved, source, self._generation)
        )
        return self._inflight

    async def run_edit(
        self, instruction: Union[Instruction, str, None] = None
    ) -> Optional[EditedImage]:
        task = self.start_edit(instruction)
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            # Re-raise when the caller itself was cancelled rather than the task.
            if not task.cancelled():
                raise
            return None

    async def _perform(
        self, instruction: Instruction, source: ImageRef, generation: int
    ) -> Optional[EditedImage]:
        try:
            edited = await self._request(source, instruction)
        except Exception as exc:
            if generation == self._generation:
                self._fail(exc)
            return None
        else:
            if generation != self._generation:
                logger.info("Discarding edit result from a reset session")
                return None
            entry = EditedImage.create(original=source, edited=edited, prompt=instruction.cleaned)
            self._state.history.append(entry)
            self._state.active_item = entry
            self._state.draft = ""
            logger.info("Edit %s complete: %r", entry.id, entry.prompt)
            return entry
        finally:
            if generation == self._generation:
                self._state.processing = ProcessingState()
                self._inflight = None

    async def _request(self, source: ImageRef, instruction: Instruction) -> ImageRef:
        call = self._editor.request_edit(source.data, source.mime_type, instruction.cleaned)
        if self._timeout_seconds > 0:
            return await asyncio.wait_for(call, timeout=self._timeout_seconds)
        return await call

    def _fail(self, exc: Exception) -> None:
        if isinstance(exc, (SnapCleanError, asyncio.TimeoutError)):
            logger.warning("Edit failed: %s", exc)
        else:
            logger.error("Unexpected edit failure: %s", exc, exc_info=exc)
        self._state.last_error = FAILURE_NOTICE
        if self._notify is not None:
            self._notify(FAILURE_NOTICE)

    def select_history_entry(self, entry_id: str) -> bool:
        if self._state.processing.is_processing:
            return False
        entry = self._state.history.get(entry_id)
        if entry is None:
            return False
        self._state.active_item = entry
        return True

    def download_target(self) -> Optional[DownloadTarget]:
        active = self._state.active_item
        image = active.edited if active is not None else self._state.source
        if image is None:
            return None
        stamp = int(time.time() * 1000)
        filename = f"{DOWNLOAD_PREFIX}-{stamp}{extension_for_mime(image.mime_type)}"
        return DownloadTarget(image=image, filename=filename)

    def download(self, downloader: Optional[Downloader] = None) -> Optional[ImageRef]:
        if self._state.processing.is_processing:
            return None
        target = self.download_target()
        if target is None:
            return None
        if downloader is None:
            trigger_download(target.image, target.filename, self._download_dir)
        else:
            downloader(target.image, target.filename)
        return target.image

    def reset(self) -> None:
        self._generation += 1
        if self._inflight is not None and not self._inflight.done():
            logger.info("Reset cancels the in-flight edit")
            self._inflight.cancel()
        self._inflight = None
        self._state.source = None
        self._state.active_item = None
        self._state.processing = ProcessingState()
        self._state.history.clear()
        self._state.draft = ""
        self._state.last_error = None


class SessionRegistry:
    """Holds one EditorSession per client session id, in memory only.

    Sessions idle for longer than ``idle_seconds`` are dropped on the next
    lookup, and the least recently used session is dropped once
    ``max_sessions`` is reached. Sessions with an edit in flight are never
    evicted for idleness.
    """

    def __init__(
        self,
        factory: Callable[[], EditorSession],
        max_sessions: int = 0,
        idle_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self._max_sessions = max(0, int(max_sessions))
        self._idle_seconds = max(0.0, float(idle_seconds))
        self._clock = clock
        self._sessions: dict[str, EditorSession] = {}
        self._touched: dict[str, float] = {}

    def get(self, session_id: str) -> EditorSession:
        now = self._clock()
        self.evict_idle(now)
        session = self._sessions.get(session_id)
        if session is None:
            if self._max_sessions and len(self._sessions) >= self._max_sessions:
                oldest = min(self._touched, key=self._touched.__getitem__)
                logger.info("Session limit reached; dropping %s", oldest)
                self.discard(oldest)
            session = self._factory()
            self._sessions[session_id] = session
        self._touched[session_id] = now
        return session

    def evict_idle(self, now: Optional[float] = None) -> int:
        if not self._idle_seconds:
            return 0
        cutoff = (self._clock() if now is None else now) - self._idle_seconds
        stale = [
            session_id
            for session_id, touched in self._touched.items()
            if touched < cutoff and not self._sessions[session_id].state.processing.is_processing
        ]
        for session_id in stale:
            self.discard(session_id)
        if stale:
            logger.info("Dropped %d idle session(s)", len(stale))
        return len(stale)

    def discard(self, session_id: str) -> None:
        self._touched.pop(session_id, None)
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.reset()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
