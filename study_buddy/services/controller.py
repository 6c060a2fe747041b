"""Session controller: the single entry point for the presentation layer.

Owns at most one recording session at a time. The UI calls the async
operations below, listens on ``on_change`` and re-reads ``snapshot()``;
it never touches session fields directly.

Usage::

    controller = SessionController(device, orchestrator, on_change=render)
    await controller.start()
    await controller.pause()
    await controller.resume()
    await controller.stop()
    result = await controller.begin_upload("Math 101", "Derivatives")
    await controller.aclose()
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

from study_buddy.core.config import Settings, get_settings
from study_buddy.core.exceptions import (
    CommitInProgressError,
    InvalidTransitionError,
    NoActiveCaptureError,
    StudyBuddyError,
)
from study_buddy.core.models import (
    CaptureConfig,
    CaptureResult,
    SessionSnapshot,
    SessionState,
    UploadResult,
)
from study_buddy.core.naming import format_duration
from study_buddy.services.capture.base import BaseCaptureDevice
from study_buddy.services.recording.session import RecordingSession, RecordingStateMachine
from study_buddy.services.upload import UploadJob, UploadOrchestrator

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    SessionState.idle: "Ready to Record",
    SessionState.recording: "Recording...",
    SessionState.paused: "Recording paused",
    SessionState.stopped: "Recording complete",
    SessionState.uploading: "Uploading recording...",
    SessionState.terminal: "Ready to Record",
}

# States in which the elapsed time is still shown
_TIMED_STATES = (
    SessionState.recording,
    SessionState.paused,
    SessionState.stopped,
    SessionState.uploading,
)


class SessionController:
    """Glues the recording state machine to the upload orchestrator.

    Args:
        device: Capture device collaborator.
        orchestrator: Commits stopped recordings.
        settings: Overrides ``get_settings()``.
        clock: Wall-clock source shared with the state machine.
        on_change: Called with a fresh snapshot after every transition/tick.
    """

    def __init__(
        self,
        device: BaseCaptureDevice,
        orchestrator: UploadOrchestrator,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = datetime.now,
        on_change: Callable[[SessionSnapshot], None] | None = None,
    ) -> None:
        self._device = device
        self._orchestrator = orchestrator
        self._settings = settings or get_settings()
        self._clock = clock
        self._on_change = on_change
        self._lock = asyncio.Lock()
        self._machine: RecordingStateMachine | None = None
        self._committing = False
        self._last_error: str | None = None
        self.last_result: UploadResult | None = None

    # -- observation --

    @property
    def session(self) -> RecordingSession | None:
        return self._machine.session if self._machine is not None else None

    def current_state(self) -> SessionState:
        if self._machine is None:
            return SessionState.idle
        return self._machine.state

    def elapsed_active(self) -> timedelta:
        if self._machine is None or self.current_state() not in _TIMED_STATES:
            return timedelta(0)
        return self._machine.elapsed_active()

    def snapshot(self) -> SessionSnapshot:
        state = self.current_state()
        elapsed = self.elapsed_active()
        offer = state is SessionState.stopped and not self._committing
        return SessionSnapshot(
            state=state,
            session_id=self.session.id if self.session is not None else None,
            elapsed_seconds=elapsed.total_seconds(),
            duration_label=format_duration(elapsed),
            status_label=STATUS_LABELS[state],
            can_upload=offer,
            can_discard=offer,
            last_error=self._last_error,
        )

    @staticmethod
    def can_start(class_name: str, topic: str) -> bool:
        """Recording is only offered once both labels are filled in."""
        return bool(class_name.strip()) and bool(topic.strip())

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.snapshot())
        except Exception:
            logger.warning("on_change callback failed (non-fatal)", exc_info=True)

    # -- capture --

    def _new_machine(self) -> RecordingStateMachine:
        s = self._settings
        config = CaptureConfig(
            sample_rate=s.audio_sample_rate,
            bit_rate=s.audio_bit_rate,
            channels=s.audio_channels,
            extension=s.audio_extension,
        )
        return RecordingStateMachine(
            self._device,
            config,
            Path(s.recordings_dir),
            clock=self._clock,
            tick_interval=s.tick_interval,
            on_tick=lambda _elapsed: self._notify(),
        )

    async def start(self) -> RecordingSession:
        """Start a new session. Valid when idle or after the last one finished."""
        async with self._lock:
            state = self.current_state()
            if state not in (SessionState.idle, SessionState.terminal):
                raise InvalidTransitionError("start", state.value)

            machine = self._new_machine()
            try:
                session = await machine.start()
            except StudyBuddyError as exc:
                self._last_error = exc.detail
                self._notify()
                raise

            self._machine = machine
            self._last_error = None
            self.last_result = None
        self._notify()
        return session

    async def pause(self) -> None:
        async with self._lock:
            if self._machine is None:
                raise InvalidTransitionError("pause", SessionState.idle.value)
            await self._machine.pause()
        self._notify()

    async def resume(self) -> None:
        async with self._lock:
            if self._machine is None:
                raise InvalidTransitionError("resume", SessionState.idle.value)
            await self._machine.resume()
        self._notify()

    async def stop(self) -> CaptureResult:
        async with self._lock:
            if self._machine is None:
                raise NoActiveCaptureError()
            result = await self._machine.stop()
        self._notify()
        return result

    # -- upload / discard --

    def _stopped_session(self, operation: str) -> RecordingSession:
        session = self.session
        if self._committing and session is not None:
            raise CommitInProgressError(session.id)
        if session is None or session.state is not SessionState.stopped:
            raise InvalidTransitionError(operation, self.current_state().value)
        return session

    async def begin_upload(self, class_name: str, topic: str) -> UploadResult:
        """Commit the stopped recording under the given labels.

        On a fatal failure the session returns to Stopped with the local
        file intact, so the user can retry or discard.

        Raises:
            CommitInProgressError: If an upload is already running.
            InvalidTransitionError: If there is no stopped recording.
        """
        async with self._lock:
            session = self._stopped_session("upload")
            job = UploadJob.create(
                session,
                class_name,
                topic,
                created_at=self._clock(),
                extension=self._settings.audio_extension,
            )
            self._committing = True
            self._last_error = None
            session.state = SessionState.uploading
        self._notify()

        try:
            result = await self._orchestrator.commit(job)
        except StudyBuddyError as exc:
            self._last_error = exc.detail
            logger.warning("Upload of session %s failed: %s", session.id, exc.detail)
            raise
        else:
            session.state = SessionState.terminal
            if result.artifact_deleted:
                session.local_artifact_path = None
            self.last_result = result
            return result
        finally:
            self._committing = False
            if session.state is SessionState.uploading:
                session.state = SessionState.stopped
            self._notify()

    async def discard(self) -> None:
        """Delete the stopped recording without uploading it."""
        async with self._lock:
            session = self._stopped_session("discard")
            path = session.local_artifact_path
            if path is not None:
                try:
                    await asyncio.to_thread(path.unlink, missing_ok=True)
                except OSError:
                    logger.warning("Could not delete discarded recording %s", path, exc_info=True)
            session.local_artifact_path = None
            session.state = SessionState.terminal
            logger.info("Session %s discarded", session.id)
        self._notify()

    # -- teardown --

    async def aclose(self) -> None:
        """Stop the display tick and release the capture device.

        A live capture is stopped so the device flushes its file. The
        recording is left Stopped and can still be uploaded or discarded.
        """
        async with self._lock:
            machine = self._machine
            if machine is None:
                return
            machine.ticker.cancel()
            if machine.state not in (SessionState.recording, SessionState.paused):
                return
            try:
                await machine.stop()
            except StudyBuddyError as exc:
                machine.ticker.cancel()
                logger.warning("Could not stop capture on close (non-fatal): %s", exc.detail)
                return
        self._notify()
