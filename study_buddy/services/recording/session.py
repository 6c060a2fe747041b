"""Recording session state machine.

Tracks one capture from start to stop: ``Idle -> Recording <-> Paused ->
Stopped``. Elapsed active time is derived from the wall clock rather than
counted from ticks, so a missed tick (app in background, slow loop) never
skews the reported duration:

    elapsed = now - started_at - paused_accumulated - (open pause, if any)

The session value is clamped to stay >= 0. The machine also keeps the
highest value it has shown (on ticks and transitions) and never reports
less, which absorbs small backwards clock adjustments.

Usage::

    machine = RecordingStateMachine(device, config, Path("data/recordings"))
    await machine.start()
    await machine.pause()
    await machine.resume()
    result = await machine.stop()   # CaptureResult(path, duration=elapsed)
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from study_buddy.core.exceptions import (
    DeviceUnavailableError,
    InvalidTransitionError,
    NoActiveCaptureError,
)
from study_buddy.core.models import CaptureConfig, CaptureResult, SessionState
from study_buddy.services.capture.base import BaseCaptureDevice
from study_buddy.services.recording.ticker import ElapsedTicker

logger = logging.getLogger(__name__)

ZERO = timedelta(0)


@dataclass
class RecordingSession:
    """Mutable state of one recording-to-upload lifecycle."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: SessionState = SessionState.idle
    started_at: datetime | None = None
    ended_at: datetime | None = None
    paused_accumulated: timedelta = ZERO
    current_pause_started_at: datetime | None = None
    local_artifact_path: Path | None = None

    def elapsed_active(self, now: datetime) -> timedelta:
        """Active (unpaused) recording time as of ``now``."""
        if self.started_at is None:
            return ZERO
        if self.ended_at is not None:
            now = self.ended_at

        elapsed = now - self.started_at - self.paused_accumulated
        if self.current_pause_started_at is not None:
            elapsed -= max(now - self.current_pause_started_at, ZERO)

        return max(elapsed, ZERO)

    def close_pause(self, now: datetime) -> None:
        """Fold an open pause into ``paused_accumulated``."""
        if self.current_pause_started_at is None:
            return
        # A negative gap means the clock moved backwards; count it as zero
        self.paused_accumulated += max(now - self.current_pause_started_at, ZERO)
        self.current_pause_started_at = None


class RecordingStateMachine:
    """Owns the capture device and the session timing for one recording.

    Args:
        device: Capture device collaborator.
        config: Encoder settings passed to ``device.start``.
        recordings_dir: Directory the local artifact is written to.
        clock: Wall-clock source (injected for tests).
        tick_interval: Seconds between display ticks.
        on_tick: Called with the elapsed active time on every tick.
        session: Session object to drive (a fresh one by default).
    """

    def __init__(
        self,
        device: BaseCaptureDevice,
        config: CaptureConfig,
        recordings_dir: Path,
        clock: Callable[[], datetime] = datetime.now,
        tick_interval: float = 1.0,
        on_tick: Callable[[timedelta], None] | None = None,
        session: RecordingSession | None = None,
    ) -> None:
        self._device = device
        self._config = config
        self._recordings_dir = Path(recordings_dir)
        self._clock = clock
        self._on_tick = on_tick
        self._handle: Any = None
        self._high_water = ZERO
        self.session = session or RecordingSession()
        self.ticker = ElapsedTicker(
            interval=tick_interval,
            is_active=lambda: self.session.state is SessionState.recording,
            on_tick=self._emit_tick,
        )

    @property
    def state(self) -> SessionState:
        return self.session.state

    def elapsed_active(self) -> timedelta:
        """Elapsed active time, never below the last value shown."""
        return max(self.session.elapsed_active(self._clock()), self._high_water)

    def _mark_shown(self) -> timedelta:
        self._high_water = self.elapsed_active()
        return self._high_water

    def _emit_tick(self) -> None:
        elapsed = self._mark_shown()
        if self._on_tick is not None:
            self._on_tick(elapsed)

    def _require(self, operation: str, *states: SessionState) -> None:
        if self.session.state not in states:
            raise InvalidTransitionError(operation, self.session.state.value)

    # -- transitions --

    async def start(self) -> RecordingSession:
        """Begin capturing. Valid only from Idle.

        Raises:
            InvalidTransitionError: If the session already started.
            DeviceUnavailableError: If permission is missing or the device fails.
        """
        self._require("start", SessionState.idle)

        try:
            granted = await self._device.has_permission()
        except Exception as exc:
            raise DeviceUnavailableError(f"Permission check failed: {exc}") from exc
        if not granted:
            raise DeviceUnavailableError()

        await asyncio.to_thread(self._recordings_dir.mkdir, parents=True, exist_ok=True)
        stamp = int(self._clock().timestamp() * 1000)
        path = self._recordings_dir / f"recording_{stamp}.{self._config.extension}"

        try:
            self._handle = await self._device.start(self._config, path)
        except DeviceUnavailableError:
            raise
        except Exception as exc:
            raise DeviceUnavailableError(f"Failed to start recording: {exc}") from exc

        self.session.started_at = self._clock()
        self.session.paused_accumulated = ZERO
        self.session.state = SessionState.recording
        self.ticker.start()
        logger.info("Recording %s started -> %s", self.session.id, path)
        return self.session

    async def pause(self) -> None:
        """Suspend capture. Valid only from Recording."""
        self._require("pause", SessionState.recording)

        self.ticker.cancel()
        try:
            await self._device.pause(self._handle)
        except Exception as exc:
            self.ticker.start()
            raise DeviceUnavailableError(f"Pause failed: {exc}") from exc

        self.session.current_pause_started_at = self._clock()
        self.session.state = SessionState.paused
        self._mark_shown()
        logger.debug("Recording %s paused", self.session.id)

    async def resume(self) -> None:
        """Continue capture. Valid only from Paused."""
        self._require("resume", SessionState.paused)

        try:
            await self._device.resume(self._handle)
        except Exception as exc:
            raise DeviceUnavailableError(f"Resume failed: {exc}") from exc

        self.session.close_pause(self._clock())
        self.session.state = SessionState.recording
        self.ticker.start()
        logger.debug(
            "Recording %s resumed (paused total %.1fs)",
            self.session.id,
            self.session.paused_accumulated.total_seconds(),
        )

    async def stop(self) -> CaptureResult:
        """Finalize the artifact. Valid from Recording or Paused.

        Returns:
            The local artifact path and the final elapsed active time.

        Raises:
            NoActiveCaptureError: If nothing is being captured.
        """
        if self.session.state not in (SessionState.recording, SessionState.paused):
            raise NoActiveCaptureError()

        self.ticker.cancel()
        now = self._clock()
        try:
            captured = await self._device.stop(self._handle)
        except Exception as exc:
            if self.session.state is SessionState.recording:
                self.ticker.start()
            raise DeviceUnavailableError(f"Failed to stop recording: {exc}") from exc

        self.session.close_pause(now)
        self.session.ended_at = now
        self.session.local_artifact_path = Path(captured.path)
        self.session.state = SessionState.stopped
        self._handle = None

        elapsed = self._mark_shown()
        logger.info(
            "Recording %s stopped after %.1fs active -> %s",
            self.session.id,
            elapsed.total_seconds(),
            captured.path,
        )
        return CaptureResult(path=captured.path, duration=elapsed)
