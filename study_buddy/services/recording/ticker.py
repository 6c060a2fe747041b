"""Periodic elapsed-time tick for the recording display.

Runs as its own ``asyncio.Task`` while a capture is live. The owner calls
``start()`` when entering Recording and ``cancel()`` before leaving it;
each wake also re-checks ``is_active`` so a tick that was already due when
the state changed is dropped rather than delivered.
"""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ElapsedTicker:
    """Cancellable fixed-period callback.

    Args:
        interval: Seconds between ticks.
        is_active: Returns True while ticks should still be delivered.
        on_tick: Called on every tick. Exceptions are logged, not raised.
    """

    def __init__(
        self,
        interval: float,
        is_active: Callable[[], bool],
        on_tick: Callable[[], None],
    ) -> None:
        self._interval = interval
        self._is_active = is_active
        self._on_tick = on_tick
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the tick loop. No-op if it is already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._tick_loop())

    def cancel(self) -> None:
        """Stop ticking immediately. Safe to call when not running."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if not self._is_active():
                break
            try:
                self._on_tick()
            except Exception:
                logger.warning("Elapsed tick callback failed (non-fatal)", exc_info=True)
            if not self._is_active():
                break
