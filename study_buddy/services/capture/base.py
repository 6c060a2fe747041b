"""
Abstract base class for audio capture devices.

The platform recorder (microphone driver, foreground service, ...) lives
outside this package; it only has to implement this interface.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from study_buddy.core.models import CaptureConfig, CaptureResult


class BaseCaptureDevice(ABC):
    """Interface that every capture device must implement."""

    @abstractmethod
    async def has_permission(self) -> bool:
        """Return True when microphone access has been granted."""

    @abstractmethod
    async def start(self, config: CaptureConfig, path: Path) -> Any:
        """Begin writing audio to ``path``.

        Args:
            config: Encoder settings (mono, 22.05 kHz, 64 kbit/s, .m4a).
            path: Local file the recording is written to.

        Returns:
            An opaque handle passed back to ``pause``/``resume``/``stop``.

        Raises:
            Exception: Any failure means the device is unavailable.
        """

    @abstractmethod
    async def pause(self, handle: Any) -> None:
        """Suspend writing without finalizing the file."""

    @abstractmethod
    async def resume(self, handle: Any) -> None:
        """Continue writing after ``pause``."""

    @abstractmethod
    async def stop(self, handle: Any) -> CaptureResult:
        """Flush and close the file.

        Returns:
            The finished artifact path and the device-reported duration.
        """
