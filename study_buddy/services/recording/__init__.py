"""
Recording module - session lifecycle and elapsed-time display tick.
"""

from .session import RecordingSession, RecordingStateMachine
from .ticker import ElapsedTicker

__all__ = ["ElapsedTicker", "RecordingSession", "RecordingStateMachine"]
