"""
Pydantic v2 models shared across the service layer.

Recording: SessionState, CaptureConfig, CaptureResult, SessionSnapshot
Upload: JobStatus, HierarchyOutcome, LectureMetadata, Identity, UploadResult
Study aids: AiJobType, TranscriptStatus
"""

from datetime import datetime, timedelta
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class SessionState(StrEnum):
    """Lifecycle states of a recording session."""

    idle = "idle"
    recording = "recording"
    paused = "paused"
    stopped = "stopped"
    uploading = "uploading"
    terminal = "terminal"


class CaptureConfig(BaseModel):
    """Encoder settings handed to the capture device on start."""

    model_config = ConfigDict(frozen=True)

    encoder: str = "aac_lc"
    sample_rate: int = 22050
    bit_rate: int = 64000
    channels: int = 1
    extension: str = "m4a"


class CaptureResult(BaseModel):
    """A finished local recording and its duration."""

    path: Path
    duration: timedelta = timedelta(0)


class SessionSnapshot(BaseModel):
    """Read-only view of the controller state for the presentation layer."""

    state: SessionState
    session_id: str | None = None
    elapsed_seconds: float = 0.0
    duration_label: str = "00:00"
    status_label: str = "Ready to Record"
    can_upload: bool = False
    can_discard: bool = False
    last_error: str | None = None


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class JobStatus(StrEnum):
    """Progress of an upload job through the commit steps."""

    pending = "pending"
    object_store_committed = "object_store_committed"
    index_committed = "index_committed"
    hierarchy_committed = "hierarchy_committed"
    failed = "failed"
    done = "done"


class HierarchyOutcome(StrEnum):
    """Result of the best-effort drive commit."""

    not_attempted = "not_attempted"
    committed = "committed"
    skipped = "skipped"  # No authenticated drive client
    failed = "failed"


class LectureMetadata(BaseModel):
    """Labels attached to a recording, snapshotted when the upload starts."""

    model_config = ConfigDict(frozen=True)

    class_name: str
    topic: str
    created_at: datetime


class Identity(BaseModel):
    """The signed-in uploader."""

    model_config = ConfigDict(frozen=True)

    uid: str = Field(min_length=1)
    display_name: str = "Student"


class UploadResult(BaseModel):
    """Outcome of ``UploadOrchestrator.commit``."""

    status: JobStatus
    derived_name: str
    retrieval_ref: str | None = None
    record_id: str | None = None
    hierarchy: HierarchyOutcome = HierarchyOutcome.not_attempted
    hierarchy_file_id: str | None = None
    hierarchy_error: str | None = None
    artifact_deleted: bool = False


# ---------------------------------------------------------------------------
# Study aids
# ---------------------------------------------------------------------------


class AiJobType(StrEnum):
    """Study aids the backend can generate from a lecture transcript."""

    summary = "summary"
    notes = "notes"
    quiz = "quiz"


class TranscriptStatus(StrEnum):
    """``transcriptStatus`` of a lecture record; the backend owns the later states."""

    none = "none"
    pending = "pending"
    processing = "processing"
    done = "done"
    error = "error"
