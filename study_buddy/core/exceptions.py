"""
Study Buddy exception hierarchy.

All application-specific exceptions inherit from StudyBuddyError, so the
presentation layer can catch one type and render ``detail`` to the user.
"""

from datetime import UTC, datetime


class StudyBuddyError(Exception):
    """Base exception for all Study Buddy errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "STUDY_BUDDY_ERROR",
    ) -> None:
        self.detail = detail
        self.code = code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Recording lifecycle
# ---------------------------------------------------------------------------


class DeviceUnavailableError(StudyBuddyError):
    """Raised when microphone permission or the capture hardware is missing."""

    def __init__(self, detail: str = "Recording permission not granted") -> None:
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE")


class InvalidTransitionError(StudyBuddyError):
    """Raised when an operation is not valid from the current session state."""

    def __init__(self, operation: str, state: str) -> None:
        self.operation = operation
        self.state = state
        super().__init__(
            detail=f"Cannot {operation} while session is {state}",
            code="INVALID_TRANSITION",
        )


class NoActiveCaptureError(StudyBuddyError):
    """Raised when stop is requested but nothing is being captured."""

    def __init__(self) -> None:
        super().__init__(detail="No active capture to stop", code="NO_ACTIVE_CAPTURE")


# ---------------------------------------------------------------------------
# Upload pipeline
# ---------------------------------------------------------------------------


class NotAuthenticatedError(StudyBuddyError):
    """Raised when a commit is attempted without a signed-in uploader."""

    def __init__(self) -> None:
        super().__init__(detail="Sign in before uploading", code="NOT_AUTHENTICATED")


class ObjectStoreError(StudyBuddyError):
    """Raised when streaming the artifact to the object store fails."""

    def __init__(self, detail: str = "Object store upload failed") -> None:
        super().__init__(detail=detail, code="OBJECT_STORE_FAILURE")


class IndexStoreError(StudyBuddyError):
    """Raised when the lecture index record cannot be written."""

    def __init__(self, detail: str = "Index record write failed") -> None:
        super().__init__(detail=detail, code="INDEX_FAILURE")


class FolderResolutionError(StudyBuddyError):
    """Raised when a folder lookup or create fails while resolving a path."""

    def __init__(self, segment: str, detail: str = "") -> None:
        self.segment = segment
        super().__init__(
            detail=f"Failed to resolve folder '{segment}'" + (f": {detail}" if detail else ""),
            code="FOLDER_RESOLUTION_FAILURE",
        )


class HierarchyError(StudyBuddyError):
    """Raised by the drive commit step. Recorded on the job, never fatal."""

    def __init__(self, detail: str = "Drive upload failed") -> None:
        super().__init__(detail=detail, code="HIERARCHY_FAILURE")


class CommitInProgressError(StudyBuddyError):
    """Raised when a second commit or a discard races an in-flight commit."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            detail=f"An upload is already in progress for session {session_id}",
            code="COMMIT_IN_PROGRESS",
        )


class InvalidAiJobTypeError(StudyBuddyError):
    """Raised when a study-aid job names an unknown type."""

    def __init__(self, job_type: str) -> None:
        super().__init__(
            detail=f"Unknown AI job type {job_type!r}; type must be summary|notes|quiz",
            code="INVALID_AI_JOB_TYPE",
        )
