"""Upload orchestrator: commits a finished recording to the remote stores.

Steps run strictly in order and each one is recorded on the ``UploadJob``:

1. the uploader must be signed in,
2. the artifact is streamed to the object store (fatal on failure),
3. a lecture record is written to the index (fatal on failure),
4. a copy is filed into the drive folder hierarchy (best effort),
5. the local artifact is deleted and the job is marked done.

A fatal failure leaves the local file untouched so the whole commit can be
retried from scratch. Only one commit per session may be in flight.

Usage::

    orchestrator = UploadOrchestrator(identity, object_store, index_store)
    job = UploadJob.create(session, "Math 101", "Derivatives", datetime.now())
    result = await orchestrator.commit(job)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import httpx

from study_buddy.core.config import Settings, get_settings
from study_buddy.core.exceptions import (
    CommitInProgressError,
    IndexStoreError,
    NotAuthenticatedError,
    ObjectStoreError,
    StudyBuddyError,
)
from study_buddy.core.models import (
    HierarchyOutcome,
    JobStatus,
    LectureMetadata,
    UploadResult,
)
from study_buddy.core.naming import (
    build_filename,
    folder_path,
    format_timestamp,
    lecture_title,
    object_key,
)
from study_buddy.services.identity import BaseIdentityProvider
from study_buddy.services.recording.session import RecordingSession
from study_buddy.services.storage.base import BaseFolderStore, BaseIndexStore, BaseObjectStore
from study_buddy.services.storage.drive import GoogleDriveFolderStore
from study_buddy.services.storage.folders import FolderResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")

INDEX_STATUS_UPLOADED = "uploaded"


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


@dataclass
class UploadJob:
    """One commit attempt for a stopped recording session."""

    session: RecordingSession
    metadata: LectureMetadata
    derived_name: str
    artifact_path: Path
    status: JobStatus = JobStatus.pending
    failure_reason: str | None = None
    retrieval_ref: str | None = None
    record_id: str | None = None
    hierarchy: HierarchyOutcome = HierarchyOutcome.not_attempted
    hierarchy_file_id: str | None = None
    hierarchy_error: str | None = None
    artifact_deleted: bool = False

    @classmethod
    def create(
        cls,
        session: RecordingSession,
        class_name: str,
        topic: str,
        created_at: datetime,
        extension: str = "m4a",
    ) -> "UploadJob":
        """Snapshot the labels and take over the session's local artifact.

        Raises:
            ValueError: If the session has no finished artifact.
        """
        if session.local_artifact_path is None:
            raise ValueError(f"Session {session.id} has no recorded artifact")

        metadata = LectureMetadata(class_name=class_name, topic=topic, created_at=created_at)
        derived_name = build_filename(
            class_name, topic, format_timestamp(created_at), extension
        )
        return cls(
            session=session,
            metadata=metadata,
            derived_name=derived_name,
            artifact_path=session.local_artifact_path,
        )

    def fail(self, reason: str) -> None:
        self.status = JobStatus.failed
        self.failure_reason = reason

    def to_result(self) -> UploadResult:
        return UploadResult(
            status=self.status,
            derived_name=self.derived_name,
            retrieval_ref=self.retrieval_ref,
            record_id=self.record_id,
            hierarchy=self.hierarchy,
            hierarchy_file_id=self.hierarchy_file_id,
            hierarchy_error=self.hierarchy_error,
            artifact_deleted=self.artifact_deleted,
        )


class UploadOrchestrator:
    """Commits ``UploadJob``s to the object store, index and drive.

    Args:
        identity: Provides the uploader and the drive-authorized client.
        object_store: Receives the audio file.
        index_store: Receives one lecture record per upload.
        folder_store_factory: Builds the drive store from the authorized client.
        settings: Overrides ``get_settings()``.
    """

    def __init__(
        self,
        identity: BaseIdentityProvider,
        object_store: BaseObjectStore,
        index_store: BaseIndexStore,
        folder_store_factory: Callable[[httpx.AsyncClient], BaseFolderStore] = GoogleDriveFolderStore,
        settings: Settings | None = None,
    ) -> None:
        self._identity = identity
        self._object_store = object_store
        self._index_store = index_store
        self._folder_store_factory = folder_store_factory
        self._settings = settings or get_settings()
        self._in_flight: set[str] = set()

    def in_flight(self, session_id: str) -> bool:
        """True while a commit for ``session_id`` is running."""
        return session_id in self._in_flight

    async def _bounded(self, call: Awaitable[T]) -> T:
        return await asyncio.wait_for(call, timeout=self._settings.network_timeout)

    async def commit(self, job: UploadJob) -> UploadResult:
        """Run the commit steps for ``job``.

        Raises:
            CommitInProgressError: If this session is already being committed.
            NotAuthenticatedError: If nobody is signed in.
            ObjectStoreError: If the audio upload fails.
            IndexStoreError: If the lecture record cannot be written.
        """
        session_id = job.session.id
        if session_id in self._in_flight:
            raise CommitInProgressError(session_id)

        self._in_flight.add(session_id)
        try:
            return await self._run(job)
        finally:
            self._in_flight.discard(session_id)

    async def _run(self, job: UploadJob) -> UploadResult:
        identity = await self._identity.current_identity()
        if identity is None:
            job.fail("not authenticated")
            raise NotAuthenticatedError()

        # -- object store --
        key = object_key(identity.uid, job.derived_name, self._settings.object_key_prefix)
        try:
            job.retrieval_ref = await self._bounded(
                self._object_store.put(key, job.artifact_path)
            )
        except ObjectStoreError as exc:
            job.fail(exc.detail)
            logger.error("Upload of %s to %s failed: %s", job.derived_name, key, exc.detail)
            raise
        except Exception as exc:
            job.fail(_describe(exc))
            logger.error("Upload of %s to %s failed: %s", job.derived_name, key, _describe(exc))
            raise ObjectStoreError(f"Object store upload failed: {_describe(exc)}") from exc
        job.status = JobStatus.object_store_committed
        logger.info("Stored %s at %s", job.derived_name, key)

        # -- index --
        created_at = job.metadata.created_at
        fields = {
            "userId": identity.uid,
            "title": lecture_title(created_at.date()),
            "recordedAt": created_at,
            "status": INDEX_STATUS_UPLOADED,
            "downloadUrl": job.retrieval_ref,
        }
        try:
            job.record_id = await self._bounded(
                self._index_store.insert_record(self._settings.lectures_collection, fields)
            )
        except Exception as exc:
            reason = exc.detail if isinstance(exc, IndexStoreError) else _describe(exc)
            job.fail(reason)
            # The object is already stored; it stays unindexed until retried
            logger.error(
                "Index write for %s failed, object %s left unindexed: %s",
                job.derived_name,
                key,
                reason,
            )
            if isinstance(exc, IndexStoreError):
                raise
            raise IndexStoreError(f"Index record write failed: {reason}") from exc
        job.status = JobStatus.index_committed

        # -- drive (best effort) --
        await self._commit_hierarchy(job)

        # -- cleanup --
        job.artifact_deleted = await self._delete_artifact(job.artifact_path)
        job.status = JobStatus.done
        logger.info(
            "Upload of %s done (record=%s, drive=%s)",
            job.derived_name,
            job.record_id,
            job.hierarchy.value,
        )
        return job.to_result()

    async def _commit_hierarchy(self, job: UploadJob) -> None:
        """File a copy into ``root/semester/class/topic``. Never raises."""
        try:
            client = await self._identity.authenticated_client()
            if client is None:
                job.hierarchy = HierarchyOutcome.skipped
                logger.info("No drive authorization; skipping drive copy of %s", job.derived_name)
                return

            store = self._folder_store_factory(client)
            path = folder_path(
                self._settings.app_root_folder,
                job.metadata.created_at.date(),
                job.metadata.class_name,
                job.metadata.topic,
                self._settings.semester_term,
            )
            folder_id = await self._bounded(FolderResolver(store).resolve(path))
            job.hierarchy_file_id = await self._bounded(
                store.upload_file(folder_id, job.derived_name, job.artifact_path)
            )
        except Exception as exc:
            # FolderResolutionError and HierarchyError already carry a detail
            if isinstance(exc, StudyBuddyError):
                reason = exc.detail
            else:
                reason = f"Drive copy failed: {_describe(exc)}"
            job.hierarchy = HierarchyOutcome.failed
            job.hierarchy_error = reason
            logger.warning("Drive copy of %s failed (non-fatal): %s", job.derived_name, reason)
            return

        job.hierarchy = HierarchyOutcome.committed
        job.status = JobStatus.hierarchy_committed
        logger.info("Filed %s into drive folder %s", job.derived_name, "/".join(path))

    async def _delete_artifact(self, path: Path) -> bool:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError:
            logger.warning("Could not delete local artifact %s", path, exc_info=True)
            return False
        return True
