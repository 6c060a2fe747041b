"""Study-aid requests: ask the backend for a transcript or an AI study aid.

Both requests are plain index writes. The backend watches the index and
does the work:

- ``request_transcript`` flips the lecture record's ``transcriptStatus`` to
  ``pending``; the backend moves it through processing to done or error.
- ``request_ai_job`` inserts a pending ``aiJobs`` record; the backend fills
  in the summary, notes or quiz and updates its status.

Usage::

    aids = StudyAidService(identity, index_store)
    await aids.request_transcript(result.record_id)
    job_id = await aids.request_ai_job(result.record_id, "quiz")
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from study_buddy.core.config import Settings, get_settings
from study_buddy.core.exceptions import (
    IndexStoreError,
    InvalidAiJobTypeError,
    NotAuthenticatedError,
)
from study_buddy.core.models import AiJobType, Identity, TranscriptStatus
from study_buddy.services.identity import BaseIdentityProvider
from study_buddy.services.storage.base import BaseIndexStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

AI_JOB_STATUS_PENDING = "pending"


class StudyAidService:
    """Files transcript and study-aid requests against uploaded lectures.

    Args:
        identity: Provides the requesting user.
        index_store: The index holding lecture records and AI jobs.
        settings: Overrides ``get_settings()``.
        clock: Wall-clock source for request stamps.
    """

    def __init__(
        self,
        identity: BaseIdentityProvider,
        index_store: BaseIndexStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._identity = identity
        self._index_store = index_store
        self._settings = settings or get_settings()
        self._clock = clock

    async def _bounded(self, call: Awaitable[T]) -> T:
        return await asyncio.wait_for(call, timeout=self._settings.network_timeout)

    async def _require_identity(self) -> Identity:
        identity = await self._identity.current_identity()
        if identity is None:
            raise NotAuthenticatedError()
        return identity

    async def request_transcript(self, record_id: str) -> None:
        """Mark the lecture record as waiting for a transcript.

        Raises:
            ValueError: If ``record_id`` is empty.
            NotAuthenticatedError: If nobody is signed in.
            IndexStoreError: If the record is missing or the write fails.
        """
        if not record_id:
            raise ValueError("record_id must not be empty")
        await self._require_identity()

        fields = {
            "transcriptStatus": TranscriptStatus.pending.value,
            "transcriptRequestedAt": self._clock(),
        }
        try:
            await self._bounded(
                self._index_store.update_record(
                    self._settings.lectures_collection, record_id, fields
                )
            )
        except IndexStoreError as exc:
            logger.error("Transcript request for %s failed: %s", record_id, exc.detail)
            raise
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            logger.error("Transcript request for %s failed: %s", record_id, reason)
            raise IndexStoreError(f"Transcript request failed: {reason}") from exc
        logger.info("Requested transcript for %s", record_id)

    async def request_ai_job(self, record_id: str, job_type: str) -> str:
        """Queue a summary, notes or quiz job for a lecture and return the job id.

        Raises:
            InvalidAiJobTypeError: If ``job_type`` is not summary, notes or quiz.
            ValueError: If ``record_id`` is empty.
            NotAuthenticatedError: If nobody is signed in.
            IndexStoreError: If the job record cannot be written.
        """
        try:
            kind = AiJobType(job_type)
        except ValueError:
            raise InvalidAiJobTypeError(job_type) from None
        if not record_id:
            raise ValueError("record_id must not be empty")
        identity = await self._require_identity()

        fields = {
            "type": kind.value,
            "recordingId": record_id,
            "uid": identity.uid,
            "status": AI_JOB_STATUS_PENDING,
            "createdAt": self._clock(),
        }
        try:
            job_id = await self._bounded(
                self._index_store.insert_record(self._settings.ai_jobs_collection, fields)
            )
        except IndexStoreError as exc:
            logger.error("%s job for %s failed: %s", kind.value, record_id, exc.detail)
            raise
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            logger.error("%s job for %s failed: %s", kind.value, record_id, reason)
            raise IndexStoreError(f"AI job request failed: {reason}") from exc
        logger.info("Queued %s job %s for %s", kind.value, job_id, record_id)
        return job_id
