"""
Firebase adapters for the object store and the lecture index.

Talks to the Firebase Storage and Firestore REST APIs through an
``httpx.AsyncClient`` that already carries the user's bearer token.
The object upload targets a fixed key, so it is safe to retry on
transport errors; the index insert creates a new document and is not.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from study_buddy.core.config import get_settings
from study_buddy.core.exceptions import IndexStoreError, ObjectStoreError
from study_buddy.core.utils import content_type_for, iter_file_chunks
from study_buddy.services.storage.base import BaseIndexStore, BaseObjectStore

logger = logging.getLogger(__name__)


class FirebaseObjectStore(BaseObjectStore):
    """Firebase Storage bucket; ``put`` returns a tokenized download URL."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        bucket: str | None = None,
        base_url: str | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self._bucket = bucket or settings.firebase_storage_bucket
        self._base_url = (base_url or settings.firebase_storage_url).rstrip("/")

    def _auth_headers(self) -> dict[str, str]:
        # Storage v0 takes a Firebase ID token as "Firebase <token>", not "Bearer"
        scheme, _, token = self._client.headers.get("Authorization", "").partition(" ")
        if scheme.lower() == "bearer" and token:
            return {"Authorization": f"Firebase {token}"}
        return {}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=16),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _upload(self, key: str, path: Path) -> dict:
        resp = await self._client.post(
            f"{self._base_url}/b/{self._bucket}/o",
            params={"uploadType": "media", "name": key},
            headers={"Content-Type": content_type_for(path), **self._auth_headers()},
            content=iter_file_chunks(path),
        )
        resp.raise_for_status()
        return resp.json()

    async def put(self, key: str, path: Path) -> str:
        try:
            metadata = await self._upload(key, path)
        except httpx.HTTPStatusError as exc:
            logger.warning("Storage upload rejected for %s: %s", key, exc.response.status_code)
            raise ObjectStoreError(
                f"Storage upload rejected ({exc.response.status_code})"
            ) from exc
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("Storage upload failed for %s: %s", key, exc)
            raise ObjectStoreError(f"Storage upload failed: {exc}") from exc

        return self.download_url(key, metadata.get("downloadTokens", ""))

    def download_url(self, key: str, tokens: str = "") -> str:
        """Public download URL for ``key``; uses the first download token if any."""
        url = f"{self._base_url}/b/{self._bucket}/o/{quote(key, safe='')}?alt=media"
        token = tokens.split(",")[0] if tokens else ""
        if token:
            url += f"&token={token}"
        return url


def _to_firestore_value(value: Any) -> dict:
    """Encode a Python value as a Firestore REST ``Value``."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.astimezone()
        stamp = value.astimezone(UTC).isoformat().replace("+00:00", "Z")
        return {"timestampValue": stamp}
    return {"stringValue": str(value)}


class FirestoreIndexStore(BaseIndexStore):
    """Firestore collection in the project's ``(default)`` database."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        project_id: str | None = None,
        base_url: str | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self._project_id = project_id or settings.firebase_project_id
        self._base_url = (base_url or settings.firestore_url).rstrip("/")

    async def insert_record(self, collection: str, fields: dict[str, Any]) -> str:
        url = (
            f"{self._base_url}/projects/{self._project_id}"
            f"/databases/(default)/documents/{collection}"
        )
        body = {"fields": {name: _to_firestore_value(v) for name, v in fields.items()}}
        try:
            resp = await self._client.post(url, json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise IndexStoreError(
                f"Index write rejected ({exc.response.status_code})"
            ) from exc
        except httpx.HTTPError as exc:
            raise IndexStoreError(f"Index write failed: {exc}") from exc

        # "projects/<p>/databases/(default)/documents/lectures/<id>"
        return resp.json()["name"].rsplit("/", 1)[-1]

    async def update_record(
        self, collection: str, record_id: str, fields: dict[str, Any]
    ) -> None:
        url = (
            f"{self._base_url}/projects/{self._project_id}"
            f"/databases/(default)/documents/{collection}/{record_id}"
        )
        params = {"updateMask.fieldPaths": list(fields), "currentDocument.exists": "true"}
        body = {"fields": {name: _to_firestore_value(v) for name, v in fields.items()}}
        try:
            resp = await self._client.patch(url, params=params, json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise IndexStoreError(
                f"Index update rejected ({exc.response.status_code})"
            ) from exc
        except httpx.HTTPError as exc:
            raise IndexStoreError(f"Index update failed: {exc}") from exc
