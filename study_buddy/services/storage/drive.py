"""
Google Drive v3 adapter for the folder hierarchy.

Folders are matched by exact name, folder MIME type and parent. Lookups
are retried on transport errors; creates are not, because a create whose
response was lost would otherwise leave a duplicate folder behind.
Files are sent with a resumable upload session so the body is streamed.
"""

import asyncio
import logging
from pathlib import Path

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from study_buddy.core.config import get_settings
from study_buddy.core.exceptions import HierarchyError
from study_buddy.core.utils import content_type_for, iter_file_chunks
from study_buddy.services.storage.base import BaseFolderStore

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def _quote(value: str) -> str:
    """Escape a literal for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def folder_query(name: str, parent_id: str | None = None) -> str:
    """Drive ``q`` expression matching a non-trashed folder by exact name."""
    query = f"name='{_quote(name)}' and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
    if parent_id is not None:
        query += f" and '{_quote(parent_id)}' in parents"
    return query


class GoogleDriveFolderStore(BaseFolderStore):
    """Folder store backed by the user's Google Drive."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str | None = None,
        upload_url: str | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self._api_url = (api_url or settings.drive_api_url).rstrip("/")
        self._upload_url = (upload_url or settings.drive_upload_url).rstrip("/")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=16),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _list(self, query: str) -> list[dict]:
        resp = await self._client.get(
            f"{self._api_url}/files",
            params={"q": query, "fields": "files(id,name)", "spaces": "drive"},
        )
        resp.raise_for_status()
        return resp.json().get("files", [])

    async def find_folder(self, name: str, parent_id: str | None = None) -> str | None:
        try:
            files = await self._list(folder_query(name, parent_id))
        except httpx.HTTPError as exc:
            raise HierarchyError(f"Folder lookup failed for '{name}': {exc}") from exc
        if not files:
            return None
        if len(files) > 1:
            logger.debug("Found %d folders named %r; using the first", len(files), name)
        return files[0]["id"]

    async def create_folder(self, name: str, parent_id: str | None = None) -> str:
        metadata: dict = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id is not None:
            metadata["parents"] = [parent_id]
        try:
            resp = await self._client.post(
                f"{self._api_url}/files", params={"fields": "id"}, json=metadata
            )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise HierarchyError(f"Folder create failed for '{name}': {exc}") from exc
        return resp.json()["id"]

    async def upload_file(self, parent_id: str, name: str, path: Path) -> str:
        content_type = content_type_for(path)
        try:
            size = (await asyncio.to_thread(path.stat)).st_size
            session = await self._client.post(
                f"{self._upload_url}/files",
                params={"uploadType": "resumable", "fields": "id"},
                headers={
                    "X-Upload-Content-Type": content_type,
                    "X-Upload-Content-Length": str(size),
                },
                json={"name": name, "parents": [parent_id]},
            )
            session.raise_for_status()
            location = session.headers.get("Location")
            if not location:
                raise HierarchyError("Drive did not return an upload session URL")

            resp = await self._client.put(
                location,
                headers={"Content-Type": content_type},
                content=iter_file_chunks(path),
            )
            resp.raise_for_status()
        except (httpx.HTTPError, OSError) as exc:
            raise HierarchyError(f"Drive upload failed for '{name}': {exc}") from exc
        return resp.json()["id"]
