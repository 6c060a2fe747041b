"""Tests for the Google Drive folder store over a mock transport."""

import json

import httpx
import pytest
from tenacity import wait_none

from study_buddy.core.exceptions import FolderResolutionError, HierarchyError
from study_buddy.services.storage.drive import (
    FOLDER_MIME_TYPE,
    GoogleDriveFolderStore,
    folder_query,
)
from study_buddy.services.storage.folders import FolderResolver

API_URL = "https://drive.test/drive/v3"
UPLOAD_URL = "https://drive.test/upload/drive/v3"


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(GoogleDriveFolderStore._list.retry, "wait", wait_none())


def _store(handler) -> GoogleDriveFolderStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleDriveFolderStore(client, api_url=API_URL, upload_url=UPLOAD_URL)


class FakeDrive:
    """Minimal stateful Drive v3 server for folder lookups and creates."""

    def __init__(self) -> None:
        self.folders: list[dict] = []
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            query = request.url.params["q"]
            matches = [
                {"id": f["id"], "name": f["name"]}
                for f in self.folders
                if f"name='{f['name']}'" in query
                and (f["parent"] is None or f"'{f['parent']}' in parents" in query)
                and (f["parent"] is not None or "in parents" not in query)
            ]
            return httpx.Response(200, json={"files": matches})

        body = json.loads(request.content)
        folder_id = f"fld-{len(self.folders) + 1}"
        parents = body.get("parents") or [None]
        self.folders.append({"id": folder_id, "name": body["name"], "parent": parents[0]})
        return httpx.Response(200, json={"id": folder_id})


# ---------------------------------------------------------------------------
# Query building
# ---------------------------------------------------------------------------


class TestFolderQuery:
    def test_root_query(self):
        assert folder_query("Study Buddy") == (
            f"name='Study Buddy' and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )

    def test_scoped_to_parent(self):
        assert folder_query("Math", "p1").endswith(" and 'p1' in parents")

    def test_quotes_and_backslashes_are_escaped(self):
        query = folder_query("Bob's \\ notes")
        assert query.startswith("name='Bob\\'s \\\\ notes' and")


# ---------------------------------------------------------------------------
# Folder operations
# ---------------------------------------------------------------------------


class TestFindFolder:
    async def test_returns_first_match(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"files": [{"id": "a"}, {"id": "b"}]})

        folder_id = await _store(handler).find_folder("Math", parent_id="p1")

        assert folder_id == "a"
        params = seen[0].url.params
        assert seen[0].url.path == "/drive/v3/files"
        assert params["q"] == folder_query("Math", "p1")
        assert params["spaces"] == "drive"

    async def test_no_match(self):
        store = _store(lambda request: httpx.Response(200, json={"files": []}))
        assert await store.find_folder("Math") is None

    async def test_transport_error_is_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("reset", request=request)
            return httpx.Response(200, json={"files": [{"id": "x"}]})

        assert await _store(handler).find_folder("Math") == "x"
        assert len(calls) == 3

    async def test_http_error_becomes_hierarchy_error(self):
        store = _store(lambda request: httpx.Response(401))
        with pytest.raises(HierarchyError, match="Folder lookup failed for 'Math'"):
            await store.find_folder("Math")


class TestCreateFolder:
    async def test_creates_under_parent(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "new-1"})

        folder_id = await _store(handler).create_folder("Math", parent_id="p1")

        assert folder_id == "new-1"
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {
            "name": "Math",
            "mimeType": FOLDER_MIME_TYPE,
            "parents": ["p1"],
        }

    async def test_root_folder_has_no_parents(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": "root-1"})

        await _store(handler).create_folder("Study Buddy")

        assert "parents" not in json.loads(seen[0].content)

    async def test_create_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("lost", request=request)

        with pytest.raises(HierarchyError, match="Folder create failed"):
            await _store(handler).create_folder("Math")

        assert len(calls) == 1


class TestUploadFile:
    async def test_resumable_upload(self, artifact):
        seen = []

        async def handler(request):
            seen.append((request, await request.aread()))
            if request.method == "POST":
                return httpx.Response(
                    200, headers={"Location": "https://drive.test/upload/session-1"}
                )
            return httpx.Response(200, json={"id": "file-9"})

        file_id = await _store(handler).upload_file("fld-4", artifact.name, artifact)

        assert file_id == "file-9"
        start, start_body = seen[0]
        assert start.url.path == "/upload/drive/v3/files"
        assert start.url.params["uploadType"] == "resumable"
        assert start.headers["X-Upload-Content-Type"] == "audio/mp4"
        assert start.headers["X-Upload-Content-Length"] == str(len(b"m4a-bytes"))
        assert json.loads(start_body) == {"name": artifact.name, "parents": ["fld-4"]}

        put, put_body = seen[1]
        assert put.method == "PUT"
        assert str(put.url) == "https://drive.test/upload/session-1"
        assert put_body == b"m4a-bytes"

    async def test_file_size_is_read_off_the_loop(self, artifact, thread_calls):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, headers={"Location": "https://drive.test/s"})
            return httpx.Response(200, json={"id": "file-1"})

        await _store(handler).upload_file("fld-4", artifact.name, artifact)

        assert "stat" in thread_calls

    async def test_missing_session_url(self, artifact):
        store = _store(lambda request: httpx.Response(200))
        with pytest.raises(HierarchyError, match="upload session URL"):
            await store.upload_file("fld-4", artifact.name, artifact)

    async def test_rejected_upload(self, artifact):
        def handler(request):
            if request.method == "POST":
                return httpx.Response(200, headers={"Location": "https://drive.test/s"})
            return httpx.Response(507)

        with pytest.raises(HierarchyError, match="Drive upload failed"):
            await _store(handler).upload_file("fld-4", artifact.name, artifact)

    async def test_missing_local_file(self, tmp_path):
        store = _store(lambda request: httpx.Response(200))
        with pytest.raises(HierarchyError):
            await store.upload_file("fld-4", "gone.m4a", tmp_path / "gone.m4a")


# ---------------------------------------------------------------------------
# Resolver against the drive store
# ---------------------------------------------------------------------------


class TestResolverOverDrive:
    PATH = ("Study Buddy", "2024_Spring", "Math 101", "Derivatives")

    async def test_builds_then_reuses_hierarchy(self):
        drive = FakeDrive()
        resolver = FolderResolver(_store(drive))

        first = await resolver.resolve(self.PATH)
        created = len(drive.folders)
        second = await resolver.resolve(self.PATH)

        assert created == 4
        assert len(drive.folders) == 4
        assert first == second == "fld-4"
        assert [f["parent"] for f in drive.folders] == [None, "fld-1", "fld-2", "fld-3"]

    async def test_drive_failure_names_the_segment(self):
        drive = FakeDrive()

        def handler(request):
            if request.method == "POST" and b"Math 101" in request.content:
                return httpx.Response(403)
            return drive(request)

        with pytest.raises(FolderResolutionError) as exc_info:
            await FolderResolver(_store(handler)).resolve(self.PATH)

        assert exc_info.value.segment == "Math 101"
        assert isinstance(exc_info.value.__cause__, HierarchyError)
        assert [f["name"] for f in drive.folders] == ["Study Buddy", "2024_Spring"]
