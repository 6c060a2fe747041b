"""Shared pytest fixtures for the Study Buddy test suite.

Provides a controllable clock and in-memory fakes for every external
collaborator (capture device, object store, index store, drive, identity).
Fakes append to a shared ``events`` list so tests can assert call order.
"""

import asyncio
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from study_buddy.core.config import Settings
from study_buddy.core.models import CaptureConfig, CaptureResult, Identity
from study_buddy.services.capture.base import BaseCaptureDevice
from study_buddy.services.identity import BaseIdentityProvider
from study_buddy.services.storage.base import (
    BaseFolderStore,
    BaseIndexStore,
    BaseObjectStore,
)

# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Capture device
# ---------------------------------------------------------------------------


class FakeCaptureDevice(BaseCaptureDevice):
    """Writes a small placeholder file on start and reports it on stop."""

    def __init__(self, events: list | None = None, permission: bool = True) -> None:
        self.events = events if events is not None else []
        self.permission = permission
        self.fail_start: Exception | None = None
        self.config: CaptureConfig | None = None
        self.path: Path | None = None

    async def has_permission(self) -> bool:
        return self.permission

    async def start(self, config: CaptureConfig, path: Path):
        if self.fail_start is not None:
            raise self.fail_start
        self.events.append(("device.start", path.name))
        self.config = config
        self.path = path
        path.write_bytes(b"\x00" * 256)
        return "handle-1"

    async def pause(self, handle) -> None:
        self.events.append(("device.pause", handle))

    async def resume(self, handle) -> None:
        self.events.append(("device.resume", handle))

    async def stop(self, handle) -> CaptureResult:
        self.events.append(("device.stop", handle))
        return CaptureResult(path=self.path, duration=timedelta(0))


# ---------------------------------------------------------------------------
# Remote stores
# ---------------------------------------------------------------------------


class FakeObjectStore(BaseObjectStore):
    def __init__(self, events: list) -> None:
        self.events = events
        self.objects: dict[str, bytes] = {}
        self.error: Exception | None = None

    async def put(self, key: str, path: Path) -> str:
        self.events.append(("object.put", key))
        if self.error is not None:
            raise self.error
        self.objects[key] = path.read_bytes()
        return f"https://storage.test/{key}?token=t1"


class FakeIndexStore(BaseIndexStore):
    def __init__(self, events: list) -> None:
        self.events = events
        self.records: list[tuple[str, dict]] = []
        self.updates: list[tuple[str, str, dict]] = []
        self.error: Exception | None = None

    async def insert_record(self, collection: str, fields: dict) -> str:
        self.events.append(("index.insert", collection))
        if self.error is not None:
            raise self.error
        self.records.append((collection, fields))
        return f"rec-{len(self.records)}"

    async def update_record(self, collection: str, record_id: str, fields: dict) -> None:
        self.events.append(("index.update", collection))
        if self.error is not None:
            raise self.error
        self.updates.append((collection, record_id, fields))


class InMemoryFolderStore(BaseFolderStore):
    """Dict-backed folder tree keyed by (name, parent)."""

    def __init__(self, events: list | None = None) -> None:
        self.events = events if events is not None else []
        self.folders: dict[tuple[str, str | None], str] = {}
        self.files: list[tuple[str, str, bytes]] = []
        self.find_calls = 0
        self.create_calls = 0
        self.fail_create_on: str | None = None
        self.fail_find_on: str | None = None
        self.upload_error: Exception | None = None

    async def find_folder(self, name: str, parent_id: str | None = None) -> str | None:
        self.find_calls += 1
        self.events.append(("drive.find", name))
        if name == self.fail_find_on:
            raise ConnectionError(f"lookup of {name} failed")
        return self.folders.get((name, parent_id))

    async def create_folder(self, name: str, parent_id: str | None = None) -> str:
        self.create_calls += 1
        self.events.append(("drive.create", name))
        if name == self.fail_create_on:
            raise ConnectionError(f"create of {name} failed")
        folder_id = f"folder-{len(self.folders) + 1}"
        self.folders[(name, parent_id)] = folder_id
        return folder_id

    async def upload_file(self, parent_id: str, name: str, path: Path) -> str:
        self.events.append(("drive.upload", name))
        if self.upload_error is not None:
            raise self.upload_error
        self.files.append((parent_id, name, path.read_bytes()))
        return f"file-{len(self.files)}"


class FakeIdentityProvider(BaseIdentityProvider):
    def __init__(self, identity: Identity | None, client=None) -> None:
        self.identity = identity
        self.client = client

    async def current_identity(self) -> Identity | None:
        return self.identity

    async def authenticated_client(self):
        return self.client


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def events() -> list:
    """Ordered log of collaborator calls."""
    return []


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 14, 3, 55))


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated to the test's temp dir with a fast display tick."""
    return Settings(
        recordings_dir=str(tmp_path / "recordings"),
        tick_interval=0.01,
        network_timeout=5.0,
    )


@pytest.fixture
def device(events) -> FakeCaptureDevice:
    return FakeCaptureDevice(events)


@pytest.fixture
def object_store(events) -> FakeObjectStore:
    return FakeObjectStore(events)


@pytest.fixture
def index_store(events) -> FakeIndexStore:
    return FakeIndexStore(events)


@pytest.fixture
def folder_store(events) -> InMemoryFolderStore:
    return InMemoryFolderStore(events)


@pytest.fixture
def identity() -> FakeIdentityProvider:
    """Signed-in user whose "client" is handed to the folder store factory."""
    return FakeIdentityProvider(
        Identity(uid="user-42", display_name="Ada"),
        client=object(),
    )


@pytest.fixture
def artifact(tmp_path) -> Path:
    """A finished local recording."""
    path = tmp_path / "recording_1709301835000.m4a"
    path.write_bytes(b"m4a-bytes")
    return path


@pytest.fixture
def thread_calls(monkeypatch) -> list:
    """Names of the callables handed to ``asyncio.to_thread``."""
    calls: list[str] = []
    original = asyncio.to_thread

    async def recording_to_thread(func, /, *args, **kwargs):
        calls.append(getattr(func, "__name__", repr(func)))
        return await original(func, *args, **kwargs)

    monkeypatch.setattr(asyncio, "to_thread", recording_to_thread)
    return calls
