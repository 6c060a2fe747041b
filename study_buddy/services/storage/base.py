"""
Abstract base classes for the remote stores.

The object store + index pair receives every upload; the folder store is
the hierarchical drive that gets a best-effort copy.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class BaseObjectStore(ABC):
    """Blob storage addressed by key."""

    @abstractmethod
    async def put(self, key: str, path: Path) -> str:
        """Stream the file at ``path`` to ``key``.

        Returns:
            A durable retrieval reference (e.g. a download URL).
        """


class BaseIndexStore(ABC):
    """Queryable document store holding one record per upload."""

    @abstractmethod
    async def insert_record(self, collection: str, fields: dict[str, Any]) -> str:
        """Insert a new record and return its identifier."""

    @abstractmethod
    async def update_record(
        self, collection: str, record_id: str, fields: dict[str, Any]
    ) -> None:
        """Set ``fields`` on an existing record, leaving other fields untouched.

        Fails if the record does not exist.
        """


class BaseFolderStore(ABC):
    """Tree-structured storage addressed by named folders."""

    @abstractmethod
    async def find_folder(self, name: str, parent_id: str | None = None) -> str | None:
        """Return the id of the folder named exactly ``name`` under ``parent_id``.

        ``parent_id=None`` searches without a parent constraint. Returns None
        when no such folder exists.
        """

    @abstractmethod
    async def create_folder(self, name: str, parent_id: str | None = None) -> str:
        """Create a folder and return its id."""

    @abstractmethod
    async def upload_file(self, parent_id: str, name: str, path: Path) -> str:
        """Upload the file at ``path`` into ``parent_id`` and return its id."""
