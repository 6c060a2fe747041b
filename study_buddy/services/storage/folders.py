"""Resolve a path of named folders to the id of its last folder.

Each segment is looked up before it is created, so resolving a path that
already exists only reads. A failure midway leaves the folders created so
far in place; the next resolution finds and reuses them.

Two resolvers racing on a path that does not exist yet can both miss the
lookup and both create the segment, leaving duplicate siblings with the
same name. Later lookups pick one of them.
"""

import logging
from collections.abc import Sequence

from study_buddy.core.exceptions import FolderResolutionError
from study_buddy.services.storage.base import BaseFolderStore

logger = logging.getLogger(__name__)


class FolderResolver:
    """Walks a folder path against a ``BaseFolderStore``, creating gaps."""

    def __init__(self, store: BaseFolderStore) -> None:
        self._store = store

    async def resolve(
        self,
        path: Sequence[str],
        root_parent: str | None = None,
    ) -> str:
        """Return the id of the last folder in ``path``.

        Args:
            path: Folder names from the top down, e.g.
                ``("Study Buddy", "2024_Spring", "Math 101", "Derivatives")``.
            root_parent: Folder the first segment lives under (None = anywhere).

        Raises:
            ValueError: If ``path`` is empty.
            FolderResolutionError: If a lookup or create fails.
        """
        if not path:
            raise ValueError("Folder path must contain at least one segment")

        parent = root_parent
        for name in path:
            parent = await self._resolve_segment(name, parent)
        return parent

    async def _resolve_segment(self, name: str, parent: str | None) -> str:
        try:
            folder_id = await self._store.find_folder(name, parent)
        except Exception as exc:
            raise FolderResolutionError(name, f"lookup failed: {exc}") from exc

        if folder_id is not None:
            return folder_id

        try:
            folder_id = await self._store.create_folder(name, parent)
        except Exception as exc:
            raise FolderResolutionError(name, f"create failed: {exc}") from exc

        logger.info("Created folder %r (id=%s, parent=%s)", name, folder_id, parent)
        return folder_id
