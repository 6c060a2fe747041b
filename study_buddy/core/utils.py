"""Shared utility functions for Study Buddy."""

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

CHUNK_SIZE = 1024 * 1024  # 1 MB

_CONTENT_TYPES = {
    ".m4a": "audio/mp4",
    ".mp4": "audio/mp4",
    ".aac": "audio/aac",
    ".wav": "audio/wav",
}


def content_type_for(path: Path) -> str:
    """MIME type sent with uploads, keyed on the file suffix."""
    return _CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")


async def iter_file_chunks(path: Path, chunk_size: int = CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield the file in chunks; open, read and close run in a worker thread."""
    fh = await asyncio.to_thread(open, path, "rb")
    try:
        while True:
            chunk = await asyncio.to_thread(fh.read, chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        await asyncio.to_thread(fh.close)
