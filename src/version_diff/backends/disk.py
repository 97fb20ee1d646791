from __future__ import annotations

import asyncio
from typing import Protocol

from version_diff.utils.error_handling import log_file_error
from version_diff.utils.io import read_text
from version_diff.versions.errors import FetchFailedError


class FileReader(Protocol):
    """Reads a file's current (live) text content."""

    async def read(self, path: str) -> str:
        ...


class DiskReader:
    """Reads files from the local filesystem without blocking the event loop."""

    async def read(self, path: str) -> str:
        try:
            text, _enc = await asyncio.to_thread(read_text, path)
        except OSError as e:
            log_file_error(path, "reading", e)
            raise FetchFailedError(f"Could not read {path}: {e}") from e
        return text
