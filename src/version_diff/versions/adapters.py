"""Version source adapters.

Each adapter turns one backend's native history into a newest-first list of
``VersionDescriptor`` and fetches the text for any descriptor it produced.
The three variants share the ``VersionSourceAdapter`` protocol; nothing in
the session depends on which one it holds.

Failure contract:
- the first ``list_versions()`` call raises ``BackendUnavailableError`` when
  the backend is missing or unreachable, and ``EmptyHistoryError`` when fewer
  than ``MIN_VERSIONS`` entries exist;
- later pages and content reads raise ``FetchFailedError``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Protocol

from websockets.exceptions import WebSocketException

from version_diff.backends.disk import FileReader
from version_diff.backends.git_cli import GitCommandError, GitRepository
from version_diff.backends.snapshot_store import SnapshotStore
from version_diff.backends.sync_client import SyncBackend, SyncProtocolError
from version_diff.utils.error_handling import log_adapter_error
from version_diff.utils.fs import from_epoch_ms
from version_diff.utils.io import decode_bytes
from version_diff.utils.logger import log

from .descriptors import BackendType, VersionDescriptor, VersionPage, disk_state_descriptor
from .errors import BackendUnavailableError, EmptyHistoryError, FetchFailedError

MIN_VERSIONS = 2

# Errors a sync transport may raise besides protocol errors
_SYNC_ERRORS = (SyncProtocolError, OSError, asyncio.TimeoutError, WebSocketException)


def _now() -> datetime:
    return datetime.now().astimezone()


class VersionSourceAdapter(Protocol):
    """Uniform read interface over one backend's history of one file."""

    kind: BackendType
    file_path: str

    async def list_versions(self, paging_token=None) -> VersionPage:
        ...

    async def fetch_content(self, descriptor: VersionDescriptor) -> str:
        ...


def _require_usable(kind: BackendType, descriptors: list[VersionDescriptor]) -> None:
    if len(descriptors) < MIN_VERSIONS:
        raise EmptyHistoryError(
            f"{kind.label} has {len(descriptors)} version(s); at least {MIN_VERSIONS} are needed",
            backend=kind.value,
        )


class SyncVersionAdapter:
    """Paginated history from a cloud sync service."""

    kind = BackendType.SYNC

    def __init__(self, backend: SyncBackend | None, file_path: str):
        self.backend = backend
        self.file_path = file_path

    async def list_versions(self, paging_token: int | None = None) -> VersionPage:
        first_page = paging_token is None
        if self.backend is None or not self.backend.enabled:
            raise BackendUnavailableError("Sync is not enabled", backend=self.kind.value)
        try:
            history = await self.backend.get_history(self.file_path, paging_token)
        except _SYNC_ERRORS as e:
            log_adapter_error(self.kind.value, "listing versions", e)
            if first_page:
                raise BackendUnavailableError(f"Sync history unavailable: {e}", backend=self.kind.value) from e
            raise FetchFailedError(f"Could not load older sync versions: {e}", backend=self.kind.value) from e

        descriptors = [
            VersionDescriptor(
                id=item.uid,
                timestamp=from_epoch_ms(item.ts),
                label=item.device,
                size_bytes=item.size,
                device=item.device,
            )
            for item in history.items
        ]
        if first_page:
            _require_usable(self.kind, descriptors)
        return VersionPage(descriptors=descriptors, more=history.more)

    async def fetch_content(self, descriptor: VersionDescriptor) -> str:
        if self.backend is None:
            raise BackendUnavailableError("Sync is not enabled", backend=self.kind.value)
        try:
            raw = await self.backend.get_content_for_version(descriptor.id)
        except _SYNC_ERRORS as e:
            log_adapter_error(self.kind.value, f"fetching version {descriptor.id}", e)
            raise FetchFailedError(f"Could not fetch sync version {descriptor.id}: {e}", backend=self.kind.value) from e
        text, _enc = decode_bytes(raw)
        return text


class RecoveryVersionAdapter:
    """Disk state followed by locally stored periodic snapshots."""

    kind = BackendType.RECOVERY

    def __init__(
        self,
        store: SnapshotStore | None,
        reader: FileReader,
        file_path: str,
        clock: Callable[[], datetime] = _now,
    ):
        self.store = store
        self.reader = reader
        self.file_path = file_path
        self.clock = clock
        self._snapshots: dict[int, str] = {}

    async def list_versions(self, paging_token=None) -> VersionPage:
        if self.store is None or not self.store.exists():
            raise BackendUnavailableError("No snapshot store configured", backend=self.kind.value)
        try:
            records = await self.store.read_all(self.file_path)
        except OSError as e:
            log_adapter_error(self.kind.value, "reading snapshots", e)
            raise BackendUnavailableError(f"Snapshot store unreadable: {e}", backend=self.kind.value) from e

        descriptors = [disk_state_descriptor(self.clock())]
        self._snapshots = {}
        for record in records:
            self._snapshots[record.ts] = record.data
            descriptors.append(
                VersionDescriptor(
                    id=record.ts,
                    timestamp=from_epoch_ms(record.ts),
                    label="",
                    size_bytes=len(record.data.encode("utf-8")),
                )
            )
        _require_usable(self.kind, descriptors)
        return VersionPage(descriptors=descriptors, more=False)

    async def fetch_content(self, descriptor: VersionDescriptor) -> str:
        if descriptor.is_disk_state:
            return await self.reader.read(self.file_path)
        try:
            return self._snapshots[descriptor.id]
        except KeyError:
            raise FetchFailedError(
                f"Snapshot {descriptor.id} is not part of this history", backend=self.kind.value
            ) from None


class GitVersionAdapter:
    """Disk state followed by the file's commit log."""

    kind = BackendType.GIT

    def __init__(
        self,
        repo: GitRepository | None,
        reader: FileReader,
        file_path: str,
        clock: Callable[[], datetime] = _now,
    ):
        self.repo = repo
        self.reader = reader
        self.file_path = file_path
        self.clock = clock

    async def list_versions(self, paging_token=None) -> VersionPage:
        if self.repo is None:
            raise BackendUnavailableError("Git is not available", backend=self.kind.value)
        try:
            commits = await self.repo.log(self.file_path)
        except GitCommandError as e:
            log_adapter_error(self.kind.value, "reading the log", e)
            raise BackendUnavailableError(f"Git history unavailable: {e}", backend=self.kind.value) from e

        current_name = self.repo.relative_path(self.file_path)
        descriptors = [disk_state_descriptor(self.clock(), file_name=current_name)]
        descriptors.extend(
            VersionDescriptor(
                id=commit.hash,
                timestamp=commit.date,
                label=commit.message,
                file_name=commit.file_name or current_name,
                author_name=commit.author_name,
                author_email=commit.author_email,
                refs=commit.refs,
                body=commit.body,
            )
            for commit in commits
        )
        log.debug(f"[GIT] {len(commits)} commit(s) for {current_name}")
        _require_usable(self.kind, descriptors)
        return VersionPage(descriptors=descriptors, more=False)

    async def fetch_content(self, descriptor: VersionDescriptor) -> str:
        if descriptor.is_disk_state:
            return await self.reader.read(self.file_path)
        if self.repo is None:
            raise BackendUnavailableError("Git is not available", backend=self.kind.value)
        try:
            return await self.repo.show(descriptor.id, descriptor.file_name or self.repo.relative_path(self.file_path))
        except GitCommandError as e:
            log_adapter_error(self.kind.value, f"showing {descriptor.short_hash}", e)
            raise FetchFailedError(f"Could not read commit {descriptor.short_hash}: {e}", backend=self.kind.value) from e
