from __future__ import annotations

from dataclasses import dataclass, field

from version_diff.backends.disk import DiskReader, FileReader
from version_diff.backends.git_cli import GitRepository
from version_diff.backends.snapshot_store import SnapshotStore
from version_diff.backends.sync_client import SyncBackend
from version_diff.utils.logger import log

from .adapters import GitVersionAdapter, RecoveryVersionAdapter, SyncVersionAdapter, VersionSourceAdapter
from .descriptors import BackendType


@dataclass
class VersionEnvironment:
    """The external collaborators a session may read history from.

    Any backend may be ``None`` when it is not configured or not installed.
    """

    file_path: str
    reader: FileReader = field(default_factory=DiskReader)
    sync_backend: SyncBackend | None = None
    snapshot_store: SnapshotStore | None = None
    git_repo: GitRepository | None = None


@dataclass(frozen=True)
class BackendAvailability:
    """Which backends can currently be switched to."""

    sync: bool = False
    recovery: bool = False
    git: bool = False

    def allows(self, kind: BackendType) -> bool:
        return bool(getattr(self, BackendType(kind).value))


async def probe_availability(env: VersionEnvironment) -> BackendAvailability:
    """Query each collaborator for availability; never cached between calls."""
    sync = env.sync_backend is not None and bool(env.sync_backend.enabled)
    recovery = env.snapshot_store is not None and env.snapshot_store.exists()
    git = env.git_repo is not None and await env.git_repo.is_available()
    availability = BackendAvailability(sync=sync, recovery=recovery, git=git)
    log.debug(f"[SESSION] Backend availability: {availability}")
    return availability


def build_adapter(kind: BackendType, env: VersionEnvironment) -> VersionSourceAdapter:
    """Create the adapter variant for ``kind`` over ``env``'s collaborators."""
    kind = BackendType(kind)
    if kind is BackendType.SYNC:
        return SyncVersionAdapter(env.sync_backend, env.file_path)
    if kind is BackendType.RECOVERY:
        return RecoveryVersionAdapter(env.snapshot_store, env.reader, env.file_path)
    return GitVersionAdapter(env.git_repo, env.reader, env.file_path)
