import asyncio
import os
import sys
from datetime import datetime, timezone
from typing import Iterable, Optional

import pytest

# Ensure local src path is importable
_here = os.path.dirname(os.path.dirname(__file__))
_src = os.path.join(_here, "src")
if os.path.isdir(_src) and _src not in sys.path:
    sys.path.insert(0, _src)

from version_diff.backends.git_cli import GitCommandError, GitCommit  # noqa: E402
from version_diff.backends.snapshot_store import SnapshotRecord  # noqa: E402
from version_diff.backends.sync_client import SyncHistory, SyncItem  # noqa: E402
from version_diff.versions.availability import VersionEnvironment  # noqa: E402
from version_diff.versions.errors import FetchFailedError  # noqa: E402

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
FILE_PATH = "/vault/notes/plan.md"


class FakeSyncBackend:
    """In-memory sync service with paging and per-request gates.

    ``items`` are newest first. A gate registered for a uid holds that
    content request until the test sets the event.
    """

    def __init__(
        self,
        items: Iterable[SyncItem],
        page_size: Optional[int] = None,
        contents: Optional[dict] = None,
        enabled: bool = True,
    ):
        self.items = list(items)
        self.page_size = page_size or max(len(self.items), 1)
        self.contents = contents or {}
        self.enabled = enabled
        self.content_gates: dict = {}
        self.history_gate: Optional[asyncio.Event] = None
        self.history_error: Optional[Exception] = None
        self.content_errors: dict = {}
        self.history_calls: list = []
        self.content_calls: list = []

    async def get_history(self, path, after_uid=None):
        self.history_calls.append(after_uid)
        if self.history_gate is not None:
            await self.history_gate.wait()
        if self.history_error is not None:
            raise self.history_error
        start = 0
        if after_uid is not None:
            start = next(i for i, item in enumerate(self.items) if item.uid == after_uid) + 1
        page = self.items[start : start + self.page_size]
        return SyncHistory(items=page, more=start + len(page) < len(self.items))

    async def get_content_for_version(self, uid):
        self.content_calls.append(uid)
        gate = self.content_gates.get(uid)
        if gate is not None:
            await gate.wait()
        if uid in self.content_errors:
            raise self.content_errors[uid]
        return self.contents.get(uid, f"content of {uid}\n".encode("utf-8"))


class FakeSnapshotStore:
    def __init__(self, records: Iterable[SnapshotRecord] = (), present: bool = True):
        self.records = list(records)
        self.present = present

    def exists(self):
        return self.present

    async def read_all(self, path):
        return sorted((r for r in self.records if r.path == path), key=lambda r: r.ts, reverse=True)


class FakeGitRepository:
    """GitRepository stand-in; records every ``show`` call."""

    def __init__(self, commits: Iterable[GitCommit] = (), contents: Optional[dict] = None, available: bool = True):
        self.commits = list(commits)
        self.contents = contents or {}
        self.available = available
        self.show_calls: list = []
        self.show_errors: set = set()

    async def is_available(self):
        return self.available

    def relative_path(self, path):
        return os.path.basename(path)

    async def log(self, path):
        if not self.available:
            raise GitCommandError("not a git repository")
        return list(self.commits)

    async def show(self, commit_hash, file_name):
        self.show_calls.append((commit_hash, file_name))
        if commit_hash in self.show_errors:
            raise GitCommandError(f"bad object {commit_hash}")
        return self.contents[commit_hash]


class FakeReader:
    """Live file contents; ``text`` may be changed between reads."""

    def __init__(self, text: str = "on disk\n"):
        self.text = text
        self.fail = False
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    async def read(self, path):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise FetchFailedError(f"Could not read {path}")
        return self.text


def make_sync_items(count: int, start_uid: int = 100) -> list:
    """``count`` sync items, newest (highest uid) first."""
    return [
        SyncItem(uid=start_uid + n, ts=1_700_000_000_000 + n * 60_000, size=1024 * (n + 1), device="laptop")
        for n in reversed(range(count))
    ]


def make_commit(commit_hash: str, message: str, file_name: str = "plan.md", day: int = 1) -> GitCommit:
    return GitCommit(
        hash=commit_hash,
        date=datetime(2024, 4, day, 9, 30, tzinfo=timezone.utc),
        message=message,
        body="",
        refs="",
        author_name="Ada",
        author_email="ada@example.com",
        file_name=file_name,
    )


@pytest.fixture
def reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
def sync_env(reader):
    """Environment with a four-item sync history and nothing else."""
    backend = FakeSyncBackend(make_sync_items(4))
    return VersionEnvironment(file_path=FILE_PATH, reader=reader, sync_backend=backend)


@pytest.fixture
def git_env(reader):
    """Environment with three commits (c1 newest) and nothing else."""
    repo = FakeGitRepository(
        commits=[make_commit("c1" * 20, "third", day=3), make_commit("c2" * 20, "second", day=2),
                 make_commit("c3" * 20, "first", file_name="old-plan.md", day=1)],
        contents={"c1" * 20: "v3\n", "c2" * 20: "v2\n", "c3" * 20: "v1\n"},
    )
    return VersionEnvironment(file_path=FILE_PATH, reader=reader, git_repo=repo)


@pytest.fixture
def recovery_env(reader):
    store = FakeSnapshotStore(
        [
            SnapshotRecord(path=FILE_PATH, ts=1_700_000_000_000, data="snap one\n"),
            SnapshotRecord(path=FILE_PATH, ts=1_700_000_600_000, data="snap two\n"),
            SnapshotRecord(path="/vault/other.md", ts=1_700_000_900_000, data="unrelated\n"),
        ]
    )
    return VersionEnvironment(file_path=FILE_PATH, reader=reader, snapshot_store=store)
