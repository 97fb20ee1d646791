"""Tests for the diff session orchestrator."""

import asyncio

import pytest

from conftest import (
    FILE_PATH,
    FakeGitRepository,
    FakeSyncBackend,
    make_commit,
    make_sync_items,
)
from version_diff.versions.availability import VersionEnvironment
from version_diff.versions.descriptors import BackendType, Side
from version_diff.versions.errors import (
    BackendUnavailableError,
    EmptyHistoryError,
    FetchFailedError,
    SelectionOutOfRangeError,
    SessionStateError,
)
from version_diff.versions.session import DiffSession, SessionState


async def settle():
    """Let pending tasks run until they block."""
    for _ in range(10):
        await asyncio.sleep(0)


def combined_env(reader, sync_items=4, page_size=None):
    backend = FakeSyncBackend(make_sync_items(sync_items), page_size=page_size)
    repo = FakeGitRepository(
        commits=[make_commit("a" * 40, "second", day=2), make_commit("b" * 40, "first", day=1)],
        contents={"a" * 40: "git two\n", "b" * 40: "git one\n"},
    )
    return VersionEnvironment(file_path=FILE_PATH, reader=reader, sync_backend=backend, git_repo=repo)


class TestInitialize:
    """Test session initialization per backend."""

    @pytest.mark.asyncio
    async def test_sync_initial_selection(self, sync_env):
        """Newest on the right, the one before it on the left, both loaded."""
        session = DiffSession(sync_env)
        assert await session.initialize(BackendType.SYNC) is True

        assert session.state is SessionState.READY
        assert session.right.active_index == 0
        assert session.left.active_index == 1
        assert session.cache.diff_input() == ("content of 102\n", "content of 103\n")
        assert session.error is None

    @pytest.mark.asyncio
    async def test_both_sides_share_one_timeline(self, sync_env):
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)

        left, right = session.timelines()
        assert [d.id for d in left] == [103, 102, 101, 100]
        assert list(left) == list(right)

    @pytest.mark.asyncio
    async def test_single_sync_version_is_empty_history(self, reader):
        env = VersionEnvironment(file_path=FILE_PATH, reader=reader, sync_backend=FakeSyncBackend(make_sync_items(1)))
        session = DiffSession(env)

        assert await session.initialize(BackendType.SYNC) is False
        assert session.state is SessionState.UNAVAILABLE
        assert isinstance(session.error, EmptyHistoryError)
        assert session.left is None and session.right is None

    @pytest.mark.asyncio
    async def test_disabled_sync_is_unavailable(self, reader):
        env = VersionEnvironment(
            file_path=FILE_PATH, reader=reader, sync_backend=FakeSyncBackend(make_sync_items(4), enabled=False)
        )
        session = DiffSession(env)

        assert await session.initialize(BackendType.SYNC) is False
        assert session.state is SessionState.UNAVAILABLE
        assert isinstance(session.error, BackendUnavailableError)
        assert session.availability.sync is False

    @pytest.mark.asyncio
    async def test_unreachable_sync_is_unavailable(self, sync_env):
        sync_env.sync_backend.history_error = OSError("connection refused")
        session = DiffSession(sync_env)

        assert await session.initialize(BackendType.SYNC) is False
        assert isinstance(session.error, BackendUnavailableError)

    @pytest.mark.asyncio
    async def test_git_timeline_starts_with_disk_state(self, git_env, reader):
        """Timeline is [disk, c1, c2, c3]; right shows disk, left shows c1."""
        session = DiffSession(git_env)
        await session.initialize(BackendType.GIT)

        left, _ = session.timelines()
        assert left[0].is_disk_state and left[0].id is None
        assert [d.id for d in left[1:]] == ["c1" * 20, "c2" * 20, "c3" * 20]
        assert session.cache.diff_input() == ("v3\n", reader.text)

    @pytest.mark.asyncio
    async def test_git_without_commits_is_empty_history(self, reader):
        env = VersionEnvironment(file_path=FILE_PATH, reader=reader, git_repo=FakeGitRepository())
        session = DiffSession(env)

        assert await session.initialize(BackendType.GIT) is False
        assert isinstance(session.error, EmptyHistoryError)

    @pytest.mark.asyncio
    async def test_missing_git_is_unavailable(self, reader):
        env = VersionEnvironment(file_path=FILE_PATH, reader=reader, git_repo=FakeGitRepository(available=False))
        session = DiffSession(env)

        assert await session.initialize(BackendType.GIT) is False
        assert isinstance(session.error, BackendUnavailableError)

    @pytest.mark.asyncio
    async def test_recovery_timeline(self, recovery_env, reader):
        session = DiffSession(recovery_env)
        await session.initialize(BackendType.RECOVERY)

        left, _ = session.timelines()
        assert left[0].is_disk_state
        assert [d.id for d in left[1:]] == [1_700_000_600_000, 1_700_000_000_000]
        assert session.cache.diff_input() == ("snap two\n", reader.text)

    @pytest.mark.asyncio
    async def test_initial_fetch_failure_leaves_side_pending(self, sync_env):
        sync_env.sync_backend.content_errors[103] = OSError("reset by peer")
        session = DiffSession(sync_env)

        assert await session.initialize(BackendType.SYNC) is True
        assert session.state is SessionState.READY
        assert session.cache.get(Side.RIGHT) is None
        assert session.cache.get(Side.LEFT) == "content of 102\n"
        assert isinstance(session.error, FetchFailedError)
        assert session.diff_rows() is None


class TestSelection:
    """Test per-side selection and navigation."""

    @pytest.mark.asyncio
    async def test_select_before_ready_raises(self, sync_env):
        session = DiffSession(sync_env)
        with pytest.raises(SessionStateError):
            await session.select_version(Side.LEFT, 0)

    @pytest.mark.asyncio
    async def test_select_updates_only_that_side(self, sync_env):
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)

        result = await session.select_version(Side.LEFT, 3)

        assert result == ("content of 100\n", "content of 103\n")
        assert session.left.active_index == 3
        assert session.right.active_index == 0

    @pytest.mark.asyncio
    async def test_select_out_of_range_changes_nothing(self, sync_env):
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)
        calls = len(sync_env.sync_backend.content_calls)

        for bad in (-1, 4):
            with pytest.raises(SelectionOutOfRangeError):
                await session.select_version(Side.LEFT, bad)

        assert session.left.active_index == 1
        assert session.cache.get(Side.LEFT) == "content of 102\n"
        assert len(sync_env.sync_backend.content_calls) == calls

    @pytest.mark.asyncio
    async def test_last_dispatched_selection_wins(self, sync_env):
        """An older request resolving late must not overwrite a newer one."""
        backend = sync_env.sync_backend
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)
        gate = asyncio.Event()
        backend.content_gates[101] = gate

        first = asyncio.create_task(session.select_version(Side.LEFT, 2))
        await settle()
        assert session.cache.get(Side.LEFT) is None

        second = await session.select_version(Side.LEFT, 3)
        assert second == ("content of 100\n", "content of 103\n")

        gate.set()
        assert await first is None
        assert session.cache.get(Side.LEFT) == "content of 100\n"
        assert session.left.active_index == 3

    @pytest.mark.asyncio
    async def test_sides_resolve_independently(self, sync_env):
        backend = sync_env.sync_backend
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)
        gate = asyncio.Event()
        backend.content_gates[100] = gate

        pending_left = asyncio.create_task(session.select_version(Side.LEFT, 3))
        await settle()
        await session.select_version(Side.RIGHT, 2)
        gate.set()

        assert await pending_left == ("content of 100\n", "content of 101\n")
        assert (session.left.active_index, session.right.active_index) == (3, 2)

    @pytest.mark.asyncio
    async def test_fetch_failure_is_retryable(self, sync_env):
        backend = sync_env.sync_backend
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)
        backend.content_errors[100] = OSError("timeout")

        with pytest.raises(FetchFailedError):
            await session.select_version(Side.LEFT, 3)
        assert session.cache.get(Side.LEFT) is None
        assert session.cache.get(Side.RIGHT) == "content of 103\n"

        del backend.content_errors[100]
        assert await session.select_version(Side.LEFT, 3) == ("content of 100\n", "content of 103\n")

    @pytest.mark.asyncio
    async def test_navigate_moves_by_delta(self, sync_env):
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)

        await session.navigate(Side.LEFT, 1)
        assert session.left.active_index == 2
        assert session.cache.get(Side.LEFT) == "content of 101\n"

    @pytest.mark.asyncio
    async def test_navigate_at_boundary_is_noop(self, sync_env):
        backend = sync_env.sync_backend
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)
        calls = len(backend.content_calls)

        assert await session.navigate(Side.RIGHT, -1) is None
        await session.select_version(Side.LEFT, 3)
        calls += 1
        assert await session.navigate(Side.LEFT, 1) is None

        assert session.right.active_index == 0
        assert session.left.active_index == 3
        assert len(backend.content_calls) == calls
        assert session.cache.diff_input() == ("content of 100\n", "content of 103\n")

    @pytest.mark.asyncio
    async def test_git_historical_name_used_for_show(self, git_env):
        session = DiffSession(git_env)
        await session.initialize(BackendType.GIT)

        await session.select_version(Side.LEFT, 3)

        assert git_env.git_repo.show_calls[-1] == ("c3" * 20, "old-plan.md")
        assert session.cache.get(Side.LEFT) == "v1\n"

    @pytest.mark.asyncio
    async def test_disk_state_is_read_live(self, git_env, reader):
        session = DiffSession(git_env)
        await session.initialize(BackendType.GIT)
        reader.text = "edited\n"

        await session.select_version(Side.LEFT, 0)

        assert session.cache.diff_input() == ("edited\n", "on disk\n")

    @pytest.mark.asyncio
    async def test_refresh_disk_state(self, git_env, reader):
        session = DiffSession(git_env)
        await session.initialize(BackendType.GIT)
        reader.text = "saved again\n"

        refreshed = await session.refresh_disk_state()

        assert refreshed == [Side.RIGHT]
        assert session.cache.get(Side.RIGHT) == "saved again\n"
        assert session.cache.get(Side.LEFT) == "v3\n"

    @pytest.mark.asyncio
    async def test_refresh_without_disk_state_does_nothing(self, sync_env):
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)

        assert await session.refresh_disk_state() == []

    @pytest.mark.asyncio
    async def test_refresh_stops_when_switch_starts_midway(self, reader):
        env = combined_env(reader)
        session = DiffSession(env)
        await session.initialize(BackendType.GIT)
        await session.select_version(Side.LEFT, 0)
        reader.gate = asyncio.Event()
        env.sync_backend.history_gate = asyncio.Event()

        refresh = asyncio.create_task(session.refresh_disk_state())
        await settle()
        switch = asyncio.create_task(session.switch_backend(BackendType.SYNC))
        await settle()
        assert session.state is SessionState.LOADING

        reader.gate.set()
        assert await refresh == []

        env.sync_backend.history_gate.set()
        assert await switch is True
        assert session.cache.diff_input() == ("content of 102\n", "content of 103\n")


class TestPaginationThroughSession:
    """Test load_more as driven by the session."""

    @pytest.mark.asyncio
    async def test_load_more_appends_to_both_sides(self, reader):
        env = combined_env(reader, sync_items=4, page_size=2)
        session = DiffSession(env)
        await session.initialize(BackendType.SYNC)
        assert session.has_more is True
        assert len(session.left) == 2

        added = await session.load_more()

        assert added == 2
        assert len(session.left) == len(session.right) == 4
        assert (session.left.active_index, session.right.active_index) == (1, 0)
        assert session.has_more is False
        assert env.sync_backend.history_calls == [None, 102]

    @pytest.mark.asyncio
    async def test_concurrent_load_more_is_ignored(self, reader):
        env = combined_env(reader, sync_items=6, page_size=2)
        session = DiffSession(env)
        await session.initialize(BackendType.SYNC)
        gate = asyncio.Event()
        env.sync_backend.history_gate = gate

        first = asyncio.create_task(session.load_more())
        await settle()
        assert await session.load_more() == 0
        gate.set()

        assert await first == 2
        assert len(session.left) == 4
        assert env.sync_backend.history_calls == [None, 104]

    @pytest.mark.asyncio
    async def test_page_from_discarded_session_is_dropped(self, reader):
        env = combined_env(reader, sync_items=4, page_size=2)
        session = DiffSession(env)
        await session.initialize(BackendType.SYNC)
        gate = asyncio.Event()
        env.sync_backend.history_gate = gate

        pending = asyncio.create_task(session.load_more())
        await settle()
        await session.switch_backend(BackendType.GIT)
        gate.set()

        assert await pending == 0
        assert session.backend is BackendType.GIT
        assert len(session.left) == 3
        assert session.pagination is None

    @pytest.mark.asyncio
    async def test_load_more_on_git_is_noop(self, git_env):
        session = DiffSession(git_env)
        await session.initialize(BackendType.GIT)

        assert session.has_more is False
        assert await session.load_more() == 0


class TestSwitching:
    """Test backend switching and stale responses across generations."""

    @pytest.mark.asyncio
    async def test_switch_resets_everything(self, reader):
        env = combined_env(reader, page_size=2)
        session = DiffSession(env)
        await session.initialize(BackendType.SYNC)
        await session.select_version(Side.LEFT, 0)

        assert await session.switch_backend(BackendType.GIT) is True

        assert session.backend is BackendType.GIT
        assert session.pagination is None
        assert (session.left.active_index, session.right.active_index) == (1, 0)
        assert session.cache.diff_input() == ("git two\n", "on disk\n")

    @pytest.mark.asyncio
    async def test_switch_to_same_backend_is_noop(self, sync_env):
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)
        generation = session.generation

        assert await session.switch_backend(BackendType.SYNC) is True
        assert session.generation == generation
        assert sync_env.sync_backend.history_calls == [None]

    @pytest.mark.asyncio
    async def test_switch_retries_unavailable_backend(self, sync_env):
        sync_env.sync_backend.history_error = OSError("down")
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)
        assert session.state is SessionState.UNAVAILABLE

        sync_env.sync_backend.history_error = None
        assert await session.switch_backend(BackendType.SYNC) is True
        assert session.state is SessionState.READY

    @pytest.mark.asyncio
    async def test_content_from_previous_backend_is_dropped(self, reader):
        env = combined_env(reader)
        session = DiffSession(env)
        await session.initialize(BackendType.SYNC)
        gate = asyncio.Event()
        env.sync_backend.content_gates[100] = gate

        pending = asyncio.create_task(session.select_version(Side.LEFT, 3))
        await settle()
        await session.switch_backend(BackendType.GIT)
        gate.set()

        assert await pending is None
        assert session.cache.diff_input() == ("git two\n", "on disk\n")

    @pytest.mark.asyncio
    async def test_availability_is_reprobed_on_every_switch(self, reader):
        env = combined_env(reader)
        session = DiffSession(env)
        await session.initialize(BackendType.GIT)
        assert session.availability.sync is True

        env.sync_backend.enabled = False
        assert await session.switch_backend(BackendType.SYNC) is False
        assert session.availability.sync is False
        assert isinstance(session.error, BackendUnavailableError)

    @pytest.mark.asyncio
    async def test_close_discards_session(self, sync_env):
        session = DiffSession(sync_env)
        await session.initialize(BackendType.SYNC)

        session.close()

        assert session.state is SessionState.UNINITIALIZED
        assert session.backend is None
        with pytest.raises(SessionStateError):
            await session.navigate(Side.LEFT, 1)


class TestDiffOutput:
    """Test the diff text produced for the current pair."""

    @pytest.mark.asyncio
    async def test_unified_diff_names_file(self, git_env):
        session = DiffSession(git_env, context_lines=1)
        await session.initialize(BackendType.GIT)

        patch = session.unified_diff()

        assert patch.startswith("--- plan\n+++ plan\n")
        assert "-v3" in patch
        assert "+on disk" in patch

    @pytest.mark.asyncio
    async def test_identical_versions_give_empty_diff(self, git_env):
        session = DiffSession(git_env)
        await session.initialize(BackendType.GIT)
        await session.select_version(Side.RIGHT, 1)

        assert session.unified_diff() == ""

    @pytest.mark.asyncio
    async def test_no_diff_while_pending(self, sync_env):
        session = DiffSession(sync_env)
        assert session.unified_diff() is None
        assert session.diff_rows() is None
