"""Diff session: two independent cursors over one backend's timeline.

A session is bound to one backend at a time. Switching backends throws away
every piece of state (both side models, cached content, pagination) and
builds a fresh session. Asynchronous results are tagged twice:

- with the session *generation*, bumped on every (re)initialization, so a
  response that belongs to a discarded backend is dropped;
- with a per-side *request sequence*, so for one side the most recently
  dispatched selection wins even if an older request resolves later.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Sequence

from version_diff.utils.config import config
from version_diff.utils.diff_engine import DiffRow, compute_diff_rows, make_unified_diff
from version_diff.utils.fs import display_name
from version_diff.utils.logger import log

from .adapters import MIN_VERSIONS, VersionSourceAdapter
from .availability import BackendAvailability, VersionEnvironment, build_adapter, probe_availability
from .content_cache import ContentCache
from .descriptors import BackendType, Side, VersionDescriptor
from .errors import (
    AdapterError,
    BackendUnavailableError,
    EmptyHistoryError,
    FetchFailedError,
    SessionStateError,
)
from .list_model import VersionListModel
from .pagination import PaginationController, PaginationCursor

# Initial selection: the newest entry on the right, the one before it on the left
INITIAL_RIGHT_INDEX = 0
INITIAL_LEFT_INDEX = 1


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class DiffSession:
    """Orchestrates adapters, side models, content cache and pagination."""

    def __init__(self, env: VersionEnvironment, context_lines: int | None = None):
        self.env = env
        self.context_lines = config.context_lines if context_lines is None else context_lines
        self.backend: BackendType | None = None
        self.state = SessionState.UNINITIALIZED
        self.error: AdapterError | None = None
        self.availability = BackendAvailability()
        self.generation = 0
        self._clear()

    # ------------------------------------------------------------------ state

    def _clear(self) -> None:
        self.adapter: VersionSourceAdapter | None = None
        self.left: VersionListModel | None = None
        self.right: VersionListModel | None = None
        self.cache = ContentCache()
        self.pagination: PaginationController | None = None
        self._request_seq = {Side.LEFT: 0, Side.RIGHT: 0}

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def model(self, side: Side) -> VersionListModel:
        model = self.left if Side(side) is Side.LEFT else self.right
        if model is None:
            raise SessionStateError("No timeline loaded")
        return model

    def timelines(self) -> tuple[Sequence[VersionDescriptor], Sequence[VersionDescriptor]]:
        """Both sides' descriptor lists, for list display."""
        if self.left is None or self.right is None:
            return (), ()
        return self.left.descriptors, self.right.descriptors

    @property
    def has_more(self) -> bool:
        return self.pagination is not None and self.pagination.has_more

    def _require_ready(self) -> None:
        if self.state is not SessionState.READY:
            raise SessionStateError(f"Session is {self.state.value}, not ready")

    def _mark_unavailable(self, generation: int, error: AdapterError) -> bool:
        if self.is_current(generation):
            self._clear()
            self.error = error
            self.state = SessionState.UNAVAILABLE
            log.info(f"[SESSION] {self.backend.value if self.backend else '?'} unavailable: {error}")
        return False

    # ------------------------------------------------------------- lifecycle

    async def refresh_availability(self) -> BackendAvailability:
        self.availability = await probe_availability(self.env)
        return self.availability

    async def initialize(self, kind: BackendType) -> bool:
        """Build a fresh session on ``kind``.

        Returns:
            True when the session is READY; False when the backend cannot
            provide a comparison (see ``error``) or a newer initialization
            superseded this one.
        """
        kind = BackendType(kind)
        self.generation += 1
        generation = self.generation
        self._clear()
        self.backend = kind
        self.error = None
        self.state = SessionState.LOADING
        log.info(f"[SESSION] Loading {kind.value} history for {self.env.file_path} (generation {generation})")

        availability = await probe_availability(self.env)
        if not self.is_current(generation):
            return False
        self.availability = availability
        if not availability.allows(kind):
            return self._mark_unavailable(
                generation, BackendUnavailableError(f"{kind.label} is not available", backend=kind.value)
            )

        adapter = build_adapter(kind, self.env)
        try:
            page = await adapter.list_versions()
        except AdapterError as e:
            return self._mark_unavailable(generation, e)
        if not self.is_current(generation):
            log.debug(f"[SESSION] Dropping history from discarded generation {generation}")
            return False
        if len(page) < MIN_VERSIONS:
            return self._mark_unavailable(
                generation,
                EmptyHistoryError(f"{kind.label} has fewer than {MIN_VERSIONS} versions", backend=kind.value),
            )

        self.adapter = adapter
        self.left = VersionListModel(page.descriptors, active_index=INITIAL_LEFT_INDEX)
        self.right = VersionListModel(page.descriptors, active_index=INITIAL_RIGHT_INDEX)
        if kind is BackendType.SYNC:
            cursor = PaginationCursor(last_loaded_id=page.descriptors[-1].id, has_more=page.more)
            self.pagination = PaginationController(adapter, self.left, self.right, cursor)

        results = await asyncio.gather(
            self._load_side(Side.LEFT, self.left.active, generation),
            self._load_side(Side.RIGHT, self.right.active, generation),
            return_exceptions=True,
        )
        if not self.is_current(generation):
            return False
        for result in results:
            if isinstance(result, FetchFailedError):
                # The timeline is usable; the failed side can be reselected
                self.error = result
            elif isinstance(result, BaseException):
                raise result

        self.state = SessionState.READY
        log.info(f"[SESSION] {kind.value} ready with {len(self.left)} version(s)")
        return True

    async def switch_backend(self, kind: BackendType) -> bool:
        """Reset everything and initialize ``kind``.

        Switching to the backend already loaded (or loading) is a no-op;
        switching to an unavailable one retries it.
        """
        kind = BackendType(kind)
        if kind is self.backend and self.state in (SessionState.READY, SessionState.LOADING):
            return self.state is SessionState.READY
        log.info(f"[SESSION] Switching backend {self.backend.value if self.backend else 'none'} -> {kind.value}")
        return await self.initialize(kind)

    async def reload(self) -> bool:
        """Re-run initialization on the current backend."""
        if self.backend is None:
            raise SessionStateError("No backend selected")
        return await self.initialize(self.backend)

    def close(self) -> None:
        """Discard the session; late responses are dropped."""
        self.generation += 1
        self._clear()
        self.backend = None
        self.error = None
        self.state = SessionState.UNINITIALIZED

    # ------------------------------------------------------------ selection

    async def _load_side(self, side: Side, descriptor: VersionDescriptor, generation: int) -> bool:
        """Fetch ``descriptor`` into the cache for ``side`` unless superseded."""
        adapter = self.adapter
        if adapter is None:
            raise SessionStateError("No backend loaded")
        self._request_seq[side] += 1
        seq = self._request_seq[side]
        self.cache.set(side, None)

        try:
            text = await adapter.fetch_content(descriptor)
        except AdapterError:
            if self.is_current(generation) and self._request_seq[side] == seq:
                raise
            log.debug(f"[SESSION] Ignoring failure of superseded {side.value} request {seq}")
            return False

        if not self.is_current(generation):
            log.debug(f"[SESSION] Dropping {side.value} content from discarded generation {generation}")
            return False
        if self._request_seq[side] != seq:
            log.debug(f"[SESSION] Dropping stale {side.value} content (request {seq}, latest {self._request_seq[side]})")
            return False
        self.cache.set(side, text)
        return True

    async def _show(self, side: Side, descriptor: VersionDescriptor) -> tuple[str | None, str | None] | None:
        loaded = await self._load_side(side, descriptor, self.generation)
        return self.cache.diff_input() if loaded else None

    async def select_version(self, side: Side, index: int) -> tuple[str | None, str | None] | None:
        """Make ``index`` active on ``side`` and load its content.

        Returns:
            The current (left, right) content pair, or None when this request
            was superseded before it resolved

        Raises:
            SelectionOutOfRangeError: index outside the timeline; nothing changes
            FetchFailedError: content could not be read; reselect to retry
        """
        self._require_ready()
        side = Side(side)
        descriptor = self.model(side).select(index)
        log.debug(f"[SESSION] {side.value} -> #{index}")
        return await self._show(side, descriptor)

    async def navigate(self, side: Side, delta: int) -> tuple[str | None, str | None] | None:
        """Move ``side`` by ``delta``; at a timeline boundary nothing happens."""
        self._require_ready()
        side = Side(side)
        descriptor = self.model(side).move_by(delta)
        if descriptor is None:
            return None
        return await self._show(side, descriptor)

    async def load_more(self) -> int:
        """Append the next older page to both sides (sync only)."""
        self._require_ready()
        if self.pagination is None:
            return 0
        generation = self.generation
        return await self.pagination.load_more(lambda: self.is_current(generation))

    async def refresh_disk_state(self) -> list[Side]:
        """Re-read live content for every side showing the disk-state entry."""
        generation = self.generation
        refreshed: list[Side] = []
        for side in (Side.LEFT, Side.RIGHT):
            # A switch may have started while the previous side was being read
            if not self.is_current(generation) or self.state is not SessionState.READY:
                return refreshed
            descriptor = self.model(side).active
            if descriptor.is_disk_state and await self._show(side, descriptor) is not None:
                refreshed.append(side)
        return refreshed

    # ------------------------------------------------------------------ diff

    def diff_rows(self) -> list[DiffRow] | None:
        """Side-by-side rows for the current pair, or None while a side is pending."""
        if not self.cache.is_ready():
            return None
        left, right = self.cache.diff_input()
        return compute_diff_rows(left, right)

    def unified_diff(self) -> str | None:
        """Unified diff text for the current pair, or None while a side is pending."""
        if not self.cache.is_ready():
            return None
        left, right = self.cache.diff_input()
        return make_unified_diff(left, right, display_name(self.env.file_path), self.context_lines)
