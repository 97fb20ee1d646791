from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from version_diff.utils.logger import log

from .adapters import VersionSourceAdapter
from .list_model import VersionListModel


@dataclass
class PaginationCursor:
    """Where the next older page starts and whether one exists."""

    last_loaded_id: Any
    has_more: bool


class PaginationController:
    """Loads older pages of a paginated history into both side models.

    Only one load runs at a time; a call made while another is in flight is
    ignored so the two side timelines always grow together.
    """

    def __init__(
        self,
        adapter: VersionSourceAdapter,
        left: VersionListModel,
        right: VersionListModel,
        cursor: PaginationCursor,
    ):
        self.adapter = adapter
        self.left = left
        self.right = right
        self.cursor = cursor
        self._in_flight = False

    @property
    def has_more(self) -> bool:
        return self.cursor.has_more

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def load_more(self, still_current: Callable[[], bool] = lambda: True) -> int:
        """Fetch the next older page and append it to both sides.

        Args:
            still_current: Checked after the fetch resolves; a False result drops the page

        Returns:
            Number of versions appended (0 when ignored, exhausted or stale)

        Raises:
            FetchFailedError: the page could not be fetched; nothing is appended
        """
        if self._in_flight:
            log.debug("[SYNC] load_more ignored: a page is already loading")
            return 0
        if not self.cursor.has_more:
            return 0

        self._in_flight = True
        try:
            page = await self.adapter.list_versions(paging_token=self.cursor.last_loaded_id)
        finally:
            self._in_flight = False

        if not still_current():
            log.debug("[SYNC] Dropping page from a discarded session")
            return 0

        self.left.append(page.descriptors)
        self.right.append(page.descriptors)
        if page.descriptors:
            self.cursor.last_loaded_id = page.descriptors[-1].id
        self.cursor.has_more = page.more and bool(page.descriptors)
        log.debug(f"[SYNC] Appended {len(page.descriptors)} older version(s), more={self.cursor.has_more}")
        return len(page.descriptors)
