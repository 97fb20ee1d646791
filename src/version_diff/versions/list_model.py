from __future__ import annotations

from typing import Iterable, Sequence

from .descriptors import VersionDescriptor
from .errors import SelectionOutOfRangeError


class VersionListModel:
    """One side's view of a timeline plus that side's active index.

    Selection never fetches content and never touches the other side; the
    session owns both of those concerns.
    """

    def __init__(self, descriptors: Iterable[VersionDescriptor], active_index: int = 0):
        self._descriptors: list[VersionDescriptor] = list(descriptors)
        if not 0 <= active_index < len(self._descriptors):
            raise SelectionOutOfRangeError(active_index, len(self._descriptors))
        self._active_index = active_index

    def __len__(self) -> int:
        return len(self._descriptors)

    def __getitem__(self, index: int) -> VersionDescriptor:
        return self._descriptors[index]

    @property
    def descriptors(self) -> Sequence[VersionDescriptor]:
        return tuple(self._descriptors)

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active(self) -> VersionDescriptor:
        return self._descriptors[self._active_index]

    def select(self, index: int) -> VersionDescriptor:
        """Make ``index`` active and return its descriptor.

        Raises:
            SelectionOutOfRangeError: index is outside ``[0, len)``; state is unchanged
        """
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._descriptors):
            raise SelectionOutOfRangeError(index, len(self._descriptors))
        self._active_index = index
        return self._descriptors[index]

    def move_by(self, delta: int) -> VersionDescriptor | None:
        """Move the active index by ``delta``; returns None at timeline boundaries."""
        target = self._active_index + delta
        if not 0 <= target < len(self._descriptors):
            return None
        return self.select(target)

    def append(self, descriptors: Iterable[VersionDescriptor]) -> None:
        """Extend the timeline with older versions; the active index is kept."""
        self._descriptors.extend(descriptors)
