"""Backend-agnostic version descriptors.

Every backend's history is flattened into an ordered, newest-first list of
``VersionDescriptor``. Backend-specific metadata (sync device, git commit
details, historical file name) rides along in optional fields so the session
never needs backend-specific code paths.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class BackendType(str, Enum):
    """The three version sources a session can be built on."""

    SYNC = "sync"
    RECOVERY = "recovery"
    GIT = "git"

    @property
    def label(self) -> str:
        return {"sync": "Sync", "recovery": "Recovery", "git": "Git"}[self.value]


class Side(str, Enum):
    """One of the two independently navigable comparison slots."""

    LEFT = "left"
    RIGHT = "right"


DISK_STATE_LABEL = "State on disk"


@dataclass(frozen=True)
class VersionDescriptor:
    """Identity and display metadata for one point in a file's history.

    ``id`` is only meaningful to the adapter that produced it: a numeric sync
    uid, a snapshot timestamp in epoch milliseconds, or a commit hash.
    """

    id: Any
    timestamp: datetime
    label: str
    size_bytes: int | None = None
    is_disk_state: bool = False
    # Sync
    device: str = ""
    # Git
    file_name: str | None = None
    author_name: str = ""
    author_email: str = ""
    refs: str = ""
    body: str = ""

    @property
    def short_hash(self) -> str:
        """First seven characters of a commit hash (empty for non-git ids)."""
        return self.id[:7] if isinstance(self.id, str) else ""


@dataclass
class VersionPage:
    """One page of history as returned by an adapter's ``list_versions``."""

    descriptors: list[VersionDescriptor] = field(default_factory=list)
    more: bool = False

    def __len__(self) -> int:
        return len(self.descriptors)


def disk_state_descriptor(now: datetime, file_name: str | None = None) -> VersionDescriptor:
    """Synthetic entry for the file's live on-disk content."""
    return VersionDescriptor(
        id=None,
        timestamp=now,
        label=DISK_STATE_LABEL,
        is_disk_state=True,
        file_name=file_name,
    )
