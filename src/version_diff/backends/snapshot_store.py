"""Local periodic-snapshot store.

Each snapshot is one JSON file ``{"path": ..., "ts": <epoch ms>, "data": ...}``
inside a single directory. File names are ``<ts>-<digest of path>.json`` so a
directory listing already groups and orders snapshots per file.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from version_diff.utils.error_handling import log_file_error
from version_diff.utils.logger import log


@dataclass(frozen=True)
class SnapshotRecord:
    """One stored snapshot of a file."""

    path: str
    ts: int
    data: str


class SnapshotStore(Protocol):
    """Bulk read interface of a snapshot store."""

    def exists(self) -> bool:
        ...

    async def read_all(self, path: str) -> list[SnapshotRecord]:
        ...


def _path_digest(path: str) -> str:
    return hashlib.sha1(os.path.normcase(path).encode("utf-8")).hexdigest()[:12]


class DirectorySnapshotStore:
    """SnapshotStore kept as JSON files in one directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def exists(self) -> bool:
        return self.root.is_dir()

    def _read_all_sync(self, path: str) -> list[SnapshotRecord]:
        suffix = f"-{_path_digest(path)}.json"
        records: list[SnapshotRecord] = []
        for entry in self.root.glob(f"*{suffix}"):
            try:
                raw = json.loads(entry.read_text(encoding="utf-8"))
                record = SnapshotRecord(path=str(raw["path"]), ts=int(raw["ts"]), data=str(raw["data"]))
            except (OSError, ValueError, KeyError, TypeError) as e:
                log_file_error(str(entry), "loading snapshot", e)
                continue
            # Digest collisions are possible; the stored path is authoritative
            if record.path == path:
                records.append(record)
        records.sort(key=lambda r: r.ts, reverse=True)
        return records

    async def read_all(self, path: str) -> list[SnapshotRecord]:
        """All snapshots of ``path``, newest first."""
        if not self.exists():
            return []
        return await asyncio.to_thread(self._read_all_sync, path)

    def add(self, path: str, data: str, ts: int | None = None) -> SnapshotRecord:
        """Store a snapshot of ``path`` holding ``data`` and return it."""
        record = SnapshotRecord(path=path, ts=ts if ts is not None else int(time.time() * 1000), data=data)
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.root / f"{record.ts}-{_path_digest(path)}.json"
        tmp = target.with_suffix(".tmp")
        tmp.write_text(json.dumps({"path": record.path, "ts": record.ts, "data": record.data}), encoding="utf-8")
        os.replace(tmp, target)
        log.debug(f"[RECOVERY] Stored snapshot {target.name} for {path}")
        return record
