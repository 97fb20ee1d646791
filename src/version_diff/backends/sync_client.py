"""Client for a cloud sync server's version history.

The server speaks one JSON request per websocket connection:

- ``{"op": "history", "path": str, "after": int | null}`` answered with
  ``{"items": [{"uid", "ts", "size", "device"}, ...], "more": bool}``
  (``ts`` is epoch milliseconds, items newest-first, ``after`` is the oldest
  uid the caller already has).
- ``{"op": "content", "uid": int}`` answered with a binary frame holding the
  raw file bytes. A text frame is accepted and UTF-8 encoded.

Any reply carrying an ``"error"`` key raises ``SyncProtocolError``.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Protocol

import websockets
from websockets.exceptions import WebSocketException

from version_diff.utils.config import config
from version_diff.utils.error_handling import log_network_error
from version_diff.utils.logger import log


class SyncProtocolError(Exception):
    """The sync server answered with an error or a malformed reply."""

    pass


@dataclass
class SyncItem:
    """One stored version on the sync server."""

    uid: int
    ts: int
    size: int = 0
    device: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SyncItem:
        try:
            return cls(
                uid=int(raw["uid"]),
                ts=int(raw["ts"]),
                size=int(raw.get("size") or 0),
                device=str(raw.get("device") or ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SyncProtocolError(f"Malformed history item: {raw!r}") from e


@dataclass
class SyncHistory:
    """One page of sync history."""

    items: list[SyncItem] = field(default_factory=list)
    more: bool = False


class SyncBackend(Protocol):
    """Read interface of a cloud sync service."""

    enabled: bool

    async def get_history(self, path: str, after_uid: int | None = None) -> SyncHistory:
        ...

    async def get_content_for_version(self, uid: int) -> bytes:
        ...


class WebSocketSyncBackend:
    """SyncBackend implementation over a websocket connection."""

    def __init__(self, url: str | None, timeout: float | None = None):
        self.url = url
        self.timeout = timeout if timeout is not None else config.network_timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def _request(self, payload: dict[str, Any]) -> str | bytes:
        if not self.url:
            raise SyncProtocolError("No sync server configured")
        try:
            async with websockets.connect(self.url, max_size=None) as websocket:
                await websocket.send(json.dumps(payload))
                return await asyncio.wait_for(websocket.recv(), timeout=self.timeout)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            log_network_error(self.url, f"requesting {payload.get('op')}", e)
            raise

    @staticmethod
    def _parse_json(reply: str | bytes) -> dict[str, Any]:
        try:
            data = json.loads(reply)
        except (TypeError, ValueError) as e:
            raise SyncProtocolError(f"Sync server sent invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SyncProtocolError("Sync server reply is not an object")
        if "error" in data:
            raise SyncProtocolError(str(data["error"]))
        return data

    async def get_history(self, path: str, after_uid: int | None = None) -> SyncHistory:
        reply = await self._request({"op": "history", "path": path, "after": after_uid})
        data = self._parse_json(reply)
        items = [SyncItem.from_dict(raw) for raw in data.get("items") or []]
        log.debug(f"[SYNC] history page for {path}: {len(items)} item(s), more={bool(data.get('more'))}")
        return SyncHistory(items=items, more=bool(data.get("more")))

    async def get_content_for_version(self, uid: int) -> bytes:
        reply = await self._request({"op": "content", "uid": uid})
        if isinstance(reply, bytes):
            return reply
        # Text frames are either an error object or the content itself
        if reply.lstrip().startswith("{"):
            try:
                data = json.loads(reply)
            except ValueError:
                data = None
            if isinstance(data, dict) and "error" in data:
                raise SyncProtocolError(str(data["error"]))
        return reply.encode("utf-8")
