from __future__ import annotations

import os
import threading
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .logger import log


class _DebouncedFileHandler(FileSystemEventHandler):
    """Fires ``callback`` once per burst of events touching a single file."""

    def __init__(self, target: str, callback: Callable[[], None], debounce_ms: int = 100) -> None:
        self._target = os.path.normcase(os.path.abspath(target))
        self._callback = callback
        self._debounce = max(0, int(debounce_ms)) / 1000.0
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def _matches(self, event: FileSystemEvent) -> bool:
        paths = [getattr(event, "src_path", ""), getattr(event, "dest_path", "")]
        for p in paths:
            if p and os.path.normcase(os.path.abspath(os.fsdecode(p))) == self._target:
                return True
        return False

    def _schedule(self) -> None:
        def fire() -> None:
            try:
                self._callback()
            except (RuntimeError, OSError) as e:
                log(f"[WATCHDOG] Callback failed: {e}")

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._debounce, fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def on_any_event(self, event: FileSystemEvent):  # type: ignore[override]
        et = getattr(event, "event_type", "")
        if et not in ("modified", "created", "moved"):
            return
        if not self._matches(event):
            return
        log.debug("[WATCHDOG] Event:", et, "on", getattr(event, "src_path", ""))
        self._schedule()


def watch_file(
    path: str, on_change: Callable[[], None], *, debounce_ms: int = 100
) -> tuple[object, Callable[[], None]]:
    """
    Watch a single file for content changes and return (observer, stop_fn).

    The file's parent directory is observed because editors commonly replace
    files atomically. stop_fn() is idempotent and cancels pending callbacks.
    """
    abs_path = os.path.abspath(path)
    folder = os.path.dirname(abs_path)
    log.debug(f"[WATCHDOG] Watching file: {abs_path}")
    handler = _DebouncedFileHandler(abs_path, on_change, debounce_ms=debounce_ms)
    observer = Observer()
    observer.schedule(handler, folder, recursive=False)
    observer.daemon = True
    observer.start()

    _stopped = False
    _lock = threading.Lock()

    def stop() -> None:
        nonlocal _stopped
        with _lock:
            if _stopped:
                return
            _stopped = True
        handler.cancel()
        try:
            observer.stop()
            observer.join(timeout=0.5)
        except (RuntimeError, OSError) as e:
            log(f"[WATCHDOG] Observer stop failed: {e}")

    return observer, stop
