"""Error taxonomy for version sources and sessions."""

from __future__ import annotations


class AdapterError(Exception):
    """Base class for failures reported by a version source."""

    def __init__(self, message: str, backend: str | None = None):
        super().__init__(message)
        self.backend = backend


class BackendUnavailableError(AdapterError):
    """The backend is not enabled, not installed, or could not be reached."""

    pass


class EmptyHistoryError(AdapterError):
    """The backend works but has fewer than two usable versions for the file."""

    pass


class FetchFailedError(AdapterError):
    """Content or a further history page could not be retrieved; retryable."""

    pass


class SelectionOutOfRangeError(IndexError):
    """A selection index fell outside ``[0, length)`` of a timeline."""

    def __init__(self, index: int, length: int):
        super().__init__(f"Version index {index} out of range for timeline of length {length}")
        self.index = index
        self.length = length


class SessionStateError(RuntimeError):
    """An operation needs a READY session but the session is not ready."""

    pass
