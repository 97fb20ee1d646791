"""Standardized error logging helpers for version-diff.

Each helper writes one line with a bracketed category prefix so that log
output from the engine, the backends and the UI can be filtered by source.
"""

from typing import Optional

from .logger import log


def log_adapter_error(backend: str, operation: str, exception: Exception) -> None:
    """Log a version-source failure (history listing or content fetch).

    Args:
        backend: Backend name (``sync``, ``recovery`` or ``git``)
        operation: Description of the operation (e.g., "listing versions")
        exception: The exception that was raised
    """
    error_type = type(exception).__name__
    log.warning(f"[{backend.upper()}] Failed {operation}: {error_type}: {exception}")


def log_file_error(file_path: str, operation: str, exception: Exception) -> None:
    """Log file operation errors with consistent formatting.

    Args:
        file_path: Path to the file that caused the error
        operation: Description of the operation (e.g., "reading", "writing")
        exception: The exception that was raised
    """
    error_type = type(exception).__name__
    log.warning(f"[IO] Failed {operation} {file_path}: {error_type}: {exception}")


def log_network_error(url: str, operation: str, exception: Exception, prefix: str = "SYNC") -> None:
    """Log network operation errors with consistent formatting.

    Args:
        url: Endpoint that was contacted
        operation: Description of the operation (e.g., "requesting history")
        exception: The exception that was raised
        prefix: Log prefix for categorization (default: "SYNC")
    """
    error_type = type(exception).__name__
    log.warning(f"[{prefix}] Failed {operation} {url}: {error_type}: {exception}")


def log_process_error(process_name: str, operation: str, exception: Exception, pid: Optional[int] = None) -> None:
    """Log subprocess errors with consistent formatting.

    Args:
        process_name: Name or description of the process
        operation: The operation being performed (e.g., "running log")
        exception: The exception that was raised
        pid: Optional process ID for more specific logging
    """
    error_type = type(exception).__name__
    pid_str = f" (PID {pid})" if pid else ""
    log.warning(f"[PROCESS] Failed {operation} {process_name}{pid_str}: {error_type}: {exception}")


def log_ui_error(component: str, action: str, exception: Exception) -> None:
    """Log UI component errors with consistent formatting.

    Args:
        component: Name of the UI component (e.g., "left list", "diff panel")
        action: The action being performed (e.g., "moving cursor")
        exception: The exception that was raised
    """
    error_type = type(exception).__name__
    log(f"[UI] Failed {action} on {component}: {error_type}: {exception}")


def log_watchdog_error(path: str, operation: str, exception: Exception) -> None:
    """Log file watching errors with consistent formatting.

    Args:
        path: Path being watched
        operation: The operation being performed (e.g., "starting observer")
        exception: The exception that was raised
    """
    error_type = type(exception).__name__
    log(f"[WATCHDOG] Failed {operation} for {path}: {error_type}: {exception}")
