"""Input validation utilities for version-diff.

This module validates user inputs (file and directory paths, backend names,
sync server URLs) before a session is built from them.
"""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urlparse

from .config import SessionConfig, config


class ValidationError(Exception):
    """Raised when input validation fails."""

    pass


BACKEND_NAMES: tuple[str, ...] = ("sync", "recovery", "git")


def _resolve_path(path: str, name: str) -> tuple[Path, str]:
    """Shared checks for file and directory paths; returns (resolved, absolute string)."""
    if not path or not path.strip():
        raise ValidationError(f"{name} cannot be empty")

    path = path.strip()

    if '\x00' in path:
        raise ValidationError(f"{name} contains invalid characters")

    try:
        resolved_path = Path(path).expanduser().resolve()
        abs_path = str(resolved_path)
    except (OSError, ValueError) as e:
        raise ValidationError(f"{name} is not a valid path: {e}") from e

    if len(abs_path) > config.max_path_length:
        raise ValidationError(f"{name} is too long (max {config.max_path_length} characters)")

    if any(ord(c) < 32 for c in abs_path if c not in '\t'):
        raise ValidationError(f"{name} contains invalid characters")

    return resolved_path, abs_path


def validate_directory_path(path: str, name: str = "Path", must_exist: bool = True) -> str:
    """Validate a directory path.

    Args:
        path: The directory path to validate
        name: Human-readable name for error messages
        must_exist: Whether the directory must already exist

    Returns:
        Normalized absolute path

    Raises:
        ValidationError: If validation fails
    """
    resolved_path, abs_path = _resolve_path(path, name)

    if must_exist:
        if not resolved_path.exists():
            raise ValidationError(f"{name} does not exist: {abs_path}")

        if not resolved_path.is_dir():
            raise ValidationError(f"{name} is not a directory: {abs_path}")

        if not os.access(abs_path, os.R_OK):
            raise ValidationError(f"{name} is not readable: {abs_path}")
    elif resolved_path.exists() and not resolved_path.is_dir():
        raise ValidationError(f"{name} is not a directory: {abs_path}")

    return abs_path


def validate_file_path(path: str, name: str = "File", must_exist: bool = True, check_readable: bool = True) -> str:
    """Validate a file path.

    Args:
        path: The file path to validate
        name: Human-readable name for error messages
        must_exist: Whether the file must already exist
        check_readable: Whether to check if file is readable (only if exists)

    Returns:
        Normalized absolute path

    Raises:
        ValidationError: If validation fails
    """
    resolved_path, abs_path = _resolve_path(path, name)

    if must_exist:
        if not resolved_path.exists():
            raise ValidationError(f"{name} does not exist: {abs_path}")

        if not resolved_path.is_file():
            raise ValidationError(f"{name} is not a file: {abs_path}")

        if check_readable and not os.access(abs_path, os.R_OK):
            raise ValidationError(f"{name} is not readable: {abs_path}")

    return abs_path


def validate_backend_name(value: str | None, name: str = "Backend") -> str:
    """Validate a backend name, returning it lower-cased."""
    if value is None or not value.strip():
        raise ValidationError(f"{name} cannot be empty")
    normalized = value.strip().lower()
    if normalized not in BACKEND_NAMES:
        raise ValidationError(f"{name} must be one of {', '.join(BACKEND_NAMES)}, got: {value}")
    return normalized


def validate_sync_url(url: str, name: str = "Sync URL") -> str:
    """Validate a websocket URL for the sync server.

    Raises:
        ValidationError: If the URL is empty, not ws:// or wss://, or has no host
    """
    if not url or not url.strip():
        raise ValidationError(f"{name} cannot be empty")

    url = url.strip()
    if any(ord(c) < 32 for c in url):
        raise ValidationError(f"{name} contains invalid characters")

    parsed = urlparse(url)
    if parsed.scheme not in ("ws", "wss"):
        raise ValidationError(f"{name} must use ws:// or wss://, got: {url}")
    if not parsed.hostname:
        raise ValidationError(f"{name} has no host: {url}")
    try:
        _ = parsed.port
    except ValueError as e:
        raise ValidationError(f"{name} has an invalid port: {url}") from e

    return url


def validate_session_config(session_config: SessionConfig) -> SessionConfig:
    """Validate every field of a SessionConfig at once.

    Returns:
        A new SessionConfig with normalized values (backend defaults to ``sync``)

    Raises:
        ValidationError: If any validation fails
    """
    file_path = validate_file_path(session_config.file_path or "", "File", must_exist=True)
    backend = validate_backend_name(session_config.backend or "sync")

    snapshot_dir = None
    if session_config.snapshot_dir:
        snapshot_dir = validate_directory_path(session_config.snapshot_dir, "Snapshot directory", must_exist=False)

    sync_url = None
    if session_config.sync_url:
        sync_url = validate_sync_url(session_config.sync_url)

    repo_root = None
    if session_config.repo_root:
        repo_root = validate_directory_path(session_config.repo_root, "Repository path", must_exist=True)

    return SessionConfig(
        file_path=file_path,
        backend=backend,
        snapshot_dir=snapshot_dir,
        sync_url=sync_url,
        repo_root=repo_root,
    )
