from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .logger import log


class ConfigError(Exception):
    """Configuration validation error."""

    pass


@dataclass
class SessionConfig:
    """Which file to inspect and where each history backend lives."""

    file_path: str | None = None
    backend: str | None = None
    snapshot_dir: str | None = None
    sync_url: str | None = None
    repo_root: str | None = None

    @classmethod
    def from_args(cls, args) -> SessionConfig:
        """Create SessionConfig from command line arguments."""
        return cls(
            file_path=args.file,
            backend=args.backend,
            snapshot_dir=args.snapshot_dir,
            sync_url=args.sync_url,
            repo_root=args.repo,
        )

    @classmethod
    def from_env(cls) -> SessionConfig:
        """Create SessionConfig from environment variables."""
        return cls(
            file_path=os.environ.get('VDIFF_FILE'),
            backend=os.environ.get('VDIFF_BACKEND'),
            snapshot_dir=os.environ.get('VDIFF_SNAPSHOT_DIR'),
            sync_url=os.environ.get('VDIFF_SYNC_URL'),
            repo_root=os.environ.get('VDIFF_REPO'),
        )

    def merge_with_env(self) -> SessionConfig:
        """Merge with environment variables, keeping existing values if they exist."""
        env = SessionConfig.from_env()
        return SessionConfig(
            file_path=self.file_path or env.file_path,
            backend=self.backend or env.backend,
            snapshot_dir=self.snapshot_dir or env.snapshot_dir,
            sync_url=self.sync_url or env.sync_url,
            repo_root=self.repo_root or env.repo_root,
        )


class Config:
    """Application tunables with environment variable support and validation."""

    # Default values
    _DEFAULT_CONTEXT_LINES: Final[int] = 3
    _DEFAULT_MAX_PREVIEW_CHARS: Final[int] = 200
    _DEFAULT_DEBOUNCE_MS: Final[int] = 300
    _DEFAULT_NETWORK_TIMEOUT: Final[int] = 30
    _DEFAULT_GIT_TIMEOUT: Final[int] = 15
    _DEFAULT_MAX_PATH_LENGTH: Final[int] = 4096

    # Validation bounds
    _MIN_CONTEXT_LINES: Final[int] = 0
    _MAX_CONTEXT_LINES: Final[int] = 10
    _MIN_PREVIEW_CHARS: Final[int] = 50
    _MAX_PREVIEW_CHARS: Final[int] = 10000
    _MIN_DEBOUNCE_MS: Final[int] = 50
    _MAX_DEBOUNCE_MS: Final[int] = 2000
    _MIN_NETWORK_TIMEOUT: Final[int] = 5
    _MAX_NETWORK_TIMEOUT: Final[int] = 300
    _MIN_GIT_TIMEOUT: Final[int] = 1
    _MAX_GIT_TIMEOUT: Final[int] = 300
    _MIN_MAX_PATH_LENGTH: Final[int] = 1024
    _MAX_MAX_PATH_LENGTH: Final[int] = 65536

    _TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})

    def __init__(self):
        """Initialize configuration with environment variable overrides."""
        self.context_lines = self._get_int_env("VDIFF_CONTEXT_LINES", self._DEFAULT_CONTEXT_LINES)
        self.max_preview_chars = self._get_int_env("VDIFF_MAX_PREVIEW_CHARS", self._DEFAULT_MAX_PREVIEW_CHARS)
        self.debounce_ms = self._get_int_env("VDIFF_DEBOUNCE_MS", self._DEFAULT_DEBOUNCE_MS)
        self.network_timeout = self._get_int_env("VDIFF_NETWORK_TIMEOUT", self._DEFAULT_NETWORK_TIMEOUT)
        self.git_timeout = self._get_int_env("VDIFF_GIT_TIMEOUT", self._DEFAULT_GIT_TIMEOUT)
        self.max_path_length = self._get_int_env("VDIFF_MAX_PATH_LENGTH", self._DEFAULT_MAX_PATH_LENGTH)
        self.color_blind = self._get_bool_env("VDIFF_COLOR_BLIND", False)

        self._validate_all()

    def _get_int_env(self, key: str, default: int) -> int:
        """Get integer environment variable with fallback to default."""
        value = os.environ.get(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError as e:
            log.warning(f"Invalid integer value for {key}='{value}', using default {default}: {e}")
            return default

    def _get_bool_env(self, key: str, default: bool) -> bool:
        """Get boolean environment variable (1/true/yes/on)."""
        value = os.environ.get(key)
        if value is None:
            return default
        return value.strip().lower() in self._TRUE_VALUES

    def _validate_all(self) -> None:
        """Validate all configuration values."""
        self._validate_int("context_lines", self.context_lines, self._MIN_CONTEXT_LINES, self._MAX_CONTEXT_LINES)
        self._validate_int(
            "max_preview_chars", self.max_preview_chars, self._MIN_PREVIEW_CHARS, self._MAX_PREVIEW_CHARS
        )
        self._validate_int("debounce_ms", self.debounce_ms, self._MIN_DEBOUNCE_MS, self._MAX_DEBOUNCE_MS)
        self._validate_int(
            "network_timeout", self.network_timeout, self._MIN_NETWORK_TIMEOUT, self._MAX_NETWORK_TIMEOUT
        )
        self._validate_int("git_timeout", self.git_timeout, self._MIN_GIT_TIMEOUT, self._MAX_GIT_TIMEOUT)
        self._validate_int(
            "max_path_length", self.max_path_length, self._MIN_MAX_PATH_LENGTH, self._MAX_MAX_PATH_LENGTH
        )
        if not isinstance(self.color_blind, bool):
            raise ConfigError(f"color_blind must be a boolean, got {type(self.color_blind).__name__}")

    def _validate_int(self, name: str, value: int, min_val: int, max_val: int) -> None:
        """Validate integer configuration value."""
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(f"{name} must be an integer, got {type(value).__name__}")
        if not (min_val <= value <= max_val):
            raise ConfigError(f"{name} must be between {min_val} and {max_val}, got {value}")

    def __repr__(self) -> str:
        """String representation of configuration."""
        return (
            f"Config(context_lines={self.context_lines}, "
            f"max_preview_chars={self.max_preview_chars}, "
            f"debounce_ms={self.debounce_ms}, "
            f"network_timeout={self.network_timeout}, "
            f"git_timeout={self.git_timeout}, "
            f"max_path_length={self.max_path_length}, "
            f"color_blind={self.color_blind})"
        )


# Global configuration instance
config = Config()
