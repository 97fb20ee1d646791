import argparse
import os
import sys

from textual.app import App

from version_diff.backends.disk import DiskReader
from version_diff.backends.git_cli import GitRepository
from version_diff.backends.snapshot_store import DirectorySnapshotStore
from version_diff.backends.sync_client import WebSocketSyncBackend
from version_diff.screens.diff_viewer import VersionDiffScreen
from version_diff.utils.config import SessionConfig, config
from version_diff.utils.io import read_text
from version_diff.utils.logger import log
from version_diff.utils.validation import BACKEND_NAMES, ValidationError, validate_session_config
from version_diff.versions.availability import VersionEnvironment
from version_diff.versions.descriptors import BackendType


class DiffApp(App):
    DEFAULT_CSS = """
    App {
        background: $surface-darken-3;
    }

    Screen {
        background: $surface-darken-3;
        width: 100%;
        height: 100%;
    }
    """

    def __init__(self, env: VersionEnvironment, backend: BackendType = BackendType.SYNC):
        """Initialize the diff application.

        Args:
            env: Collaborators the session reads history from
            backend: Backend shown first
        """
        super().__init__()
        self.env = env
        self.backend = BackendType(backend)

    def on_mount(self):
        self.push_screen(VersionDiffScreen(self.env, self.backend))


def _create_argument_parser():
    """Create and configure the command-line argument parser."""
    parser = argparse.ArgumentParser(description="Version Diff: compare versions of a file from sync, recovery or git")
    parser.add_argument('file', nargs='?', help='File whose history to compare')
    parser.add_argument('--backend', choices=BACKEND_NAMES, help='Backend to open first (default: sync)')
    parser.add_argument('--snapshot-dir', type=str, help='Directory holding recovery snapshots')
    parser.add_argument('--sync-url', type=str, help='WebSocket URL of the sync server (ws:// or wss://)')
    parser.add_argument('--repo', type=str, help='Directory inside the git repository (default: the file\'s folder)')
    parser.add_argument(
        '--snapshot',
        action='store_true',
        help='Record the file\'s current content into the snapshot directory and exit',
    )
    return parser


def _validate_configuration(args) -> SessionConfig:
    """Merge CLI arguments with VDIFF_* environment fallbacks and validate them."""
    session_config = SessionConfig.from_args(args).merge_with_env()
    try:
        return validate_session_config(session_config)
    except ValidationError as e:
        log(f"Configuration validation failed: {e}")
        sys.stderr.write(f"Configuration Error: {e}\n")
        sys.stderr.write("\nPlease check your arguments and try again.\n")
        sys.stderr.write("Use --help for usage information.\n")
        sys.exit(1)


def build_environment(session_config: SessionConfig) -> VersionEnvironment:
    """Wire the configured backends into a VersionEnvironment."""
    file_path = session_config.file_path
    return VersionEnvironment(
        file_path=file_path,
        reader=DiskReader(),
        sync_backend=WebSocketSyncBackend(session_config.sync_url, timeout=config.network_timeout)
        if session_config.sync_url
        else None,
        snapshot_store=DirectorySnapshotStore(session_config.snapshot_dir) if session_config.snapshot_dir else None,
        git_repo=GitRepository(session_config.repo_root or os.path.dirname(file_path), timeout=config.git_timeout),
    )


def _record_snapshot(session_config: SessionConfig) -> int:
    if not session_config.snapshot_dir:
        sys.stderr.write("Configuration Error: --snapshot needs --snapshot-dir (or VDIFF_SNAPSHOT_DIR)\n")
        return 1
    try:
        text, _enc = read_text(session_config.file_path)
        record = DirectorySnapshotStore(session_config.snapshot_dir).add(session_config.file_path, text)
    except OSError as e:
        log.error(f"[RECOVERY] Failed to record snapshot: {e}")
        sys.stderr.write(f"Error: could not record snapshot: {e}\n")
        return 1
    sys.stderr.write(f"Recorded snapshot {record.ts} of {session_config.file_path}\n")
    return 0


def main(argv=None):
    """Main entry point for Version Diff."""
    parser = _create_argument_parser()
    args = parser.parse_args(argv)

    session_config = _validate_configuration(args)
    if args.snapshot:
        sys.exit(_record_snapshot(session_config))

    log(f"Starting Version Diff on {session_config.file_path} ({session_config.backend})")
    DiffApp(build_environment(session_config), BackendType(session_config.backend)).run()


if __name__ == "__main__":
    main()
