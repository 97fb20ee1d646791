"""version_diff: compare two versions of one file from sync, recovery or git history."""

__version__ = "0.1.0"
