"""Read-only access to a file's git history through the git executable."""

from __future__ import annotations

import asyncio
import os
import shutil
from dataclasses import dataclass
from datetime import datetime

from version_diff.utils.config import config
from version_diff.utils.error_handling import log_process_error
from version_diff.utils.io import decode_bytes
from version_diff.utils.logger import log

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
# hash, author date, author name, author email, refs, subject, body
LOG_FORMAT = "%x1e%H%x1f%aI%x1f%an%x1f%ae%x1f%D%x1f%s%x1f%b%x1f"


class GitCommandError(Exception):
    """A git invocation failed, timed out, or git is missing."""

    pass


@dataclass(frozen=True)
class GitCommit:
    """Commit metadata for one entry of a file's log."""

    hash: str
    date: datetime
    message: str
    body: str
    refs: str
    author_name: str
    author_email: str
    file_name: str


def parse_log_output(output: str) -> list[GitCommit]:
    """Parse ``git log --name-only`` output produced with ``LOG_FORMAT``."""
    commits: list[GitCommit] = []
    for record in output.split(RECORD_SEP):
        if not record.strip():
            continue
        parts = record.split(FIELD_SEP)
        if len(parts) < 8:
            log.debug(f"[GIT] Skipping malformed log record: {record[:80]!r}")
            continue
        commit_hash, date, author_name, author_email, refs, subject, body = parts[:7]
        names = [line.strip() for line in parts[7].splitlines() if line.strip()]
        try:
            when = datetime.fromisoformat(date.strip())
        except ValueError:
            log.debug(f"[GIT] Unparseable commit date {date!r} for {commit_hash}")
            continue
        commits.append(
            GitCommit(
                hash=commit_hash.strip(),
                date=when,
                message=subject,
                body=body.strip(),
                refs=refs.strip(),
                author_name=author_name,
                author_email=author_email,
                file_name=names[-1] if names else "",
            )
        )
    return commits


class GitRepository:
    """Runs git subcommands against the work tree containing ``start_dir``."""

    def __init__(self, start_dir: str, timeout: float | None = None):
        self.start_dir = start_dir
        self.timeout = timeout if timeout is not None else config.git_timeout
        self.root: str | None = None

    async def _run(self, *args: str, cwd: str | None = None) -> str:
        if shutil.which("git") is None:
            raise GitCommandError("git executable not found")
        try:
            proc = await asyncio.create_subprocess_exec(
                "git",
                *args,
                cwd=cwd or self.root or self.start_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log_process_error("git", f"starting {args[0]}", e)
            raise GitCommandError(f"Could not start git: {e}") from e
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            log_process_error("git", f"running {args[0]}", e, pid=proc.pid)
            raise GitCommandError(f"git {args[0]} timed out after {self.timeout}s") from e
        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise GitCommandError(f"git {args[0]} exited with {proc.returncode}: {message}")
        text, _enc = decode_bytes(stdout)
        return text

    async def is_available(self) -> bool:
        """True when git is installed and ``start_dir`` is inside a work tree."""
        if self.root is not None:
            return True
        try:
            top = await self._run("rev-parse", "--show-toplevel", cwd=self.start_dir)
        except GitCommandError as e:
            log.debug(f"[GIT] Not available for {self.start_dir}: {e}")
            return False
        self.root = top.strip()
        return bool(self.root)

    def relative_path(self, path: str) -> str:
        """Repository-relative, forward-slash form of ``path``."""
        root = self.root or self.start_dir
        return os.path.relpath(os.path.abspath(path), root).replace(os.sep, "/")

    async def log(self, path: str) -> list[GitCommit]:
        """Commit history of ``path`` (following renames), newest first."""
        if not await self.is_available():
            raise GitCommandError(f"{self.start_dir} is not inside a git work tree")
        output = await self._run(
            "log", "--follow", "--name-only", f"--format={LOG_FORMAT}", "--", self.relative_path(path)
        )
        return parse_log_output(output)

    async def show(self, commit_hash: str, file_name: str) -> str:
        """Content of ``file_name`` (repository-relative) as of ``commit_hash``."""
        if not await self.is_available():
            raise GitCommandError(f"{self.start_dir} is not inside a git work tree")
        return await self._run("show", f"{commit_hash}:{file_name}")
