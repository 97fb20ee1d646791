"""User-facing text per backend: titles, list warnings and remediation guides."""

from __future__ import annotations

from dataclasses import dataclass

from .descriptors import BackendType


@dataclass(frozen=True)
class RemediationGuide:
    """Shown instead of a diff when a backend cannot provide a comparison."""

    title: str
    intro: str
    steps: tuple[str, ...]


GUIDES: dict[BackendType, RemediationGuide] = {
    BackendType.SYNC: RemediationGuide(
        title="Sync not available",
        intro="To use Sync version history:",
        steps=(
            "Start the sync server and pass its address with --sync-url (or VDIFF_SYNC_URL)",
            "Make sure the server holds this file",
            "Make sure the file has been synced at least twice",
        ),
    ),
    BackendType.GIT: RemediationGuide(
        title="Git not available",
        intro="To use Git version history:",
        steps=(
            "Install git and make sure it is on your PATH",
            "Keep the file inside a git repository (or pass --repo)",
            "Commit changes to create version history",
        ),
    ),
    BackendType.RECOVERY: RemediationGuide(
        title="No recovery snapshots",
        intro="File Recovery compares the file against periodic snapshots.",
        steps=(
            "Point --snapshot-dir (or VDIFF_SNAPSHOT_DIR) at your snapshot directory",
            "Record snapshots with: version-diff FILE --snapshot",
        ),
    ),
}

TITLES: dict[BackendType, str] = {
    BackendType.SYNC: "Sync Diff",
    BackendType.RECOVERY: "File Recovery Diff",
    BackendType.GIT: "Git Diff",
}

WARNINGS: dict[BackendType, str] = {
    BackendType.SYNC: "Versions are shown as stored on the sync server.",
    BackendType.RECOVERY: "Snapshots are kept only for a limited time.",
    BackendType.GIT: "Only committed versions are listed besides the state on disk.",
}


def guide_for(kind: BackendType) -> RemediationGuide:
    return GUIDES[BackendType(kind)]


def render_guide(kind: BackendType) -> str:
    """Rich markup for the remediation guide of ``kind``."""
    guide = guide_for(kind)
    lines = [f"[b]{guide.title}[/b]", "", guide.intro]
    lines.extend(f"  {number}. {step}" for number, step in enumerate(guide.steps, start=1))
    return "\n".join(lines)
