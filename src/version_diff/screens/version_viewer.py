from __future__ import annotations

from rich.markup import escape
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static

from version_diff.utils.base_screen import BaseScreen
from version_diff.utils.io import split_lines
from version_diff.utils.logger import log
from version_diff.widgets.footer import hotkey


class VersionViewerScreen(BaseScreen):
    """Read-only view of one version's full text."""

    BINDINGS = [
        ("q", "go_back", "Back"),
        ("escape", "go_back", "Back"),
        ("j", "next_line", "Down"),
        ("k", "prev_line", "Up"),
        ("g", "home", "Top"),
        ("G", "end", "End"),
    ]

    DEFAULT_CSS = """
    #viewer-main-scroll {
        height: 1fr;
        overflow: auto;
    }
    .file-command {
        text-style: bold;
        padding: 0 1;
    }
    """

    def __init__(self, content: str, title: str, subtitle: str = ""):
        super().__init__(page_name=title)
        self.content = content
        self.subtitle = subtitle

    def compose_main_content(self) -> ComposeResult:
        with Vertical(id="viewer-main-scroll"):
            yield Static(escape(self.page_name), classes="file-command")
            if self.subtitle:
                yield Static(escape(self.subtitle), classes="file-subtitle")
            yield Static(self._numbered_content(), classes="file-content", markup=True)

    def get_footer_text(self) -> str:
        return " " + "    ".join([hotkey("q", "Back"), hotkey("j/k", "Scroll"), hotkey("g/G", "Top/End")])

    def _numbered_content(self) -> str:
        """Content with dimmed line numbers, markup-escaped."""
        lines = split_lines(self.content)
        return "\n".join(f"[dim]{i:>6} │ [/dim]{escape(line)}" for i, line in enumerate(lines, start=1))

    def _scroll(self, method: str) -> None:
        try:
            getattr(self.query_one("#viewer-main-scroll"), method)(animate=False)
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to {method}: {e}")

    def action_next_line(self):
        self._scroll("scroll_down")

    def action_prev_line(self):
        self._scroll("scroll_up")

    def action_home(self):
        self._scroll("scroll_home")

    def action_end(self):
        self._scroll("scroll_end")
