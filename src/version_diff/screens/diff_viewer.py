"""Version diff screen: pick two versions of one file and compare them.

Layout, top to bottom:
- a backend switcher (1 Sync, 2 Recovery, 3 Git)
- two version lists, LEFT (older by default) and RIGHT (newest by default)
- either a remediation guide (backend unavailable) or the diff, shown
  side by side with word-level coloring or as unified diff text ('u')

Left/right arrows pick which list up/down moves; every async operation runs
in a Textual worker and the session drops results that arrive late.
"""

from __future__ import annotations

import re
from difflib import SequenceMatcher

from rich.markup import escape
from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Static

from version_diff.utils.base_screen import BaseScreen, TableConfig
from version_diff.utils.config import config
from version_diff.utils.diff_engine import DiffRow, DiffType, count_changed_lines
from version_diff.utils.error_handling import log_ui_error, log_watchdog_error
from version_diff.utils.fs import format_size, format_time, format_timestamp
from version_diff.utils.logger import log
from version_diff.utils.watchdog import watch_file
from version_diff.versions.availability import VersionEnvironment
from version_diff.versions.descriptors import BackendType, Side, VersionDescriptor
from version_diff.versions.errors import AdapterError, SelectionOutOfRangeError, SessionStateError
from version_diff.versions.guides import TITLES, WARNINGS, render_guide
from version_diff.versions.session import DiffSession, SessionState
from version_diff.widgets.footer import hotkey

from .version_viewer import VersionViewerScreen

SWITCH_KEYS = {BackendType.SYNC: "1", BackendType.RECOVERY: "2", BackendType.GIT: "3"}


def table_config_for(kind: BackendType) -> TableConfig:
    """Columns of the version lists for ``kind``."""
    cfg = TableConfig()
    if kind is BackendType.GIT:
        cfg.add_column("Message", key="message")
        cfg.add_column("Date", key="date")
        cfg.add_column("Author", key="author")
        cfg.add_column("Hash", key="hash", width=7)
        cfg.add_column("Refs", key="refs")
    else:
        cfg.add_column("Date", key="date")
        cfg.add_column("Time", key="time")
        cfg.add_column("Size", key="size", justify="right")
        if kind is BackendType.SYNC:
            cfg.add_column("Device", key="device")
    return cfg


def descriptor_cells(kind: BackendType, descriptor: VersionDescriptor, current_name: str | None = None) -> list[Text]:
    """One row of list cells for ``descriptor``.

    Git rows mention the historical file name when it differs from
    ``current_name``.
    """
    date = format_timestamp(descriptor.timestamp, "%a %b %d %Y")
    if kind is BackendType.GIT:
        if descriptor.is_disk_state:
            return [Text(descriptor.label, style="bold"), Text(date), Text(""), Text(""), Text("")]
        message = descriptor.label
        if descriptor.file_name and current_name and descriptor.file_name != current_name:
            message = f"{message} (Old name: {descriptor.file_name})"
        return [
            Text(message),
            Text(f"{date} {format_time(descriptor.timestamp)}"),
            Text(descriptor.author_name),
            Text(descriptor.short_hash, style="dim"),
            Text(descriptor.refs, style="yellow"),
        ]
    if descriptor.is_disk_state:
        cells = [Text(descriptor.label, style="bold"), Text(""), Text("")]
    else:
        cells = [
            Text(date),
            Text(format_time(descriptor.timestamp)),
            Text(format_size(descriptor.size_bytes), justify="right"),
        ]
    if kind is BackendType.SYNC:
        cells.append(Text(descriptor.device))
    return cells


def diff_colors(color_blind: bool) -> tuple[str, str]:
    """(deleted, inserted) colors."""
    return ("dark_orange", "dodger_blue1") if color_blind else ("red", "green")


def _clamp(s: str, limit: int) -> str:
    if limit and len(s) > limit:
        return s[:limit] + " …"
    return s


def word_diff(old_text: str, new_text: str, colors: tuple[str, str] = ("red", "green")) -> tuple[str, str]:
    """Return (left_markup, right_markup) with word-level coloring.

    - Unchanged: default color
    - Deletions (only in old): left side, first color
    - Insertions (only in new): right side, second color
    """
    deleted, inserted = colors
    o_tokens = re.split(r"(\s+)", old_text)
    n_tokens = re.split(r"(\s+)", new_text)
    sm = SequenceMatcher(None, o_tokens, n_tokens)
    left_parts: list[str] = []
    right_parts: list[str] = []
    for tag, i1, i2, j1, j2 in sm.get_opcodes():
        seg_o = escape("".join(o_tokens[i1:i2]))
        seg_n = escape("".join(n_tokens[j1:j2]))
        if tag == "equal":
            left_parts.append(seg_o)
            right_parts.append(seg_n)
            continue
        if seg_o:
            left_parts.append(f"[{deleted}]{seg_o}[/{deleted}]")
        if seg_n:
            right_parts.append(f"[{inserted}]{seg_n}[/{inserted}]")
    return "".join(left_parts), "".join(right_parts)


def render_side_by_side(rows: list[DiffRow], color_blind: bool = False, max_chars: int = 0) -> tuple[list[str], list[str]]:
    """Render diff rows into numbered left and right markup lines."""
    colors = diff_colors(color_blind)

    def ln(n: int | None) -> str:
        # 6 digits + " | "; blank padding keeps missing lines aligned
        return f"{n:>6} | " if n is not None else " " * 9

    left_lines: list[str] = []
    right_lines: list[str] = []
    for row in rows:
        old = _clamp(row.left_content, max_chars)
        new = _clamp(row.right_content, max_chars)
        if row.diff_type == DiffType.DELETED:
            lmk, _ = word_diff(old, "", colors)
            rmk = ""
        elif row.diff_type == DiffType.ADDED:
            _, rmk = word_diff("", new, colors)
            lmk = ""
        else:
            lmk, rmk = word_diff(old, new, colors)
        left_lines.append(f"{ln(row.left_line_num)}{lmk}")
        right_lines.append(f"{ln(row.right_line_num)}{rmk}")
    return left_lines, right_lines


def render_unified(patch: str, color_blind: bool = False) -> str:
    """Colorize unified diff text as markup."""
    if not patch:
        return "[dim]No differences[/dim]"
    deleted, inserted = diff_colors(color_blind)
    out: list[str] = []
    for line in patch.splitlines():
        text = escape(line)
        if line.startswith(("+++", "---")):
            out.append(f"[b]{text}[/b]")
        elif line.startswith("@@"):
            out.append(f"[cyan]{text}[/cyan]")
        elif line.startswith("+"):
            out.append(f"[{inserted}]{text}[/{inserted}]")
        elif line.startswith("-"):
            out.append(f"[{deleted}]{text}[/{deleted}]")
        else:
            out.append(text)
    return "\n".join(out)


class VersionDiffScreen(BaseScreen):
    """Compare two versions of one file from a switchable backend."""

    BINDINGS = [
        ("q", "go_back", "Back"),
        ("1", "switch_backend('sync')", "Sync"),
        ("2", "switch_backend('recovery')", "Recovery"),
        ("3", "switch_backend('git')", "Git"),
        ("left", "focus_side('left')", "Left list"),
        ("right", "focus_side('right')", "Right list"),
        ("up", "navigate(-1)", "Newer"),
        ("down", "navigate(1)", "Older"),
        ("m", "load_more", "Load more"),
        ("v", "view_left", "View"),
        ("u", "toggle_unified", "Unified"),
        ("r", "reload", "Reload"),
    ]

    DEFAULT_CSS = """
    #diff-root {
        width: 100%;
        height: 100%;
    }
    #backend-switcher, #list-warning {
        padding: 0 1;
    }
    #version-lists {
        height: 12;
    }
    #version-lists > .side-pane {
        width: 1fr;
        border: round $panel;
    }
    #version-lists > .side-pane.focused-side {
        border: round $accent;
    }
    #load-more {
        width: 100%;
        height: 1;
        border: none;
        min-width: 0;
    }
    #guide {
        padding: 1 2;
    }
    #diff-columns {
        width: 100%;
        height: 1fr;
    }
    #diff-columns > .file-panel {
        width: 1fr;
        height: 1fr;
        margin: 0 1;
    }
    .file-content, #unified-panel {
        height: 1fr;
        overflow: auto;
    }
    """

    def __init__(self, env: VersionEnvironment, backend: BackendType = BackendType.SYNC) -> None:
        super().__init__(page_name=TITLES[BackendType(backend)])
        self.env = env
        self.session = DiffSession(env)
        self.initial_backend = BackendType(backend)
        self.focused_side = Side.LEFT
        self.show_unified = False
        self._tables: dict[Side, DataTable] = {}
        self._stop_watch = None

    def compose_main_content(self) -> ComposeResult:
        with Vertical(id="diff-root"):
            yield Static("", id="backend-switcher")
            yield Static("", id="list-warning")
            with Horizontal(id="version-lists"):
                for side in (Side.LEFT, Side.RIGHT):
                    table = DataTable(id=f"{side.value}-versions")
                    # Keys are handled by the screen, never by the lists
                    table.can_focus = False
                    self._tables[side] = table
                    yield Vertical(
                        Static(side.value.title(), classes="pane-title"),
                        table,
                        id=f"{side.value}-pane",
                        classes="side-pane",
                    )
            load_more = Button("Load more", id="load-more")
            load_more.can_focus = False
            load_more.display = False
            yield load_more
            yield Static("", id="guide")
            with Horizontal(id="diff-columns"):
                for side in (Side.LEFT, Side.RIGHT):
                    yield Vertical(
                        Static("", classes="file-title"),
                        Vertical(Static("", classes="file-text", markup=True), classes="file-content"),
                        id=f"{side.value}-panel",
                        classes="file-panel",
                    )
            with Vertical(id="unified-panel"):
                yield Static("", id="unified-text", markup=True)

    def get_footer_text(self) -> str:
        hints = [
            hotkey("q", "Back"),
            hotkey("1/2/3", "Backend"),
            hotkey("←/→", f"Side: {self.focused_side.value}"),
            hotkey("↑/↓", "Version"),
            hotkey("u", "Unified" if not self.show_unified else "Side by side"),
            hotkey("v", "View left"),
            hotkey("r", "Reload"),
        ]
        if self.session.has_more:
            hints.append(hotkey("m", "Load more"))
        return " " + "    ".join(hints)

    async def on_mount(self):
        self._render_switcher()
        self._render_focus()
        self._render_body()
        self._start_file_watch()
        self.run_worker(self._switch(self.initial_backend), group="session")

    def action_go_back(self):
        """Leaving the diff screen ends the app."""
        self.app.exit()

    def on_unmount(self):
        if self._stop_watch:
            try:
                self._stop_watch()
            except (RuntimeError, OSError) as e:
                log_watchdog_error(self.env.file_path, "stop", e)
            self._stop_watch = None
        self.session.close()

    # ------------------------------------------------------------ file watch

    def _start_file_watch(self) -> None:
        def on_change():
            try:
                self.app.call_from_thread(self._on_disk_change)
            except RuntimeError as e:
                log_watchdog_error(self.env.file_path, "deliver change", e)

        try:
            _observer, self._stop_watch = watch_file(self.env.file_path, on_change, debounce_ms=config.debounce_ms)
        except (OSError, RuntimeError) as e:
            log_watchdog_error(self.env.file_path, "start", e)
            self._stop_watch = None

    def _on_disk_change(self) -> None:
        self.run_worker(self._refresh_disk_state(), group="disk")

    async def _refresh_disk_state(self) -> None:
        try:
            refreshed = await self.session.refresh_disk_state()
        except SessionStateError as e:
            log.debug(f"[UI] Ignoring disk refresh: {e}")
            return
        except AdapterError as e:
            self._notify_error(e)
            self._render_body()
            return
        if refreshed:
            log.debug(f"[UI] Disk state refreshed on {', '.join(s.value for s in refreshed)}")
            self._render_body()

    # -------------------------------------------------------------- workers

    async def _switch(self, kind: BackendType) -> None:
        self.set_page_name(TITLES[kind])
        self._render_switcher()
        self._render_body()
        try:
            await self.session.switch_backend(kind)
        except AdapterError as e:
            self._notify_error(e)
        self._render_all()
        if self.session.state is SessionState.READY and self.session.error is not None:
            self._notify_error(self.session.error)

    async def _reload(self) -> None:
        if self.session.backend is None:
            return
        self._render_body()
        await self.session.reload()
        self._render_all()

    async def _select(self, side: Side, index: int) -> None:
        try:
            result = await self.session.select_version(side, index)
        except SelectionOutOfRangeError as e:
            log(f"[UI] Ignoring selection: {e}")
            return
        except SessionStateError as e:
            log.debug(f"[UI] Ignoring selection: {e}")
            return
        except AdapterError as e:
            self._notify_error(e)
            result = None
        if result is not None or self.session.cache.get(side) is None:
            self._render_cursor(side)
            self._render_body()

    async def _navigate(self, side: Side, delta: int) -> None:
        try:
            result = await self.session.navigate(side, delta)
        except SessionStateError as e:
            log.debug(f"[UI] Ignoring navigation: {e}")
            return
        except AdapterError as e:
            self._notify_error(e)
            result = None
        if result is None and self.session.cache.get(side) is not None:
            return
        self._render_cursor(side)
        self._render_body()

    async def _load_more(self) -> None:
        try:
            added = await self.session.load_more()
        except SessionStateError as e:
            log.debug(f"[UI] Ignoring load more: {e}")
            return
        except AdapterError as e:
            self._notify_error(e)
            return
        if added:
            self._render_tables()
        self._render_load_more()
        self._update_footer()

    # -------------------------------------------------------------- actions

    def action_switch_backend(self, name: str) -> None:
        self.run_worker(self._switch(BackendType(name)), group="session")

    def action_focus_side(self, name: str) -> None:
        self.focused_side = Side(name)
        self._render_focus()
        self._update_footer()

    def action_navigate(self, delta: int) -> None:
        side = self.focused_side
        model = self.session.left if side is Side.LEFT else self.session.right
        if self.session.state is not SessionState.READY or model is None:
            return
        target = model.active_index + delta
        if not 0 <= target < len(model):
            return
        # Highlight immediately; content follows when the fetch resolves
        self._move_cursor(side, target)
        self.run_worker(self._navigate(side, delta), group=f"select-{side.value}")

    def action_load_more(self) -> None:
        if self.session.has_more:
            self.run_worker(self._load_more(), group="pagination")

    def action_reload(self) -> None:
        self.run_worker(self._reload(), group="session")

    def action_toggle_unified(self) -> None:
        self.show_unified = not self.show_unified
        self._render_body()
        self._update_footer()

    def action_view_left(self) -> None:
        content = self.session.cache.get(Side.LEFT)
        model = self.session.left
        if content is None or model is None:
            self.notify("Left version is still loading", severity="warning")
            return
        descriptor = model.active
        subtitle = format_timestamp(descriptor.timestamp)
        self.app.push_screen(VersionViewerScreen(content, title=self._descriptor_title(descriptor), subtitle=subtitle))

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        table_id = event.data_table.id or ""
        side = Side.LEFT if table_id.startswith("left") else Side.RIGHT
        model = self.session.left if side is Side.LEFT else self.session.right
        self.focused_side = side
        self._render_focus()
        self._update_footer()
        if model is None:
            return
        # Reselecting the active row retries a side whose fetch failed
        if event.cursor_row == model.active_index and self.session.cache.get(side) is not None:
            return
        self.run_worker(self._select(side, event.cursor_row), group=f"select-{side.value}")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "load-more":
            self.action_load_more()

    # ------------------------------------------------------------ rendering

    def _notify_error(self, error: Exception) -> None:
        log_ui_error("diff screen", "async operation", error)
        try:
            self.notify(str(error), severity="error")
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to notify: {e}")

    def _descriptor_title(self, descriptor: VersionDescriptor) -> str:
        if self.session.backend is BackendType.GIT and not descriptor.is_disk_state:
            return f"{descriptor.short_hash} {descriptor.label}"
        if descriptor.is_disk_state:
            return descriptor.label
        return format_timestamp(descriptor.timestamp)

    def _render_all(self) -> None:
        self._render_switcher()
        self._render_tables()
        self._render_load_more()
        self._render_body()
        self._update_footer()

    def _render_switcher(self) -> None:
        availability = self.session.availability
        active = self.session.backend or self.initial_backend
        parts = []
        for kind in BackendType:
            label = f"{SWITCH_KEYS[kind]} {kind.label}"
            if kind is active:
                parts.append(f"[b reverse] {label} [/b reverse]")
            elif self.session.state is not SessionState.UNINITIALIZED and not availability.allows(kind):
                parts.append(f"[dim] {label} [/dim]")
            else:
                parts.append(f" {label} ")
        try:
            self.query_one("#backend-switcher", Static).update(Text.from_markup("  ".join(parts)))
            warning = WARNINGS.get(active, "") if self.session.state is SessionState.READY else ""
            self.query_one("#list-warning", Static).update(Text(warning, style="dim italic"))
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to render backend switcher: {e}")

    def _render_focus(self) -> None:
        try:
            for side in (Side.LEFT, Side.RIGHT):
                pane = self.query_one(f"#{side.value}-pane")
                pane.set_class(side is self.focused_side, "focused-side")
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to render focus: {e}")

    def _render_tables(self) -> None:
        kind = self.session.backend
        left, right = self.session.timelines()
        current_name = left[0].file_name if left else None
        for side, descriptors in ((Side.LEFT, left), (Side.RIGHT, right)):
            table = self._tables.get(side)
            if table is None:
                continue
            try:
                table.clear(columns=True)
                if kind is None or not descriptors:
                    continue
                self.setup_data_table(table, table_config_for(kind))
                for descriptor in descriptors:
                    table.add_row(*descriptor_cells(kind, descriptor, current_name))
            except (AttributeError, RuntimeError) as e:
                log(f"[UI] Failed to fill {side.value} list: {e}")
            self._render_cursor(side)

    def _render_cursor(self, side: Side) -> None:
        model = self.session.left if side is Side.LEFT else self.session.right
        if model is not None:
            self._move_cursor(side, model.active_index)

    def _move_cursor(self, side: Side, row: int) -> None:
        table = self._tables.get(side)
        if table is None or row >= table.row_count:
            return
        try:
            table.move_cursor(row=row)
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to move {side.value} cursor: {e}")

    def _render_load_more(self) -> None:
        try:
            self.query_one("#load-more", Button).display = self.session.has_more
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to toggle load more: {e}")

    def _render_body(self) -> None:
        """Show the guide, a loading placeholder or the diff."""
        state = self.session.state
        unavailable = state is SessionState.UNAVAILABLE
        try:
            guide = self.query_one("#guide", Static)
            columns = self.query_one("#diff-columns")
            unified = self.query_one("#unified-panel")
            lists = self.query_one("#version-lists")
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to query diff body: {e}")
            return

        guide.display = unavailable
        lists.display = not unavailable
        columns.display = not unavailable and not self.show_unified
        unified.display = not unavailable and self.show_unified
        if unavailable and self.session.backend is not None:
            detail = f"\n\n[dim]{escape(str(self.session.error))}[/dim]" if self.session.error else ""
            guide.update(Text.from_markup(render_guide(self.session.backend) + detail))
            return
        if state is not SessionState.READY:
            self._set_panels(["[dim]Loading…[/dim]"], ["[dim]Loading…[/dim]"], "Loading…", "Loading…")
            self.query_one("#unified-text", Static).update(Text.from_markup("[dim]Loading…[/dim]"))
            return

        titles = []
        for side in (Side.LEFT, Side.RIGHT):
            model = self.session.left if side is Side.LEFT else self.session.right
            titles.append(escape(self._descriptor_title(model.active)) if model else "")

        if self.show_unified:
            patch = self.session.unified_diff()
            text = "[dim]Loading…[/dim]" if patch is None else render_unified(patch, config.color_blind)
            self.query_one("#unified-text", Static).update(Text.from_markup(text))
            return

        rows = self.session.diff_rows()
        if rows is None:
            left = ["[dim]Loading…[/dim]"] if self.session.cache.get(Side.LEFT) is None else []
            right = ["[dim]Loading…[/dim]"] if self.session.cache.get(Side.RIGHT) is None else []
            self._set_panels(left, right, titles[0], titles[1])
            return
        left_lines, right_lines = render_side_by_side(rows, config.color_blind, config.max_preview_chars)
        changed = count_changed_lines(rows)
        self._set_panels(left_lines, right_lines, titles[0], f"{titles[1]}  [dim]({changed} changed)[/dim]")

    def _set_panels(self, left_lines: list[str], right_lines: list[str], left_title: str, right_title: str) -> None:
        try:
            for side, lines, title in ((Side.LEFT, left_lines, left_title), (Side.RIGHT, right_lines, right_title)):
                panel = self.query_one(f"#{side.value}-panel")
                panel.query_one(".file-title", Static).update(Text.from_markup(title))
                panel.query_one(".file-text", Static).update(Text.from_markup("\n".join(lines)))
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to update diff panels: {e}")
