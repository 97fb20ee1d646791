"""Base screen class shared by the diff and viewer screens.

Standardizes the composition pattern Header + main content + Footer and the
DataTable setup used by the version lists.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from rich.text import Text
from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import DataTable

from version_diff.utils.logger import log
from version_diff.widgets.footer import Footer
from version_diff.widgets.header import Header, page_title


@dataclass
class ColumnConfig:
    """Configuration for a single table column."""

    title: Union[str, Text]
    key: str
    width: Optional[int] = None
    justify: str = "left"  # left, center, right


@dataclass
class TableConfig:
    """Configuration for standardized DataTable setup."""

    zebra_stripes: bool = True
    cursor_type: str = "row"
    show_header: bool = True
    columns: List[ColumnConfig] = field(default_factory=list)

    def add_column(self, title: Union[str, Text], key: str, width: Optional[int] = None, justify: str = "left") -> None:
        """Add a column configuration."""
        self.columns.append(ColumnConfig(title, key, width, justify))


class BaseScreen(Screen):
    """Base class for all screens.

    Subclasses implement compose_main_content() and get_footer_text(); the
    header and footer are added here.
    """

    def __init__(self, page_name: str):
        super().__init__()
        self.page_name = page_name
        self.title = page_title(page_name)

    def compose(self) -> ComposeResult:
        yield Header(page_name=self.page_name, show_clock=True)
        yield from self.compose_main_content()
        yield Footer(text=self.get_footer_text())

    def compose_main_content(self) -> ComposeResult:
        """Define the main content area for this screen."""
        raise NotImplementedError("Subclasses must implement compose_main_content()")

    def get_footer_text(self) -> str:
        """Get footer text for this screen."""
        raise NotImplementedError("Subclasses must implement get_footer_text()")

    def set_page_name(self, page_name: str) -> None:
        """Rename the page shown in the header."""
        self.page_name = page_name
        self.title = page_title(page_name)
        try:
            self.query_one(Header).title = self.title
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to update header title: {e}")

    def _update_footer(self) -> None:
        """Re-render the footer after state that its hints depend on changed."""
        try:
            self.query_one(Footer).set_text(self.get_footer_text())
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to update footer: {e}")

    def action_go_back(self):
        """Standard back navigation action."""
        try:
            self.app.pop_screen()
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to go back: {e}")

    @staticmethod
    def setup_data_table(table: DataTable, config: Optional[TableConfig] = None) -> None:
        """Apply standard or custom DataTable configuration.

        Args:
            table: DataTable widget to configure
            config: Optional TableConfig with custom settings. If None, uses defaults.
        """
        if config is None:
            config = TableConfig()
        try:
            table.zebra_stripes = config.zebra_stripes
            table.cursor_type = config.cursor_type
            table.show_header = config.show_header
            for col in config.columns:
                title = col.title
                if not isinstance(title, Text) and col.justify != "left":
                    title = Text(str(title), justify=col.justify)
                table.add_column(title, key=col.key, width=col.width)
        except (AttributeError, RuntimeError) as e:
            log(f"[UI] Failed to apply table setup: {e}")
