from rich.text import Text
from textual.widgets import Static


def hotkey(key: str, label: str) -> str:
    """Markup for one ``key label`` hint."""
    return f"[orange1]{key}[/orange1] {label}"


class Footer(Static):
    """A simple footer widget for displaying contextual keybindings."""

    def __init__(self, text: str | None = None, classes: str = "footer") -> None:
        content = text if text is not None else " " + hotkey("q", "Back")
        super().__init__(Text.from_markup(content), classes=classes)

    def set_text(self, text: str) -> None:
        self.update(Text.from_markup(text))
