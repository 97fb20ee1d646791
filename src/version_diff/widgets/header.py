from textual.widgets import Header as TextualHeader

APP_NAME = "Version Diff"


def page_title(page_name: str = "") -> str:
    return f"{APP_NAME} | {page_name}" if page_name else APP_NAME


class Header(TextualHeader):
    DEFAULT_CSS = """
    Header {
        background: $panel-darken-2;
        text-style: bold;
    }
    """

    def __init__(self, page_name: str = "", show_clock: bool = False):
        super().__init__(show_clock=show_clock)
        self.title = page_title(page_name)
