from __future__ import annotations

from .descriptors import Side


class ContentCache:
    """Currently displayed text for each side.

    ``None`` marks a side whose fetch has not resolved yet, so a pending side is
    never mistaken for an empty file.
    """

    def __init__(self):
        self._content: dict[Side, str | None] = {Side.LEFT: None, Side.RIGHT: None}

    def set(self, side: Side, text: str | None) -> None:
        self._content[Side(side)] = text

    def get(self, side: Side) -> str | None:
        return self._content[Side(side)]

    def is_ready(self) -> bool:
        return all(value is not None for value in self._content.values())

    def diff_input(self) -> tuple[str | None, str | None]:
        """The (left, right) pair handed to the diff generator."""
        return self._content[Side.LEFT], self._content[Side.RIGHT]

    def reset(self) -> None:
        for side in self._content:
            self._content[side] = None
