"""Diff computation for two version contents.

Produces both a unified diff text (the patch handed to renderers) and a
line-by-line row model for side-by-side display, using Python's difflib.
"""

from dataclasses import dataclass
from difflib import SequenceMatcher, unified_diff
from enum import Enum
from typing import Optional

from .io import split_lines


class DiffType(Enum):
    """Enumeration of diff row types."""

    UNCHANGED = "equal"
    ADDED = "insert"
    DELETED = "delete"
    MODIFIED = "replace"


@dataclass
class DiffRow:
    """Represents a single row in a diff comparison."""

    diff_type: DiffType
    left_line_num: Optional[int]
    right_line_num: Optional[int]
    left_content: str
    right_content: str


def make_unified_diff(left_text: str, right_text: str, name: str, context_lines: int = 3) -> str:
    """Unified diff of two texts with both headers labelled ``name``.

    Returns an empty string when the texts are identical.
    """
    lines = unified_diff(
        left_text.splitlines(keepends=True),
        right_text.splitlines(keepends=True),
        fromfile=name,
        tofile=name,
        n=context_lines,
    )
    out: list[str] = []
    for line in lines:
        out.append(line if line.endswith("\n") else line + "\n\\ No newline at end of file\n")
    return "".join(out)


def count_changed_lines(rows: list[DiffRow]) -> int:
    """Number of rows that are not unchanged."""
    return sum(1 for row in rows if row.diff_type != DiffType.UNCHANGED)


def compute_diff_rows(old_input, new_input) -> list[DiffRow]:
    """Compute diff rows between two texts or line lists.

    Args:
        old_input: Either full text (str) or a list of lines
        new_input: Either full text (str) or a list of lines

    Returns:
        List of DiffRow objects representing the comparison
    """
    old_lines = _get_lines_from_input(old_input)
    new_lines = _get_lines_from_input(new_input)

    state = _initialize_diff_state(old_lines, new_lines)

    for opcode in state["matcher"].get_opcodes():
        _process_opcode(opcode, state)

    return state["rows"]


def _get_lines_from_input(input_data) -> list[str]:
    """Get lines from either text or list input."""
    if isinstance(input_data, str):
        return split_lines(input_data)
    if isinstance(input_data, list):
        return input_data
    return []


def _initialize_diff_state(old_lines: list[str], new_lines: list[str]) -> dict:
    """Initialize state for diff computation."""
    return {
        "rows": [],
        "matcher": SequenceMatcher(None, old_lines, new_lines, autojunk=False),
        "old_lines": old_lines,
        "new_lines": new_lines,
        "old_idx": 1,
        "new_idx": 1,
    }


def _process_opcode(opcode: tuple, state: dict):
    """Process a single opcode and dispatch to appropriate handler."""
    tag, i1, i2, j1, j2 = opcode

    if tag == 'equal':
        _handle_equal_lines(i1, i2, j1, state)
    elif tag == 'replace':
        _handle_replace_lines(i1, i2, j1, j2, state)
    elif tag == 'delete':
        _handle_delete_lines(i1, i2, state)
    elif tag == 'insert':
        _handle_insert_lines(j1, j2, state)


def _handle_equal_lines(i1: int, i2: int, j1: int, state: dict):
    for k in range(i2 - i1):
        state["rows"].append(
            DiffRow(
                diff_type=DiffType.UNCHANGED,
                left_line_num=state["old_idx"],
                left_content=state["old_lines"][i1 + k],
                right_line_num=state["new_idx"],
                right_content=state["new_lines"][j1 + k],
            )
        )
        state["old_idx"] += 1
        state["new_idx"] += 1


def _handle_replace_lines(i1: int, i2: int, j1: int, j2: int, state: dict):
    """Pair replaced lines up; the shorter side is padded with blank rows."""
    for k in range(max(i2 - i1, j2 - j1)):
        has_old = i1 + k < i2
        has_new = j1 + k < j2
        state["rows"].append(
            DiffRow(
                diff_type=DiffType.MODIFIED,
                left_line_num=state["old_idx"] if has_old else None,
                left_content=state["old_lines"][i1 + k] if has_old else "",
                right_line_num=state["new_idx"] if has_new else None,
                right_content=state["new_lines"][j1 + k] if has_new else "",
            )
        )
        if has_old:
            state["old_idx"] += 1
        if has_new:
            state["new_idx"] += 1


def _handle_delete_lines(i1: int, i2: int, state: dict):
    for k in range(i2 - i1):
        state["rows"].append(
            DiffRow(
                diff_type=DiffType.DELETED,
                left_line_num=state["old_idx"],
                left_content=state["old_lines"][i1 + k],
                right_line_num=None,
                right_content="",
            )
        )
        state["old_idx"] += 1


def _handle_insert_lines(j1: int, j2: int, state: dict):
    for k in range(j2 - j1):
        state["rows"].append(
            DiffRow(
                diff_type=DiffType.ADDED,
                left_line_num=None,
                left_content="",
                right_line_num=state["new_idx"],
                right_content=state["new_lines"][j1 + k],
            )
        )
        state["new_idx"] += 1
