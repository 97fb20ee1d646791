from __future__ import annotations

from typing import Iterable

from .logger import log

DEFAULT_ENCODINGS: tuple[str, ...] = (
    # utf-8-sig also decodes plain UTF-8 and drops a leading BOM
    "utf-8-sig",
    "cp1252",
    "latin-1",
)


def decode_bytes(data: bytes, encodings: Iterable[str] = DEFAULT_ENCODINGS) -> tuple[str, str]:
    """Decode raw bytes trying multiple encodings in order.

    Returns (text, used_encoding). When every strict attempt fails, the last
    encoding is retried with errors="ignore" and a warning is logged.
    """
    last_enc = ""
    for enc in encodings:
        last_enc = enc
        try:
            return data.decode(enc), enc
        except UnicodeDecodeError:
            continue
    log.warning(f"[IO] Decoded with ignore ({last_enc})")
    return data.decode(last_enc or "utf-8", errors="ignore"), f"{last_enc}+ignore"


def read_text(path: str, encodings: Iterable[str] = DEFAULT_ENCODINGS) -> tuple[str, str]:
    """Read a text file trying multiple encodings in order.

    Returns (text, used_encoding). OSError propagates so callers can tell a
    missing file apart from an empty one.
    """
    with open(path, "rb") as f:
        raw = f.read()
    return decode_bytes(raw, encodings)


def split_lines(text: str | None) -> list[str]:
    """Split text into lines without trailing newline characters."""
    if not text:
        return []
    return text.splitlines()
