"""
Text normalization for fetched exports.

Responsibilities:
- bytes -> text (UTF-8 first, charset-normalizer best guess otherwise)
- line ending normalization (CRLF/CR -> LF)
- BOM and non-breaking space removal
- tab run collapsing

Comment and blank lines are kept: deciding what they mean is the parser's job.
"""

from __future__ import annotations

import re
from typing import Iterator

from charset_normalizer import from_bytes

from .rules import COMMENT_MARKER

BOM = "\ufeff"
NBSP = "\u00a0"

_TAB_RUN = re.compile(r"\t+")


def decode_document(raw: bytes) -> str:
    """
    Decode a downloaded document to text.

    Rules:
    - UTF-8 (with or without BOM) is tried first; it is what the exports use.
    - Otherwise decode with charset-normalizer's best guess.
    - If that fails too, decode UTF-8 with replacement characters.
    """
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    match = from_bytes(raw).best()
    if match is not None:
        try:
            return raw.decode(match.encoding)
        except (LookupError, UnicodeDecodeError):
            pass

    return raw.decode("utf-8", errors="replace")


def split_lines(text: str) -> list[str]:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if text.startswith(BOM):
        text = text[1:]
    return text.split("\n")


def normalize_line(line: str, collapse_tabs: bool = True) -> str:
    """Strip BOM/NBSP, optionally collapse tab runs, and trim."""
    if line.startswith(BOM):
        line = line[1:]
    line = line.replace(NBSP, " ")
    if collapse_tabs:
        line = _TAB_RUN.sub("\t", line)
    return line.strip()


def is_blank(line: str) -> bool:
    return not line


def is_comment(line: str) -> bool:
    return line.startswith(COMMENT_MARKER)


class NormalizedLines:
    """
    Restartable, lazily evaluated view over the normalized lines of a text.

    Each iteration re-scans the source, so the sequence can be consumed any
    number of times and never holds more than one normalized line.
    """

    def __init__(self, text: str, collapse_tabs: bool = True) -> None:
        self._text = text
        self._collapse_tabs = collapse_tabs

    def __iter__(self) -> Iterator[str]:
        for line in split_lines(self._text):
            yield normalize_line(line, self._collapse_tabs)

    def __len__(self) -> int:
        return len(split_lines(self._text))
