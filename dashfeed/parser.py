"""
Section-aware record parser.

A single forward fold over normalized lines. The exports repeat their own
header line ("Tipo_Dato ...") before every block and may group blocks under
"## Section" titles, so the active header, its delimiter and the section are
tracked in a ScanState rather than read once at the top of the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from re import Pattern
from typing import Callable, Dict, List, Optional, Tuple

from .coerce import Value, coerce_value
from .normalize import NormalizedLines, is_blank, is_comment
from .rules import (
    DEFAULT_REPAIR,
    DELIMITER_CANDIDATES,
    FALLBACK_DELIMITER,
    FREE_TEXT_COLUMNS,
    HEADER_SENTINEL,
    HEADER_SEPARATORS,
    METADATA_PATTERNS,
    SECTION_KEY,
    SECTION_MARKER,
)

Record = Dict[str, Value]


class NoHeaderError(ValueError):
    """Raised when a document that should contain a header has none."""


@dataclass
class ScanState:
    section: Optional[str] = None
    header: Optional[List[str]] = None
    delimiter: Optional[Pattern[str]] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    records: List[Record] = field(default_factory=list)
    headers_seen: int = 0


@dataclass(frozen=True)
class RecordSummary:
    row_count: int
    columns: List[str]


# --- Delimiters & headers ---

def pick_delimiter(line: str) -> Pattern[str]:
    """Return the candidate that splits ``line`` into the most non-empty fields."""
    best: Optional[Pattern[str]] = None
    best_count = 1
    for candidate in DELIMITER_CANDIDATES:
        count = sum(1 for cell in candidate.split(line) if cell.strip())
        if count > best_count:
            best, best_count = candidate, count
    return best or FALLBACK_DELIMITER


def split_cells(line: str, delimiter: Pattern[str]) -> List[str]:
    return [cell.strip() for cell in delimiter.split(line)]


def _is_sentinel(cell: str) -> bool:
    return HEADER_SEPARATORS.sub("", cell).lower() == HEADER_SENTINEL


def match_header(line: str) -> Optional[Tuple[List[str], Pattern[str]]]:
    """Return ``(columns, delimiter)`` if ``line`` is a header line."""
    delimiter = pick_delimiter(line)
    cells = split_cells(line, delimiter)
    first = next((cell for cell in cells if cell), None)
    if first is None or not _is_sentinel(first):
        return None
    return cells, delimiter


# --- Ragged rows ---

def _free_text_index(columns: List[str]) -> Optional[int]:
    return next((i for i, column in enumerate(columns) if column in FREE_TEXT_COLUMNS), None)


def _join_free_text(cells: List[str], columns: List[str]) -> List[str]:
    # [lead..., free text split over several cells..., trail...]
    start = _free_text_index(columns)
    end = len(cells) - (len(columns) - start - 1)
    joined = " ".join(cell for cell in cells[start:end] if cell)
    return cells[:start] + [joined] + cells[end:]


def _truncate(cells: List[str], columns: List[str]) -> List[str]:
    return cells[: len(columns)]


REPAIR_STRATEGIES: Dict[str, Callable[[List[str], List[str]], List[str]]] = {
    "join": _join_free_text,
    "truncate": _truncate,
}


def repair_strategy(columns: List[str]) -> str:
    index = _free_text_index(columns)
    if index is None:
        return DEFAULT_REPAIR
    return FREE_TEXT_COLUMNS[columns[index]]


def fit_cells(cells: List[str], columns: List[str]) -> List[str]:
    """Pad short rows with empty cells, repair or truncate long ones."""
    if len(cells) < len(columns):
        return cells + [""] * (len(columns) - len(cells))
    if len(cells) > len(columns):
        repaired = REPAIR_STRATEGIES[repair_strategy(columns)](cells, columns)
        return _truncate(repaired, columns)
    return cells


def build_record(
    columns: List[str],
    cells: List[str],
    section: Optional[str] = None,
    metadata: Optional[Dict[str, str]] = None,
) -> Record:
    record: Record = {}
    for column, cell in zip(columns, cells):
        if not column:
            continue
        record[column] = coerce_value(cell, column)
    if not record:
        return record
    if section:
        record[SECTION_KEY] = section
    if metadata:
        record.update(metadata)
    return record


# --- Scan ---

def _match_metadata(line: str) -> Optional[Tuple[str, str]]:
    for pattern, key in METADATA_PATTERNS:
        match = pattern.match(line)
        if match:
            return key, match.group(1).strip()
    return None


def scan_line(state: ScanState, line: str) -> ScanState:
    """Advance the scan by one normalized line."""
    if is_blank(line):
        return state

    metadata = _match_metadata(line)
    if metadata is not None:
        key, value = metadata
        if value:
            state.metadata[key] = value
        else:
            state.metadata.pop(key, None)
        return state

    section = SECTION_MARKER.match(line)
    if section:
        state.section = section.group(1).strip()
        state.header = None
        state.delimiter = None
        return state

    if is_comment(line):
        return state

    header = match_header(line)
    if header is not None:
        state.header, state.delimiter = header
        state.headers_seen += 1
        return state

    # Lines before any header are titles or stray text.
    if state.header is None:
        return state

    cells = fit_cells(split_cells(line, state.delimiter), state.header)
    record = build_record(state.header, cells, state.section, state.metadata)
    if record:
        state.records.append(record)
    return state


def parse_records(text: str, require_header: bool = False) -> List[Record]:
    """
    Parse a whole document into a flat list of records.

    A document without any header line yields ``[]``, or raises
    ``NoHeaderError`` when ``require_header`` is set.
    """
    state = reduce(scan_line, NormalizedLines(text), ScanState())
    if require_header and not state.headers_seen:
        raise NoHeaderError("No 'Tipo_Dato' header line found in document")
    return state.records


def summarize(records: List[Record]) -> RecordSummary:
    """Count records and list every column seen, in first-seen order."""
    columns = list(dict.fromkeys(key for record in records for key in record))
    return RecordSummary(row_count=len(records), columns=columns)
