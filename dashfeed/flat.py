"""
Fallback for exports without a Tipo_Dato header: a plain delimited file with
one header row. The delimiter is sniffed from the first non-comment line.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from typing import List

from .coerce import coerce_value
from .normalize import NormalizedLines, is_blank
from .parser import Record
from .rules import FLAT_COMMENT, FLAT_DELIMITER_CANDIDATES


@dataclass
class FlatParse:
    records: List[Record]
    delimiter: str


def sniff_delimiter(sample: str) -> str:
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=list(FLAT_DELIMITER_CANDIDATES))
    except csv.Error:
        return FLAT_DELIMITER_CANDIDATES[0]  # default
    return dialect.delimiter


def parse_flat(text: str) -> FlatParse:
    lines = [
        line
        for line in NormalizedLines(text, collapse_tabs=False)
        if not is_blank(line) and not FLAT_COMMENT.match(line)
    ]
    if not lines:
        return FlatParse(records=[], delimiter=FLAT_DELIMITER_CANDIDATES[0])

    delimiter = sniff_delimiter(lines[0])
    rows = csv.reader(lines, delimiter=delimiter)
    header = [name.strip() for name in next(rows)]

    records: List[Record] = []
    for row in rows:
        cells = [cell.strip() for cell in row]
        if len(cells) < len(header):
            cells += [""] * (len(header) - len(cells))
        record = {
            column: coerce_value(cell, column)
            for column, cell in zip(header, cells)
            if column
        }
        if record:
            records.append(record)
    return FlatParse(records=records, delimiter=delimiter)
