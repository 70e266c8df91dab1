"""
Cell value coercion for Italian-locale exports.

"1.234,56" -> 1234.56, "66,51%" -> 66.51, sentinels -> None, text kept as is.
Percentages stay on the 0-100 scale.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Union

from .rules import MAX_PERCENT, PERCENT_COLUMN_HINT, SENTINEL_VALUES

Value = Union[float, str, None]

_QUOTES = re.compile(r"^[\"']|[\"']$")
_PERCENT = re.compile(r"%\s*$")
_LOCALE_NUMBER = re.compile(r"^[0-9.\s,]+$")
_PLAIN_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")


def _to_float(text: str) -> Optional[float]:
    # float() also accepts "nan", "inf" and exponents; the exports never do
    text = text.strip()
    if not _PLAIN_NUMBER.match(text):
        return None
    number = float(text)
    # digit runs past the float range overflow to inf
    return number if math.isfinite(number) else None


def _delocalize(text: str) -> str:
    return text.replace(".", "").replace(",", ".", 1)


def is_percent_column(column: Optional[str]) -> bool:
    return bool(column) and PERCENT_COLUMN_HINT in column.lower()


def parse_percent(text: str) -> Optional[float]:
    """Parse "66,51%" as 66.51; unparseable or > 1000 gives None."""
    number = _to_float(_delocalize(text.replace("%", "", 1)))
    if number is None or number > MAX_PERCENT:
        return None
    return number


def parse_locale_number(text: str, column: Optional[str] = None) -> Optional[float]:
    """Parse "1.234,56" as 1234.56, collapsing sentinels to None."""
    number = _to_float(re.sub(r"\s", "", _delocalize(text)))
    if number is None or number in SENTINEL_VALUES:
        return None
    if is_percent_column(column) and number > MAX_PERCENT:
        return None
    return number


def coerce_value(raw: Optional[str], column: Optional[str] = None) -> Value:
    """Coerce one cell; ``column`` enables percentage-column range checks."""
    if raw is None:
        return None
    text = _QUOTES.sub("", raw).strip()
    if not text:
        return None
    if _PERCENT.search(text):
        return parse_percent(text)
    if _LOCALE_NUMBER.match(text):
        return parse_locale_number(text, column)
    return text
