"""Deal-ID parsing for seller form input and spreadsheet cells."""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Union

_SHEET_SPLIT = re.compile(r"[,\s]+")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_form_ids(text: Optional[str]) -> List[int]:
    """
    Parse the comma separated IDs typed into the planning form.

    Blank, non-numeric and zero entries are dropped:
        "101, 102,, abc, 0" -> [101, 102]
    """
    if not text:
        return []

    ids = []
    for piece in str(text).split(","):
        piece = piece.strip()
        try:
            value = int(piece)
        except ValueError:
            continue
        if value:
            ids.append(value)
    return ids


def parse_count(value, default: int = 0) -> int:
    """Leading integer of a form value ("3 parceiros" -> 3), else ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value or ""))
    return int(match.group(1)) if match else default


def split_sheet_cell(cell) -> List[str]:
    """Split a spreadsheet cell on commas and whitespace."""
    if cell is None:
        return []
    if isinstance(cell, float) and cell.is_integer():
        cell = int(cell)
    return [token for token in _SHEET_SPLIT.split(str(cell)) if token]


def parse_sheet_ids(values: Union[str, Iterable[str], None]) -> List[int]:
    """
    Parse IDs coming from the planning spreadsheet.

    Each token keeps its leading integer ("123abc" -> 123); tokens that
    don't start with a number are dropped.
    """
    if values is None:
        return []
    if isinstance(values, (str, int, float)):
        tokens = split_sheet_cell(values)
    else:
        tokens = []
        for value in values:
            tokens.extend(split_sheet_cell(value))

    ids = []
    for token in tokens:
        match = _LEADING_INT.match(token)
        if match:
            ids.append(int(match.group(1)))
    return ids
