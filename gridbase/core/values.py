# File: /gridbase/core/values.py | Version: 1.0 | Title: Cell value interpretation (tagged by declared column type)
"""
Documents store untyped values (str or number). Meaning comes from the
column catalog, so every comparison goes through these helpers, both in
SQL (registered as SQLite functions) and on the client.
"""
from __future__ import annotations

import math
from typing import Any, Optional, Union

CellValue = Union[str, int, float, None]


def to_number(value: Any) -> Optional[float]:
    """Numeric reading of a stored value, or None when it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    if math.isnan(num) or math.isinf(num):
        return None
    return num


def to_text(value: Any) -> str:
    """Display text of a stored value; absent and null render as ''."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fold_text(value: Any) -> Optional[str]:
    """Unicode case folding; used as the `grid_fold` SQL function too."""
    if value is None:
        return None
    return to_text(value).casefold()


def is_blank(value: Any) -> bool:
    return to_text(value).strip() == ""


def coerce_for_type(value: Any, column_type: str) -> CellValue:
    """
    Value to send for a committed edit. NUMBER cells that parse are stored
    as numbers; anything else is stored as the trimmed text.
    """
    text = to_text(value).strip()
    if column_type == "NUMBER":
        num = to_number(text)
        if num is not None:
            return int(num) if num.is_integer() else num
    return text
