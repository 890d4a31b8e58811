"""
Shared utilities for data ingestion: header normalisation, date parsing,
numeric coercion.
"""

import logging
import math
from datetime import date
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

# pandas resolves these against the clock; they are not calendar dates
_RELATIVE_DATE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


def strip_quotes(val: str) -> str:
    """Trim whitespace and any surrounding double quotes."""
    return val.strip().strip('"').strip()


def normalise_header(name: str) -> str:
    """Header cell -> lookup key: trimmed, unquoted, lower-case."""
    return strip_quotes(name).replace('"', "").lower()


def normalise_date(val: Any) -> date | None:
    """Parse a date string into a calendar date.

    Accepts anything pandas understands (ISO dates, "01/08/2024",
    "8 Jan 2024", full timestamps). Returns None for blank or unparseable
    values and for relative words such as "now" or "today".
    """
    if val is None:
        return None
    if isinstance(val, str):
        val = val.strip()
        if not val or val.lower() in _RELATIVE_DATE_WORDS:
            return None
    try:
        ts = pd.Timestamp(val)
    except (ValueError, TypeError):
        return None
    if pd.isna(ts):
        return None
    return ts.date()


def safe_float(val: Any) -> float | None:
    """Coerce a value to a finite float, returning None otherwise."""
    if val is None:
        return None
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
    try:
        result = float(val)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_int(val: Any) -> int | None:
    """Coerce a value to int.

    Integral float strings such as "4.0" are accepted; "4.5" is not.
    """
    if val is None:
        return None
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
    try:
        return int(val)
    except (ValueError, TypeError):
        pass
    as_float = safe_float(val)
    if as_float is None or not as_float.is_integer():
        return None
    return int(as_float)


def parse_flag(val: Any) -> bool:
    """Only the literal TRUE (any case) counts as true."""
    if val is None:
        return False
    return str(val).strip().upper() == "TRUE"
