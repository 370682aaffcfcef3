"""Shared utilities used across the warehouse wizard."""

import re
from typing import Any, Optional

_NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)?")
_THOUSANDS_RE = re.compile(r"(?<=\d),(?=\d{3}\b)")


def parse_number(value: Any) -> Optional[float]:
    """Coerce a loosely-typed value to a float, or None if it holds no number.

    Examples:
        >>> parse_number("30 meters")
        30.0
        >>> parse_number("12,5")
        12.5
        >>> parse_number("1,200 pallets")
        1200.0
        >>> parse_number("n/a") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER_RE.search(_THOUSANDS_RE.sub("", str(value)))
    if not match:
        return None
    return float(match.group(0).replace(",", "."))


def normalize_label(value: Any) -> Optional[str]:
    """Lower-case and collapse whitespace; empty strings become None.

    Examples:
        >>> normalize_label("  Drive-In ")
        'drive-in'
        >>> normalize_label("Block   Stacking")
        'block stacking'
    """
    if value is None:
        return None
    text = re.sub(r"\s+", " ", str(value)).strip().lower()
    return text or None
