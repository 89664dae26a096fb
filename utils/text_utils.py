"""
Text utilities for raw CSV cell values.

Used by the CSV parser, the row transformer and the user store adapter.
"""

from typing import Optional


def clean_text(value: Optional[str], max_length: Optional[int] = None) -> Optional[str]:
    """
    Clean a cell value for storage.

    - Strips whitespace
    - Truncates to max length when given
    - Returns None for empty/whitespace-only strings

    Args:
        value: Raw cell value
        max_length: Maximum characters to keep (None keeps everything)

    Returns:
        Cleaned value or None
    """
    if not value:
        return None

    value = value.strip()

    if not value:
        return None

    if max_length is not None and len(value) > max_length:
        value = value[:max_length]

    return value


def lookup_key(value: Optional[str]) -> str:
    """
    Case-insensitive lookup key for a cell value.

    "  Profesor " -> "profesor", None -> ""
    """
    if not value:
        return ""
    return value.strip().lower()


def strip_wrapping_quotes(value: str) -> str:
    """
    Trim a CSV field and remove one layer of wrapping double quotes.

    '"Ana"' -> 'Ana', ' "a,b" ' -> 'a,b' (no escape handling)
    """
    value = value.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value
