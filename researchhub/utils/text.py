"""Text processing utilities for keyword and free-text fields."""

from collections.abc import Iterable
from typing import Any, Optional

# Keyword separator used by upload and revise forms
KEYWORD_SEPARATOR = ","


def _split_keyword_item(item: Any) -> list[str]:
    """Split one keyword item on commas and trim each part."""
    if item is None:
        return []
    return [part.strip() for part in str(item).split(KEYWORD_SEPARATOR)]


def normalize_keywords(value: Any) -> list[str]:
    """Canonicalize keyword input into an ordered list of unique strings.

    Accepts a single comma-delimited string, or any iterable of items
    (each item may itself be comma-delimited). Entries are trimmed,
    empty entries dropped, and duplicates removed with the first
    occurrence winning. Comparison is case-sensitive.

    Normalizing an already-normalized list returns an equal list.

    Args:
        value: ``None``, a string, or an iterable of strings/scalars

    Returns:
        List of normalized keywords
    """
    if value is None:
        return []

    if isinstance(value, (str, bytes)):
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        parts = _split_keyword_item(value)
    elif isinstance(value, Iterable):
        parts = []
        for item in value:
            parts.extend(_split_keyword_item(item))
    else:
        parts = _split_keyword_item(value)

    seen: set[str] = set()
    keywords: list[str] = []
    for part in parts:
        if part and part not in seen:
            seen.add(part)
            keywords.append(part)
    return keywords


def clean_text(text: Optional[str]) -> str:
    """Collapse internal whitespace and strip the ends.

    Returns an empty string for ``None``.
    """
    if not text:
        return ""
    return " ".join(str(text).split()).strip()
