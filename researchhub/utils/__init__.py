"""Utility functions."""

from researchhub.utils.clock import parse_timestamp, to_iso, utc_now
from researchhub.utils.text import clean_text, normalize_keywords

__all__ = [
    "clean_text",
    "normalize_keywords",
    "parse_timestamp",
    "to_iso",
    "utc_now",
]
