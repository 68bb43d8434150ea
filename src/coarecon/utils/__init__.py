"""Utility functions for coarecon."""

from coarecon.utils.date_parser import parse_date, parse_period
from coarecon.utils.text import (
    cell_to_str,
    normalize_for_match,
    normalize_key,
    normalize_whitespace,
    tokenize,
)

__all__ = [
    "parse_date",
    "parse_period",
    "cell_to_str",
    "normalize_for_match",
    "normalize_key",
    "normalize_whitespace",
    "tokenize",
]
