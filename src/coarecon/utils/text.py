"""Text normalization helpers shared by staging, import and matching."""

import math
import re
from typing import Any, Optional

_WHITESPACE = re.compile(r"\s+")
_TOKEN = re.compile(r"[a-z0-9]+")
_KEY_SEPARATORS = re.compile(r"[\s_\-.]+")


def normalize_whitespace(value: Any) -> Optional[str]:
    """Collapse internal whitespace and strip; empty results become None."""
    if value is None:
        return None
    text = _WHITESPACE.sub(" ", str(value)).strip()
    return text or None


def normalize_key(value: str) -> str:
    """Normalize a header or field name for case/whitespace-insensitive comparison.

    "Account Number", "account_number" and "ACCOUNT-NUMBER" all become
    "accountnumber".
    """
    return _KEY_SEPARATORS.sub("", value.strip().lower())


def normalize_for_match(value: Optional[str]) -> str:
    """Lower-case and collapse whitespace, for exact-equality comparison."""
    if not value:
        return ""
    return " ".join(tokenize(value))


def tokenize(value: Optional[str]) -> list[str]:
    """Split text into lower-case alphanumeric tokens."""
    if not value:
        return []
    return _TOKEN.findall(value.lower())


def cell_to_str(value: Any) -> str:
    """Coerce a spreadsheet cell to its display string.

    None and NaN become "", integral floats lose their ".0" so that account
    numbers read as numbers round-trip verbatim.
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if hasattr(value, "isoformat") and not isinstance(value, str):
        text = value.isoformat()
        # Midnight timestamps are plain dates in a ledger
        return text[:10] if text.endswith("T00:00:00") else text
    return str(value).strip()
