from __future__ import annotations

import re
from typing import Any, Optional, Set

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WS = re.compile(r"\s+")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_YEAR = re.compile(r"^\d{4}$")
_YEAR_RANGE = re.compile(r"^(\d{4})\s*-\s*(\d{4})$")

YEAR_MIN = 500
YEAR_MAX = 2100


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def first_non_blank(*values: Any) -> Any:
    return next((v for v in values if not is_blank(v)), None)


def as_non_empty_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    v = value.strip()
    return v or None


def normalize_text(value: Any) -> str:
    """Lower-case, collapse every non-alphanumeric run to one space, trim.

    ``None`` maps to ``""``. Applying it twice gives the same result as once.
    """
    text = "" if value is None else str(value)
    return _NON_ALNUM.sub(" ", text.lower()).strip()


def token_set(value: Any) -> Set[str]:
    normalized = normalize_text(value)
    if not normalized:
        return set()
    return {t for t in _WS.split(normalized) if t}


def parse_positive_int(value: Any) -> Optional[int]:
    """parseInt-style: leading digits of the text, only if the result is > 0."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        parsed = int(value)
        return parsed if parsed > 0 else None
    m = _LEADING_INT.match(str(value))
    if not m:
        return None
    parsed = int(m.group(1))
    return parsed if parsed > 0 else None


def _in_year_range(year: int) -> Optional[int]:
    return year if YEAR_MIN <= year <= YEAR_MAX else None


def parse_year(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return _in_year_range(value)
    if isinstance(value, float) and value.is_integer():
        return _in_year_range(int(value))

    text = str(value).strip()
    if not text:
        return None
    if _YEAR.match(text):
        return _in_year_range(int(text))
    m = _YEAR_RANGE.match(text)
    if m:
        return _in_year_range(int(m.group(1)))
    return None


def as_int(value: Any) -> Optional[int]:
    """Strict integer check (no parsing): ints and integral floats only."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def prune_empty(value: Any) -> Any:
    """Recursively drop ``None`` entries and maps left empty; ``None`` if nothing remains."""
    if isinstance(value, list):
        return [p for p in (prune_empty(v) for v in value) if p is not None]
    if isinstance(value, dict):
        out = {}
        for key, entry in value.items():
            pruned = prune_empty(entry)
            if pruned is not None:
                out[key] = pruned
        return out or None
    return value
