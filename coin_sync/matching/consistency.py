from __future__ import annotations

from typing import Any, Dict

from ..enrich.models import CoinRecord
from .denomination import VALUE_TOLERANCE, parse_denomination
from .text import as_int, parse_year


def is_search_match_consistent(record: CoinRecord, type_data: Dict[str, Any]) -> bool:
    """Re-check a search-resolved type against the coin's own year and denomination."""
    year = parse_year(record.year)
    lo = as_int(type_data.get("min_year"))
    hi = as_int(type_data.get("max_year"))
    if year and lo is not None and hi is not None:
        if year < lo or year > hi:
            return False

    value = type_data.get("value") if isinstance(type_data.get("value"), dict) else {}
    ours = parse_denomination(record.denomination or record.name)
    theirs = parse_denomination(value.get("text") or type_data.get("title"))
    if ours.unit and theirs.unit and ours.unit != theirs.unit:
        return False
    if ours.value is not None and theirs.value is not None and abs(ours.value - theirs.value) > VALUE_TOLERANCE:
        return False
    return True
