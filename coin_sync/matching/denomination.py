from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional, Tuple

_NUMBER = re.compile(r"(\d+(?:\.\d+)?)")

# First matching unit wins, so keep "rouble" ahead of the smaller units.
UNIT_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("rouble", re.compile(r"(руб|rouble|ruble|rubl)")),
    ("kopek", re.compile(r"(коп|kopek|kopeck)")),
    ("polushka", re.compile(r"(полушк|polushka)")),
    ("denga", re.compile(r"(деньг|denga)")),
    ("altyn", re.compile(r"(алтын|altyn)")),
)

VALUE_TOLERANCE = 0.0001


@dataclass(frozen=True)
class DenominationSignature:
    value: Optional[float] = None
    unit: Optional[str] = None


def parse_denomination(text: Any) -> DenominationSignature:
    if not text or not isinstance(text, str):
        return DenominationSignature()
    normalized = text.lower().replace(",", ".", 1)
    m = _NUMBER.search(normalized)
    value = float(m.group(1)) if m else None

    unit = None
    for name, pattern in UNIT_PATTERNS:
        if pattern.search(normalized):
            unit = name
            break
    return DenominationSignature(value=value, unit=unit)


def same_value(a: DenominationSignature, b: DenominationSignature) -> bool:
    return a.value is not None and b.value is not None and abs(a.value - b.value) < VALUE_TOLERANCE
