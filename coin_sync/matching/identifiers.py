"""Recover a Numista type id from data already stored on a coin (no network)."""
from __future__ import annotations

import re
from typing import Any, Optional, Tuple

from ..enrich.models import CoinRecord, Resolution
from .text import parse_positive_int

# Attribute paths checked in priority order. Direct numeric ids first, then the
# nested snapshot, then URL-shaped fields. The document id is tried last.
IDENTIFIER_FIELDS: Tuple[Tuple[str, ...], ...] = (
    ("numistaTypeId",),
    ("numistaId",),
    ("numista_type_id",),
    ("typeId",),
    ("catalogCoinId",),
    ("numista", "id"),
    ("numista", "typeId"),
    ("numistaUrl",),
    ("url",),
    ("numista", "url"),
)

_DIGITS = re.compile(r"^\d+$")
_NUMISTA_DOMAIN = re.compile(r"numista\.com", re.IGNORECASE)
_URL_PATTERNS = (
    re.compile(r"/(\d{3,})(?:[/?#]|$)", re.IGNORECASE),
    re.compile(r"/catalogue/(?:pieces?|banknotes?|exonumia)(\d{3,})\.html", re.IGNORECASE),
)
_PREFIXED_DOC_ID = re.compile(r"^numista[-_].*?(\d{3,})$", re.IGNORECASE)


def extract_type_id_from_value(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None

    text = str(value).strip()
    if not text:
        return None
    if _DIGITS.match(text):
        return parse_positive_int(text)
    if not _NUMISTA_DOMAIN.search(text):
        return None

    for pattern in _URL_PATTERNS:
        m = pattern.search(text)
        if m:
            parsed = parse_positive_int(m.group(1))
            if parsed:
                return parsed
    return None


def extract_type_id_from_doc_id(doc_id: Any, strict: bool = False) -> Optional[int]:
    """Digit-only ids, ``numista-<...>1234`` style ids, or a catalog URL.

    With ``strict`` only the ``numista-`` / ``numista_`` prefixed form counts.
    """
    if not isinstance(doc_id, str):
        return None if strict else extract_type_id_from_value(doc_id)
    m = _PREFIXED_DOC_ID.match(doc_id.strip())
    if m:
        return parse_positive_int(m.group(1))
    if strict:
        return None
    return extract_type_id_from_value(doc_id)


def resolve_type_id_from_coin(record: CoinRecord, strict_doc_id: bool = False) -> Optional[Resolution]:
    for path in IDENTIFIER_FIELDS:
        parsed = extract_type_id_from_value(record.get_path(path))
        if parsed:
            return Resolution(type_id=parsed, source="field")
    parsed = extract_type_id_from_doc_id(record.doc_id, strict=strict_doc_id)
    if parsed:
        return Resolution(type_id=parsed, source="field")
    return None
