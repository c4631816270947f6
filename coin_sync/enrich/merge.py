"""Turn a fetched Numista type into an update for a stored coin.

Top-level fields are only filled when blank on the record, unless ``force`` is
set. The ``numista`` snapshot and ``numistaLastSyncedAt`` are always written.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional

from ..matching.text import first_non_blank, is_blank, prune_empty
from .models import CoinRecord

SNAPSHOT_FIELD = "numista"
SYNCED_AT_FIELD = "numistaLastSyncedAt"
FETCHED_AT = "fetchedAt"


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def _dig(obj: Any, *path: Any) -> Any:
    cur = obj
    for part in path:
        if isinstance(part, int):
            if not isinstance(cur, list) or len(cur) <= part:
                return None
        elif not isinstance(cur, dict):
            return None
        cur = cur[part] if isinstance(part, int) else cur.get(part)
    return cur


def _side(side: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(side, dict):
        return None
    return {
        "description": side.get("description"),
        "lettering": side.get("lettering"),
        "picture": side.get("picture"),
        "thumbnail": side.get("thumbnail"),
        "pictureCopyright": side.get("picture_copyright"),
        "pictureCopyrightUrl": side.get("picture_copyright_url"),
    }


def build_numista_snapshot(type_data: Dict[str, Any], lang: str, fetched_at: Optional[str] = None) -> Dict[str, Any]:
    object_type = type_data.get("object_type")
    issuer = type_data.get("issuer")
    value = type_data.get("value")
    currency = _dig(value, "currency")
    snapshot = {
        "id": type_data.get("id"),
        "url": type_data.get("url"),
        "title": type_data.get("title"),
        "lang": lang,
        "objectType": {"id": object_type.get("id"), "name": object_type.get("name")}
        if isinstance(object_type, dict) else None,
        "issuer": {"code": issuer.get("code"), "name": issuer.get("name")}
        if isinstance(issuer, dict) else None,
        "years": {"min": type_data.get("min_year"), "max": type_data.get("max_year")},
        "value": {
            "text": value.get("text"),
            "numericValue": value.get("numeric_value"),
            "currency": {
                "id": currency.get("id"),
                "name": currency.get("name"),
                "fullName": currency.get("full_name"),
            } if isinstance(currency, dict) else None,
        } if isinstance(value, dict) else None,
        "shape": type_data.get("shape"),
        "composition": _dig(type_data, "composition", "text"),
        "weight": type_data.get("weight"),
        "size": type_data.get("size"),
        "thickness": type_data.get("thickness"),
        "orientation": type_data.get("orientation"),
        "obverse": _side(type_data.get("obverse")),
        "reverse": _side(type_data.get("reverse")),
        FETCHED_AT: fetched_at or _now_iso(),
    }
    return prune_empty(snapshot) or {}


def _catalog_number(type_data: Dict[str, Any]) -> Optional[str]:
    code = _dig(type_data, "references", 0, "catalogue", "code")
    number = _dig(type_data, "references", 0, "number")
    if is_blank(code) or is_blank(number):
        return None
    return f"{code} {number}"


def _field_values(type_data: Dict[str, Any], lang: str) -> Dict[str, Any]:
    """Top-level record fields in write order, before the merge policy is applied."""
    obverse = first_non_blank(_dig(type_data, "obverse", "picture"), _dig(type_data, "obverse", "thumbnail"))
    reverse = first_non_blank(_dig(type_data, "reverse", "picture"), _dig(type_data, "reverse", "thumbnail"))
    title = type_data.get("title")
    composition = _dig(type_data, "composition", "text")
    value_text = _dig(type_data, "value", "text")
    return {
        "numistaTypeId": type_data.get("id"),
        "numistaId": type_data.get("id"),
        "numistaUrl": type_data.get("url"),
        "title": title,
        "name": title,
        "nameEn": title if lang == "en" else None,
        "image": first_non_blank(obverse, reverse),
        "imageObverse": obverse,
        "imageReverse": reverse,
        "obverseImage": obverse,
        "reverseImage": reverse,
        "obverseThumbnail": _dig(type_data, "obverse", "thumbnail"),
        "reverseThumbnail": _dig(type_data, "reverse", "thumbnail"),
        "year": type_data.get("min_year"),
        "minYear": type_data.get("min_year"),
        "maxYear": type_data.get("max_year"),
        "denomination": value_text,
        "denominationValue": _dig(type_data, "value", "numeric_value"),
        "currency": _dig(type_data, "value", "currency", "name"),
        "metal": composition,
        "weight": type_data.get("weight"),
        "diameter": type_data.get("size"),
        "size": type_data.get("size"),
        "thickness": type_data.get("thickness"),
        "shape": type_data.get("shape"),
        "orientation": type_data.get("orientation"),
        "composition": composition,
        "mint": _dig(type_data, "mints", 0, "name"),
        "catalogNumber": _catalog_number(type_data),
        "issuerName": _dig(type_data, "issuer", "name"),
        "valueText": value_text,
        "description": first_non_blank(
            _dig(type_data, "obverse", "description"), _dig(type_data, "reverse", "description")
        ),
    }


def _without_timestamp(snapshot: Any) -> Any:
    if not isinstance(snapshot, dict):
        return snapshot
    return {k: v for k, v in snapshot.items() if k != FETCHED_AT}


def build_update(
    record: CoinRecord,
    type_data: Dict[str, Any],
    *,
    lang: str,
    force: bool = False,
    now: Optional[str] = None,
) -> Dict[str, Any]:
    """Return the attributes to write, or ``{}`` when nothing would change."""
    now = now or _now_iso()
    fields: Dict[str, Any] = {}
    for name, value in _field_values(type_data, lang).items():
        if is_blank(value):
            continue
        current = record.get(name)
        if not (force or is_blank(current)):
            continue
        if current == value:
            continue
        fields[name] = value

    snapshot = build_numista_snapshot(type_data, lang, fetched_at=now)
    if not fields and _without_timestamp(snapshot) == _without_timestamp(record.get(SNAPSHOT_FIELD)):
        return {}

    update: Dict[str, Any] = {SNAPSHOT_FIELD: snapshot, SYNCED_AT_FIELD: now}
    update.update(fields)
    return update


def _has_any(record: CoinRecord, *keys: str) -> bool:
    return any(not is_blank(record.get(k)) for k in keys)


def should_enrich(record: CoinRecord, force: bool) -> bool:
    """Library variant: skip records that already carry a name and an image."""
    if force:
        return True
    has_name = _has_any(record, "title", "name") or not is_blank(record.get_path(("numista", "title")))
    has_images = (
        _has_any(record, "image", "imageObverse", "imageReverse", "obverseImage", "reverseImage")
        or not is_blank(record.get_path(("numista", "obverse", "picture")))
        or not is_blank(record.get_path(("numista", "reverse", "picture")))
    )
    return not (has_name and has_images)


def needs_enrichment(record: CoinRecord) -> bool:
    """Wire variant: enrich while images or the stored Numista link are missing."""
    has_images = _has_any(record, "obverseImage", "reverseImage", "imageObverse", "imageReverse")
    has_link = _has_any(record, "numistaId", "numistaTypeId", "numistaUrl")
    return not has_images or not has_link
