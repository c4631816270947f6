from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

# Stored attribute name -> CoinRecord field. Every key the resolver, scorer or
# consistency check reads is listed here; anything else stays in ``data`` only.
STORED_FIELD_MAP: Dict[str, str] = {
    "title": "title",
    "name": "name",
    "coinName": "coin_name",
    "nominal": "nominal",
    "valueText": "value_text",
    "denomination": "denomination",
    "issuerName": "issuer_name",
    "countryName": "country_name",
    "country": "country",
    "issuer": "issuer",
    "year": "year",
    "issueYear": "issue_year",
    "mintedYear": "minted_year",
    "date": "date",
    "minYear": "min_year",
    "maxYear": "max_year",
    "rulerId": "ruler_id",
    "numista": "numista",
    "numistaTypeId": "numista_type_id",
    "numistaId": "numista_id",
    "numista_type_id": "numista_type_id_snake",
    "typeId": "type_id",
    "catalogCoinId": "catalog_coin_id",
    "numistaUrl": "numista_url",
    "url": "url",
}


@dataclass
class CoinRecord:
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict, repr=False)

    title: Any = None
    name: Any = None
    coin_name: Any = None
    nominal: Any = None
    value_text: Any = None
    denomination: Any = None
    issuer_name: Any = None
    country_name: Any = None
    country: Any = None
    issuer: Any = None
    year: Any = None
    issue_year: Any = None
    minted_year: Any = None
    date: Any = None
    min_year: Any = None
    max_year: Any = None
    ruler_id: Any = None
    numista: Optional[Dict[str, Any]] = None
    numista_type_id: Any = None
    numista_id: Any = None
    numista_type_id_snake: Any = None
    type_id: Any = None
    catalog_coin_id: Any = None
    numista_url: Any = None
    url: Any = None

    @classmethod
    def from_item(cls, doc_id: str, data: Optional[Dict[str, Any]]) -> "CoinRecord":
        data = dict(data or {})
        kwargs = {attr: data.get(key) for key, attr in STORED_FIELD_MAP.items()}
        if not isinstance(kwargs["numista"], dict):
            kwargs["numista"] = None
        return cls(doc_id=str(doc_id), data=data, **kwargs)

    def get(self, key: str, default: Any = None) -> Any:
        """Raw stored attribute by its stored (camelCase) name."""
        return self.data.get(key, default)

    def get_path(self, path: Tuple[str, ...]) -> Any:
        """Walk a stored attribute path such as ``("numista", "years", "min")``."""
        cur: Any = self.data
        for part in path:
            if not isinstance(cur, dict):
                return None
            cur = cur.get(part)
        return cur


@dataclass(frozen=True)
class Resolution:
    type_id: int
    source: str

    @property
    def by_search(self) -> bool:
        return self.source.startswith("search")


@dataclass
class EnrichStats:
    scanned: int = 0
    updated: int = 0
    would_update: int = 0
    skipped_complete: int = 0
    skipped_no_type_id: int = 0
    skipped_inconsistent: int = 0
    skipped_no_changes: int = 0
    errors: int = 0
    type_resolved_by_field: int = 0
    type_resolved_by_search: int = 0
    numista_detail_requests: int = 0
    numista_search_requests: int = 0
    total_docs_read: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)

    def progress(self) -> Dict[str, int]:
        keep = ("scanned", "updated", "would_update", "skipped_no_type_id", "errors")
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name in keep}


@dataclass
class RunCache:
    """Lookups made during one batch run; dropped when the run ends."""

    details: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    searches: Dict[str, Any] = field(default_factory=dict)
