"""Rank Numista search candidates against a coin and decide whether to accept one.

Each candidate gets a non-negative integer score built from independent terms
(title, token overlap, issuer, year fit, category, denomination, ruler name).
The top candidate is accepted only if it clears an absolute floor *and* beats
the runner-up by a separation floor, so near-ties are left unresolved rather
than guessed.

Weights live in :class:`ScoringProfile`; a zero weight switches a term off.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..enrich.models import CoinRecord, Resolution
from .denomination import DenominationSignature, parse_denomination, same_value
from .text import (
    as_int,
    as_non_empty_string,
    first_non_blank,
    is_blank,
    normalize_text,
    parse_year,
    token_set,
)

COIN_CATEGORY = "coin"

YEAR_FIELDS: Tuple[Tuple[str, ...], ...] = (
    ("year",),
    ("issueYear",),
    ("mintedYear",),
    ("date",),
    ("minYear",),
    ("maxYear",),
    ("numista", "years", "min"),
    ("numista", "years", "max"),
)


@dataclass(frozen=True)
class ScoringProfile:
    name: str
    # candidates with an empty title score 0 outright
    require_title: bool = True
    title_exact: int = 70
    title_contains: int = 45
    token_weight: int = 8
    token_cap: int = 32
    issuer_exact: int = 25
    issuer_partial: int = 12
    year_in_range: int = 30
    year_near: int = 10
    year_tolerance: int = 2
    coin_category: int = 8
    denomination_unit: int = 0
    denomination_value: int = 0
    ruler_token_weight: int = 0
    ruler_token_cap: int = 0
    ruler_token_min_length: int = 3
    accept_floor: int = 55
    separation_floor: int = 10


GENERAL_PROFILE = ScoringProfile(name="general")

RULER_PROFILE = ScoringProfile(
    name="ruler",
    require_title=False,
    title_exact=0,
    title_contains=0,
    token_weight=0,
    token_cap=0,
    issuer_exact=0,
    issuer_partial=0,
    year_tolerance=1,
    coin_category=12,
    denomination_unit=20,
    denomination_value=20,
    ruler_token_weight=8,
    ruler_token_cap=24,
    accept_floor=52,
    separation_floor=8,
)


@dataclass(frozen=True)
class SearchContext:
    query: str = ""
    query_tokens: FrozenSet[str] = frozenset()
    issuer_hint: str = ""
    year: Optional[int] = None
    denomination: DenominationSignature = field(default_factory=DenominationSignature)
    ruler_name: str = ""


def extract_issuer_text(record: CoinRecord) -> Optional[str]:
    issuer = record.issuer
    return first_non_blank(
        as_non_empty_string(record.issuer_name),
        as_non_empty_string(record.country_name),
        as_non_empty_string(record.country),
        as_non_empty_string(issuer.get("name")) if isinstance(issuer, dict) else None,
        as_non_empty_string(record.get_path(("numista", "issuer", "name"))),
        as_non_empty_string(issuer),
    )


def extract_coin_year(record: CoinRecord) -> Optional[int]:
    for path in YEAR_FIELDS:
        parsed = parse_year(record.get_path(path))
        if parsed:
            return parsed
    return None


def build_search_query(record: CoinRecord) -> Optional[str]:
    parts: List[str] = []
    for entry in (
        record.title,
        record.name,
        record.coin_name,
        record.nominal,
        record.value_text,
        extract_issuer_text(record),
    ):
        if is_blank(entry):
            continue
        text = str(entry).strip()
        if text not in parts:
            parts.append(text)
    if not parts:
        return None
    return " ".join(parts).strip()


def _year_points(year: Optional[int], candidate: Dict[str, Any], profile: ScoringProfile) -> int:
    lo = as_int(candidate.get("min_year"))
    hi = as_int(candidate.get("max_year"))
    if not year or lo is None or hi is None:
        return 0
    if lo <= year <= hi:
        return profile.year_in_range
    if abs(year - lo) <= profile.year_tolerance or abs(year - hi) <= profile.year_tolerance:
        return profile.year_near
    return 0


def _issuer_points(issuer_hint: str, candidate: Dict[str, Any], profile: ScoringProfile) -> int:
    issuer = candidate.get("issuer")
    candidate_issuer = normalize_text(issuer.get("name") if isinstance(issuer, dict) else None)
    if not issuer_hint or not candidate_issuer:
        return 0
    if candidate_issuer == issuer_hint:
        return profile.issuer_exact
    if issuer_hint in candidate_issuer or candidate_issuer in issuer_hint:
        return profile.issuer_partial
    return 0


def _ruler_points(ruler_name: str, title: str, profile: ScoringProfile) -> int:
    if not profile.ruler_token_weight or not ruler_name or not title:
        return 0
    tokens = [t for t in ruler_name.split() if len(t) >= profile.ruler_token_min_length]
    matching = sum(1 for t in tokens if t in title)
    return min(matching * profile.ruler_token_weight, profile.ruler_token_cap)


def score_candidate(context: SearchContext, candidate: Dict[str, Any], profile: ScoringProfile) -> int:
    title = normalize_text(candidate.get("title"))
    if profile.require_title and not title:
        return 0

    score = 0
    if title and context.query:
        if title == context.query:
            score += profile.title_exact
        elif context.query in title:
            score += profile.title_contains

    if profile.token_weight and title:
        overlap = len(context.query_tokens & token_set(title))
        score += min(overlap * profile.token_weight, profile.token_cap)

    score += _issuer_points(context.issuer_hint, candidate, profile)
    score += _year_points(context.year, candidate, profile)

    if candidate.get("category") == COIN_CATEGORY:
        score += profile.coin_category

    if profile.denomination_unit or profile.denomination_value:
        theirs = parse_denomination(candidate.get("title") or "")
        ours = context.denomination
        if ours.unit and theirs.unit and ours.unit == theirs.unit:
            score += profile.denomination_unit
        if same_value(ours, theirs):
            score += profile.denomination_value

    score += _ruler_points(context.ruler_name, title, profile)
    return score


def rank_candidates(
    context: SearchContext,
    candidates: Sequence[Dict[str, Any]],
    profile: ScoringProfile,
) -> List[Tuple[int, Dict[str, Any]]]:
    scored = [(score_candidate(context, c, profile), c) for c in candidates if isinstance(c, dict)]
    # sorted() is stable, so equal scores keep the API's order
    return sorted(scored, key=lambda pair: pair[0], reverse=True)


def _candidate_id(candidate: Dict[str, Any]) -> Optional[int]:
    raw = candidate.get("id")
    value = as_int(raw)
    if value is None and isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw.strip())
    return value if value and value > 0 else None


def select_best(
    context: SearchContext,
    candidates: Sequence[Dict[str, Any]],
    profile: ScoringProfile,
) -> Optional[Resolution]:
    ranked = rank_candidates(context, candidates, profile)
    if not ranked:
        return None
    best_score, best = ranked[0]
    type_id = _candidate_id(best)
    if not type_id:
        return None
    if best_score < profile.accept_floor:
        return None
    if len(ranked) > 1 and best_score - ranked[1][0] < profile.separation_floor:
        return None
    return Resolution(type_id=type_id, source=f"search(score={best_score})")


def build_general_context(record: CoinRecord) -> Optional[SearchContext]:
    query = normalize_text(build_search_query(record))
    if not query:
        return None
    return SearchContext(
        query=query,
        query_tokens=frozenset(token_set(query)),
        issuer_hint=normalize_text(extract_issuer_text(record)),
        year=extract_coin_year(record),
    )


def build_ruler_context(record: CoinRecord, ruler: Optional[Dict[str, Any]]) -> SearchContext:
    ruler = ruler or {}
    return SearchContext(
        year=parse_year(record.year),
        denomination=parse_denomination(record.denomination or record.name),
        ruler_name=normalize_text(ruler.get("nameEn") or ruler.get("name") or ""),
    )


def select_best_search_result(
    record: CoinRecord,
    candidates: Sequence[Dict[str, Any]],
    profile: ScoringProfile = GENERAL_PROFILE,
) -> Optional[Resolution]:
    if not candidates:
        return None
    context = build_general_context(record)
    if context is None:
        return None
    return select_best(context, candidates, profile)


def select_best_ruler_match(
    record: CoinRecord,
    candidates: Sequence[Dict[str, Any]],
    ruler: Optional[Dict[str, Any]],
    profile: ScoringProfile = RULER_PROFILE,
) -> Optional[Resolution]:
    if not candidates:
        return None
    return select_best(build_ruler_context(record, ruler), candidates, profile)
