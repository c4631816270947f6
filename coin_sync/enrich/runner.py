"""Batch enrichment of stored coins from the Numista catalog.

Two runs share one per-record pipeline: resolve a type id (stored fields
first, catalog search second), fetch the type detail, merge it into the record.

* ``run_library_enrichment`` reads through the boto3 resource API and writes
  in batches.
* ``run_wire_enrichment`` reads through the low-level client, scores search
  candidates with the ruler profile, re-checks search matches against the
  fetched detail and patches each record as soon as it changes.
"""
from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..dynamo.coins_repo import CoinsRepo, PendingWrite
from ..dynamo.wire_repo import WireDocumentsRepo
from ..logging_setup import get_logger, with_extras
from ..matching.consistency import is_search_match_consistent
from ..matching.identifiers import resolve_type_id_from_coin
from ..matching.scoring import (
    ScoringProfile,
    build_search_query,
    extract_coin_year,
    select_best_ruler_match,
    select_best_search_result,
)
from ..matching.text import first_non_blank, is_blank, parse_year
from ..numista.client import NumistaClient
from ..runtime_config import RUNTIME_CONFIG
from .merge import build_update, needs_enrichment, should_enrich
from .models import CoinRecord, EnrichStats, Resolution, RunCache

logger = get_logger(__name__)

LIBRARY_LANGS = ("en", "es", "fr")
WIRE_LANGS = ("en", "es", "fr", "ru")
MAX_BATCH_SIZE = 500

# ruler periodId -> Numista issuer code
PERIOD_ISSUER_CODES = {
    "russian_empire": "russia-empire",
    "ussr": "ancienne_urss",
    "modern_russia": "russia",
    "modern_israel": "israel",
}


def _info(msg: str, **extras: Any) -> None:
    if extras:
        with_extras(logger, **extras).info(msg)
    else:
        logger.info(msg)


def _warn(msg: str, **extras: Any) -> None:
    if extras:
        with_extras(logger, **extras).warning(msg)
    else:
        logger.warning(msg)


def _exception(msg: str, **extras: Any) -> None:
    if extras:
        with_extras(logger, **extras).exception(msg)
    else:
        logger.exception(msg)


class ConfigError(ValueError):
    """Bad options or missing credentials; raised before any record is read."""


@dataclass
class EnrichOptions:
    collection: str
    lang: str
    batch_size: int
    request_delay_ms: int
    max_retries: int
    enable_search: bool
    search_count: int
    progress_every: int
    user_agent: str
    numista_api_key: str = ""
    rulers_collection: str = "rulers"
    limit: Optional[int] = None
    dry_run: bool = False
    force: bool = False
    verbose: bool = False
    fail_fast: bool = False

    @classmethod
    def for_library(cls, **overrides: Any) -> "EnrichOptions":
        e = RUNTIME_CONFIG.enrich
        values: Dict[str, Any] = dict(
            collection=e.collection,
            lang=e.lang,
            batch_size=e.batch_size,
            request_delay_ms=e.request_delay_ms,
            max_retries=e.max_retries,
            enable_search=False,
            search_count=e.search_count,
            progress_every=25,
            user_agent=RUNTIME_CONFIG.numista.user_agent,
            numista_api_key=os.getenv("NUMISTA_API_KEY", ""),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def for_wire(cls, **overrides: Any) -> "EnrichOptions":
        e = RUNTIME_CONFIG.enrich
        values: Dict[str, Any] = dict(
            collection=e.collection,
            rulers_collection=e.rulers_collection,
            lang=os.getenv("NUMISTA_LANG") or e.wire_lang,
            batch_size=e.batch_size,
            request_delay_ms=e.wire_request_delay_ms,
            max_retries=e.max_retries,
            enable_search=True,
            search_count=e.wire_search_count,
            progress_every=50,
            user_agent=RUNTIME_CONFIG.numista.wire_user_agent,
            numista_api_key=os.getenv("NUMISTA_API_KEY", ""),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _positive(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_options(options: EnrichOptions, supported_langs: Tuple[str, ...]) -> EnrichOptions:
    options.lang = (options.lang or "").strip().lower()
    if options.lang not in supported_langs:
        raise ConfigError(f"Unsupported lang {options.lang!r}. Supported: {', '.join(supported_langs)}")
    if not _positive(options.batch_size) or options.batch_size > MAX_BATCH_SIZE:
        raise ConfigError(f"batch size must be an integer in range 1..{MAX_BATCH_SIZE} (got: {options.batch_size})")
    for name in ("request_delay_ms", "max_retries", "search_count", "progress_every"):
        if not _positive(getattr(options, name)):
            raise ConfigError(f"Invalid {name} value: {getattr(options, name)!r}")
    if options.limit is not None and not _positive(options.limit):
        raise ConfigError(f"Invalid limit value: {options.limit!r}")
    if is_blank(options.collection):
        raise ConfigError("collection name is empty")
    options.numista_api_key = (options.numista_api_key or "").strip()
    if not options.numista_api_key:
        raise ConfigError("NUMISTA_API_KEY is missing. Provide it via env var or --numista-api-key option.")
    return options


def _make_numista(options: EnrichOptions) -> NumistaClient:
    return NumistaClient(
        options.numista_api_key,
        lang=options.lang,
        max_retries=options.max_retries,
        request_delay_ms=options.request_delay_ms,
        user_agent=options.user_agent,
    )


def _pace(options: EnrichOptions) -> None:
    time.sleep(options.request_delay_ms / 1000.0)


def _fetch_type(
    type_id: int,
    numista: NumistaClient,
    options: EnrichOptions,
    cache: RunCache,
    stats: EnrichStats,
) -> Dict[str, Any]:
    type_data = cache.details.get(type_id)
    if type_data is None:
        type_data = numista.get_type(type_id)
        cache.details[type_id] = type_data
        stats.numista_detail_requests += 1
        _pace(options)
    return type_data


def _resolve_by_field(record: CoinRecord, stats: EnrichStats, strict_doc_id: bool = False) -> Optional[Resolution]:
    resolution = resolve_type_id_from_coin(record, strict_doc_id=strict_doc_id)
    if resolution:
        stats.type_resolved_by_field += 1
    return resolution


# ---------------------------------------------------------------- library run


def _search_general(
    record: CoinRecord,
    numista: NumistaClient,
    options: EnrichOptions,
    cache: RunCache,
    stats: EnrichStats,
    profile: ScoringProfile,
) -> Optional[Resolution]:
    query = build_search_query(record)
    if not query:
        return None
    year = extract_coin_year(record)
    key = f"{query}::{year if year is not None else ''}"
    if key in cache.searches:
        return cache.searches[key]

    candidates = numista.search_types(q=query, date=year, count=options.search_count, page=1)
    stats.numista_search_requests += 1
    resolution = select_best_search_result(record, candidates, profile)
    cache.searches[key] = resolution
    _pace(options)
    return resolution


def _enrich_library_record(
    record: CoinRecord,
    *,
    options: EnrichOptions,
    numista: NumistaClient,
    repo: CoinsRepo,
    cache: RunCache,
    stats: EnrichStats,
    pending: List[PendingWrite],
    profile: ScoringProfile,
) -> None:
    resolution = _resolve_by_field(record, stats)
    if resolution is None and options.enable_search:
        resolution = _search_general(record, numista, options, cache, stats, profile)
        if resolution:
            stats.type_resolved_by_search += 1

    if resolution is None:
        stats.skipped_no_type_id += 1
        if options.verbose:
            _info("Skip: no Numista type id found", doc_id=record.doc_id)
        return

    type_data = _fetch_type(resolution.type_id, numista, options, cache, stats)
    update = build_update(record, type_data, lang=options.lang, force=options.force)
    if not update:
        stats.skipped_no_changes += 1
        return

    if options.dry_run:
        stats.would_update += 1
        if options.verbose:
            _info(
                "[DRY RUN] would update coin",
                doc_id=record.doc_id,
                type_id=resolution.type_id,
                source=resolution.source,
                fields=sorted(update),
            )
        return

    pending.append(PendingWrite(record=record, update=update))
    if len(pending) >= options.batch_size:
        stats.updated += repo.commit_batch(pending)
    if options.verbose:
        _info("Prepared coin update", doc_id=record.doc_id, type_id=resolution.type_id, source=resolution.source)


def run_library_enrichment(
    options: EnrichOptions,
    *,
    repo: Optional[CoinsRepo] = None,
    numista: Optional[NumistaClient] = None,
    profile: Optional[ScoringProfile] = None,
) -> EnrichStats:
    validate_options(options, LIBRARY_LANGS)
    numista = numista or _make_numista(options)
    repo = repo or CoinsRepo(options.collection)
    profile = profile or RUNTIME_CONFIG.scoring_general

    _info(
        "Starting enrichment",
        collection=options.collection,
        dry_run=options.dry_run,
        force=options.force,
        enable_search=options.enable_search,
    )

    stats = EnrichStats()
    cache = RunCache()
    pending: List[PendingWrite] = []

    records = repo.list_coins()
    stats.total_docs_read = len(records)

    for record in records:
        if options.limit and stats.scanned >= options.limit:
            break
        stats.scanned += 1

        if not should_enrich(record, options.force):
            stats.skipped_complete += 1
            continue

        try:
            _enrich_library_record(
                record,
                options=options,
                numista=numista,
                repo=repo,
                cache=cache,
                stats=stats,
                pending=pending,
                profile=profile,
            )
        except Exception as e:
            stats.errors += 1
            _exception("Error while processing coin", doc_id=record.doc_id, error=str(e))
            if options.fail_fast:
                raise

        if stats.scanned % options.progress_every == 0:
            _info("Progress", **stats.progress())

    if not options.dry_run and pending:
        stats.updated += repo.commit_batch(pending)

    _info("Enrichment complete", **stats.as_dict())
    return stats


# ------------------------------------------------------------------- wire run


def _search_key(record: CoinRecord) -> str:
    parts = (record.ruler_id, record.year, record.denomination, record.name)
    return "|".join("" if is_blank(p) else str(p) for p in parts)


def _search_by_ruler(
    record: CoinRecord,
    ruler: Optional[Dict[str, Any]],
    numista: NumistaClient,
    options: EnrichOptions,
    cache: RunCache,
    stats: EnrichStats,
    profile: ScoringProfile,
) -> Optional[Resolution]:
    key = _search_key(record)
    if key in cache.searches:
        return cache.searches[key]

    year = parse_year(record.year)
    candidates = numista.search_types(
        q=first_non_blank(record.denomination, record.name),
        date=year,
        year=year,
        issuer=PERIOD_ISSUER_CODES.get((ruler or {}).get("periodId")),
        count=options.search_count,
    )
    stats.numista_search_requests += 1
    resolution = select_best_ruler_match(record, candidates, ruler, profile)
    cache.searches[key] = resolution
    _pace(options)
    return resolution


def _enrich_wire_record(
    record: CoinRecord,
    *,
    options: EnrichOptions,
    numista: NumistaClient,
    repo: WireDocumentsRepo,
    rulers: Dict[str, Dict[str, Any]],
    cache: RunCache,
    stats: EnrichStats,
    profile: ScoringProfile,
) -> None:
    resolution = _resolve_by_field(record, stats, strict_doc_id=True)
    if resolution is None and options.enable_search:
        ruler = rulers.get(str(record.ruler_id)) if not is_blank(record.ruler_id) else None
        resolution = _search_by_ruler(record, ruler, numista, options, cache, stats, profile)
        if resolution:
            stats.type_resolved_by_search += 1

    if resolution is None:
        stats.skipped_no_type_id += 1
        if options.verbose:
            _info("Skip: type id not resolved", doc_id=record.doc_id)
        return

    type_data = _fetch_type(resolution.type_id, numista, options, cache, stats)

    if resolution.by_search and not is_search_match_consistent(record, type_data):
        stats.skipped_inconsistent += 1
        if options.verbose:
            _info("Skip: search match failed strict validation", doc_id=record.doc_id, type_id=resolution.type_id)
        return

    update = build_update(record, type_data, lang=options.lang, force=options.force)
    if not update:
        stats.skipped_no_changes += 1
        return

    if options.dry_run:
        stats.would_update += 1
        if options.verbose:
            _info("[DRY RUN] would update coin", doc_id=record.doc_id, type_id=resolution.type_id)
        return

    repo.patch_document(options.collection, record.doc_id, update)
    stats.updated += 1
    if options.verbose:
        _info("Updated coin", doc_id=record.doc_id, type_id=resolution.type_id)


def run_wire_enrichment(
    options: EnrichOptions,
    *,
    repo: Optional[WireDocumentsRepo] = None,
    numista: Optional[NumistaClient] = None,
    profile: Optional[ScoringProfile] = None,
) -> EnrichStats:
    validate_options(options, WIRE_LANGS)
    numista = numista or _make_numista(options)
    repo = repo or WireDocumentsRepo()
    profile = profile or RUNTIME_CONFIG.scoring_ruler

    _info(
        "Starting wire enrichment",
        collection=options.collection,
        dry_run=options.dry_run,
        lang=options.lang,
        enable_search=options.enable_search,
    )

    coins = repo.list_documents(options.collection)
    rulers = {doc_id: data for doc_id, data in repo.list_documents(options.rulers_collection)}
    if options.enable_search and not rulers:
        _warn("No rulers loaded; searches run without issuer or ruler hints", collection=options.rulers_collection)

    stats = EnrichStats(total_docs_read=len(coins))
    cache = RunCache()

    for doc_id, data in coins:
        if options.limit and stats.scanned >= options.limit:
            break
        stats.scanned += 1
        record = CoinRecord.from_item(doc_id, data)

        if not options.force and not needs_enrichment(record):
            stats.skipped_complete += 1
            continue

        try:
            _enrich_wire_record(
                record,
                options=options,
                numista=numista,
                repo=repo,
                rulers=rulers,
                cache=cache,
                stats=stats,
                profile=profile,
            )
        except Exception as e:
            stats.errors += 1
            _exception("Error while processing coin", doc_id=doc_id, error=str(e))
            if options.fail_fast:
                raise

        if stats.scanned % options.progress_every == 0:
            _info("Progress", **stats.progress())

    _info("Wire enrichment complete", **stats.as_dict())
    return stats
