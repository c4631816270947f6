from __future__ import annotations

import dataclasses
import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .matching.scoring import GENERAL_PROFILE, RULER_PROFILE, ScoringProfile

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "runtime.toml"


@dataclass(frozen=True)
class NumistaConfig:
    base_url: str
    user_agent: str
    wire_user_agent: str
    timeout_seconds: int


@dataclass(frozen=True)
class EnrichConfig:
    collection: str
    rulers_collection: str
    batch_size: int
    request_delay_ms: int
    wire_request_delay_ms: int
    max_retries: int
    lang: str
    wire_lang: str
    search_count: int
    wire_search_count: int


@dataclass(frozen=True)
class RuntimeConfig:
    numista: NumistaConfig
    enrich: EnrichConfig
    scoring_general: ScoringProfile
    scoring_ruler: ScoringProfile


def _default_config() -> RuntimeConfig:
    return RuntimeConfig(
        numista=NumistaConfig(
            base_url="https://api.numista.com/v3",
            user_agent="coin-catalog-backend-numista-enrichment/1.0",
            wire_user_agent="coin-catalog-wire-enrichment/1.0",
            timeout_seconds=30,
        ),
        enrich=EnrichConfig(
            collection="coins",
            rulers_collection="rulers",
            batch_size=200,
            request_delay_ms=250,
            wire_request_delay_ms=120,
            max_retries=4,
            lang="en",
            wire_lang="ru",
            search_count=10,
            wire_search_count=50,
        ),
        scoring_general=GENERAL_PROFILE,
        scoring_ruler=RULER_PROFILE,
    )


def _safe_int(value: Any, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    try:
        parsed = int(value)
        return parsed if parsed > 0 else fallback
    except (TypeError, ValueError):
        return fallback


def _str_field(d: Dict[str, Any], key: str, default: str) -> str:
    val = d.get(key, default)
    if not isinstance(val, str) or not val.strip():
        return default
    return val.strip()


def _section(raw: Any, key: str) -> Dict[str, Any]:
    section = raw.get(key) if isinstance(raw, dict) else None
    return section if isinstance(section, dict) else {}


def _apply_profile_overrides(base: ScoringProfile, overrides: Dict[str, Any]) -> ScoringProfile:
    """Return ``base`` with fields replaced from a ``[scoring.*]`` table.

    Unknown keys and non-numeric values are ignored with a warning; weights may be
    zero (to switch a term off) but never negative.
    """
    known = {f.name: f for f in dataclasses.fields(base)}
    changes: Dict[str, Any] = {}
    for key, value in overrides.items():
        field = known.get(key)
        if field is None or key == "name":
            logger.warning("Unknown scoring key ignored", extra={"key": key, "profile": base.name})
            continue
        current = getattr(base, key)
        if isinstance(current, bool):
            if isinstance(value, bool):
                changes[key] = value
            else:
                logger.warning("Invalid scoring flag ignored", extra={"key": key, "profile": base.name})
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            logger.warning("Invalid scoring value ignored", extra={"key": key, "profile": base.name})
            continue
        changes[key] = int(value)
    return dataclasses.replace(base, **changes) if changes else base


def load_runtime_config(config_path: Optional[Path] = None) -> RuntimeConfig:
    cfg = _default_config()
    env_path = os.getenv("COIN_SYNC_CONFIG")
    path = config_path or (Path(env_path) if env_path else _DEFAULT_CONFIG_PATH)
    try:
        with path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        logger.warning("Runtime config file not found; using defaults", extra={"path": str(path)})
        return cfg
    except tomllib.TOMLDecodeError:
        logger.exception("Runtime config parse failed; using defaults", extra={"path": str(path)})
        return cfg

    numista_raw = _section(raw, "numista")
    enrich_raw = _section(raw, "enrich")
    scoring_raw = _section(raw, "scoring")

    numista = NumistaConfig(
        base_url=_str_field(numista_raw, "base_url", cfg.numista.base_url).rstrip("/"),
        user_agent=_str_field(numista_raw, "user_agent", cfg.numista.user_agent),
        wire_user_agent=_str_field(numista_raw, "wire_user_agent", cfg.numista.wire_user_agent),
        timeout_seconds=_safe_int(numista_raw.get("timeout_seconds"), cfg.numista.timeout_seconds),
    )

    d = cfg.enrich
    enrich = EnrichConfig(
        collection=_str_field(enrich_raw, "collection", d.collection),
        rulers_collection=_str_field(enrich_raw, "rulers_collection", d.rulers_collection),
        batch_size=min(500, _safe_int(enrich_raw.get("batch_size"), d.batch_size)),
        request_delay_ms=_safe_int(enrich_raw.get("request_delay_ms"), d.request_delay_ms),
        wire_request_delay_ms=_safe_int(enrich_raw.get("wire_request_delay_ms"), d.wire_request_delay_ms),
        max_retries=_safe_int(enrich_raw.get("max_retries"), d.max_retries),
        lang=_str_field(enrich_raw, "lang", d.lang).lower(),
        wire_lang=_str_field(enrich_raw, "wire_lang", d.wire_lang).lower(),
        search_count=_safe_int(enrich_raw.get("search_count"), d.search_count),
        wire_search_count=_safe_int(enrich_raw.get("wire_search_count"), d.wire_search_count),
    )

    return RuntimeConfig(
        numista=numista,
        enrich=enrich,
        scoring_general=_apply_profile_overrides(cfg.scoring_general, _section(scoring_raw, "general")),
        scoring_ruler=_apply_profile_overrides(cfg.scoring_ruler, _section(scoring_raw, "ruler")),
    )


RUNTIME_CONFIG = load_runtime_config()
