from __future__ import annotations

import argparse
import json
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .db import init_db
from .enrich.runner import (
    LIBRARY_LANGS,
    MAX_BATCH_SIZE,
    WIRE_LANGS,
    ConfigError,
    EnrichOptions,
    run_library_enrichment,
    run_wire_enrichment,
)
from .logging_setup import get_logger, set_package_level, with_extras

load_dotenv()

logger = get_logger(__name__)


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {raw!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {raw!r}")
    return value


def _batch_size(raw: str) -> int:
    value = _positive_int(raw)
    if value > MAX_BATCH_SIZE:
        raise argparse.ArgumentTypeError(f"must be an integer in range 1..{MAX_BATCH_SIZE} (got: {raw})")
    return value


def _lang(raw: str) -> str:
    return raw.strip().lower()


def _add_enrich_args(p: argparse.ArgumentParser, langs) -> None:
    p.add_argument("--collection", default=None, help="Table to scan (default from runtime.toml)")
    p.add_argument("--limit", type=_positive_int, default=None, help="Max number of coin docs to process")
    p.add_argument("--lang", type=_lang, choices=langs, default=None, help="Numista response language")
    p.add_argument("--dry-run", action="store_true", help="Do not write, only report what would change")
    p.add_argument("--force", action="store_true", help="Overwrite existing top-level fields with Numista values")
    search = p.add_mutually_exclusive_group()
    search.add_argument("--enable-search", dest="enable_search", action="store_true", default=None,
                        help="Try Numista text search when no type id is stored")
    search.add_argument("--disable-search", dest="enable_search", action="store_false",
                        help="Only use type ids already stored on the coin")
    p.add_argument("--request-delay-ms", type=_positive_int, default=None, help="Delay after each Numista request")
    p.add_argument("--max-retries", type=_positive_int, default=None, help="Attempts for transient Numista errors")
    p.add_argument("--verbose", action="store_true", help="Log every coin")
    p.add_argument("--fail-fast", action="store_true", help="Stop on the first coin-level error")
    p.add_argument("--numista-api-key", default=None, help="Overrides NUMISTA_API_KEY")


def _option_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "collection": args.collection,
        "limit": args.limit,
        "batch_size": getattr(args, "batch_size", None),
        "lang": args.lang,
        "dry_run": args.dry_run,
        "force": args.force,
        "enable_search": args.enable_search,
        "request_delay_ms": args.request_delay_ms,
        "max_retries": args.max_retries,
        "verbose": args.verbose,
        "fail_fast": args.fail_fast,
        "numista_api_key": args.numista_api_key,
        "rulers_collection": getattr(args, "rulers_collection", None),
    }


def cmd_enrich(args: argparse.Namespace) -> Dict[str, Any]:
    options = EnrichOptions.for_library(**_option_overrides(args))
    return run_library_enrichment(options).as_dict()


def cmd_enrich_wire(args: argparse.Namespace) -> Dict[str, Any]:
    options = EnrichOptions.for_wire(**_option_overrides(args))
    return run_wire_enrichment(options).as_dict()


def cmd_init_db(args: argparse.Namespace) -> Dict[str, Any]:
    return {"created": init_db()}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Enrich stored coins from the Numista catalog")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_lib = sub.add_parser("enrich", help="Batch enrichment through the DynamoDB resource API")
    _add_enrich_args(p_lib, LIBRARY_LANGS)
    p_lib.add_argument("--batch-size", type=_batch_size, default=None,
                       help=f"Write batch size (max {MAX_BATCH_SIZE})")
    p_lib.set_defaults(func=cmd_enrich)

    p_wire = sub.add_parser("enrich-wire", help="Ruler-aware enrichment through the low-level DynamoDB API")
    _add_enrich_args(p_wire, WIRE_LANGS)
    p_wire.add_argument("--rulers-collection", default=None, help="Table holding rulers")
    p_wire.set_defaults(func=cmd_enrich_wire)

    p_init = sub.add_parser("init-db", help="Create missing DynamoDB tables")
    p_init.set_defaults(func=cmd_init_db)
    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "verbose", False):
        set_package_level(logging.DEBUG)

    try:
        out = args.func(args)
    except ConfigError as e:
        parser.error(str(e))
    except Exception:
        with_extras(logger, cmd=args.cmd).exception("Fatal error")
        return 1
    print(json.dumps(out, ensure_ascii=False, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
