"""
Standalone runner for the library-variant Numista enrichment.
It delegates to coin_sync.cli with the ``enrich`` subcommand.
"""
from __future__ import annotations

import sys

from coin_sync.cli import main


if __name__ == "__main__":
    raise SystemExit(main(["enrich", *sys.argv[1:]]))
