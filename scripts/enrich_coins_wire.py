"""
Standalone runner for the ruler-aware enrichment over the low-level DynamoDB API.
Search is on by default; pass --disable-search to only use stored type ids.
"""
from __future__ import annotations

import sys

from coin_sync.cli import main


if __name__ == "__main__":
    raise SystemExit(main(["enrich-wire", *sys.argv[1:]]))
