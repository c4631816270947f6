"""Numista enrichment jobs for the coin catalog document store."""

__version__ = "1.0.0"
