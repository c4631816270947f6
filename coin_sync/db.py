from __future__ import annotations

from .dynamo.tables import ensure_tables
from .dynamo.client import get_dynamo_resource


def init_db() -> list:
    """
    Create the coins/rulers tables on a fresh (usually local) DynamoDB.

    No-op for tables that already exist.
    """
    return ensure_tables()


__all__ = ["init_db", "get_dynamo_resource"]
