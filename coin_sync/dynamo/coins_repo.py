from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

from ..enrich.models import CoinRecord
from ..logging_setup import get_logger, with_extras
from .client import get_dynamo_resource
from .tables import COINS_TABLE, DOC_KEY
from .wire_codec import from_dynamo_value, to_dynamo_value

log = get_logger(__name__)


@dataclass
class PendingWrite:
    record: CoinRecord
    update: Dict[str, Any]


def _to_record(item: Dict[str, Any]) -> CoinRecord:
    data = from_dynamo_value(item)
    doc_id = data.pop(DOC_KEY, None)
    return CoinRecord.from_item(doc_id, data)


class CoinsRepo:
    """Coin documents read and written through the boto3 resource API."""

    def __init__(self, collection: str = COINS_TABLE, ddb=None):
        ddb = ddb or get_dynamo_resource()
        self.collection = collection
        self.t_coins = ddb.Table(collection)

    def iter_coins(self) -> Iterator[CoinRecord]:
        kwargs: Dict[str, Any] = {}
        while True:
            resp = self.t_coins.scan(**kwargs)
            for item in resp.get("Items", []):
                yield _to_record(item)
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key

    def list_coins(self) -> List[CoinRecord]:
        return list(self.iter_coins())

    def get_coin(self, doc_id: str) -> Optional[CoinRecord]:
        item = self.t_coins.get_item(Key={DOC_KEY: doc_id}).get("Item")
        return _to_record(item) if item else None

    def patch_coin(self, doc_id: str, update: Dict[str, Any]) -> None:
        if not update:
            return
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        sets: List[str] = []
        for i, (field, value) in enumerate(update.items()):
            names[f"#f{i}"] = field
            values[f":v{i}"] = to_dynamo_value(value)
            sets.append(f"#f{i} = :v{i}")
        self.t_coins.update_item(
            Key={DOC_KEY: doc_id},
            UpdateExpression="SET " + ", ".join(sets),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
        )

    def commit_batch(self, pending: List[PendingWrite]) -> int:
        """Patch each pending coin with only its update's fields, then clear the list."""
        if not pending:
            return 0
        for write in pending:
            self.patch_coin(write.record.doc_id, write.update)
        count = len(pending)
        with_extras(log, collection=self.collection, count=count).info("coin batch committed")
        pending.clear()
        return count
