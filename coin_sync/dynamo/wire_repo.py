from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..logging_setup import get_logger, with_extras
from .client import get_dynamo_client
from .tables import DOC_KEY
from .wire_codec import decode_fields, encode_fields, encode_value

log = get_logger(__name__)

DEFAULT_PAGE_SIZE = 500


def build_set_update(updates: Dict[str, Any]) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    """``SET`` expression touching exactly the given top-level fields.

    Attribute names go through placeholders so reserved words (``name``, ``year``,
    ``size``...) are safe.
    """
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    clauses: List[str] = []
    for i, (field, value) in enumerate(updates.items()):
        encoded = encode_value(value)
        if encoded is None:
            continue
        names[f"#f{i}"] = field
        values[f":v{i}"] = encoded
        clauses.append(f"#f{i} = :v{i}")
    return "SET " + ", ".join(clauses), names, values


class WireDocumentsRepo:
    """Documents over the low-level DynamoDB API with typed attribute values."""

    def __init__(self, client=None):
        self.client = client or get_dynamo_client()

    def list_documents(self, collection: str, page_size: int = DEFAULT_PAGE_SIZE) -> List[Tuple[str, Dict[str, Any]]]:
        docs: List[Tuple[str, Dict[str, Any]]] = []
        kwargs: Dict[str, Any] = {"TableName": collection, "Limit": page_size}
        while True:
            resp = self.client.scan(**kwargs)
            for item in resp.get("Items", []):
                data = decode_fields(item)
                doc_id = data.pop(DOC_KEY, None)
                if doc_id is None:
                    with_extras(log, collection=collection).warning("document without key skipped")
                    continue
                docs.append((str(doc_id), data))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return docs

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        resp = self.client.get_item(TableName=collection, Key={DOC_KEY: {"S": doc_id}})
        item = resp.get("Item")
        if not item:
            return None
        data = decode_fields(item)
        data.pop(DOC_KEY, None)
        return data

    def patch_document(self, collection: str, doc_id: str, updates: Dict[str, Any]) -> None:
        if not updates:
            return
        expression, names, values = build_set_update(updates)
        if not names:
            return
        self.client.update_item(
            TableName=collection,
            Key={DOC_KEY: {"S": doc_id}},
            UpdateExpression=expression,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
        )
