"""Plain JSON-like values <-> DynamoDB typed attribute values.

The wire form is what the low-level client sends and receives:
``{"S": "x"}``, ``{"N": "1.5"}``, ``{"BOOL": true}``, ``{"NULL": true}``,
``{"L": [...]}``, ``{"M": {...}}``. Scalars go through boto3's own
serializer/deserializer; this module handles Python floats, drops values the
store cannot hold, and turns store decimals back into ints/floats.
"""
from __future__ import annotations

import decimal
import math
from decimal import Decimal
from typing import Any, Dict, Optional

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()

_SCALAR_TAGS = {"S", "N", "B", "BOOL", "NULL", "SS", "NS", "BS"}


def to_dynamo_value(value: Any) -> Any:
    """Floats become Decimals (non-finite ones become None), tuples become lists."""
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    if isinstance(value, dict):
        return {k: to_dynamo_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo_value(v) for v in value]
    return value


def from_dynamo_value(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo_value(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(from_dynamo_value(v) for v in value)
    if isinstance(value, Binary):
        return bytes(value.value)
    return value


def encode_value(value: Any) -> Optional[Dict[str, Any]]:
    """Typed wire value, or ``None`` when the value cannot be stored (and is dropped)."""
    if value is None:
        return {"NULL": True}
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (list, tuple)):
        encoded = (encode_value(v) for v in value)
        return {"L": [e for e in encoded if e is not None]}
    if isinstance(value, dict):
        return {"M": encode_fields(value)}
    try:
        return _serializer.serialize(to_dynamo_value(value))
    except TypeError:
        return None


def encode_fields(mapping: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    fields = {}
    for key, value in (mapping or {}).items():
        encoded = encode_value(value)
        if encoded is not None:
            fields[str(key)] = encoded
    return fields


def decode_value(value: Any) -> Any:
    if not isinstance(value, dict) or len(value) != 1:
        return None
    tag, inner = next(iter(value.items()))
    if tag == "L":
        return [decode_value(v) for v in (inner or [])]
    if tag == "M":
        return decode_fields(inner or {})
    if tag not in _SCALAR_TAGS:
        return None
    try:
        decoded = _deserializer.deserialize(value)
    except decimal.DecimalException:
        return None
    # boto3's decimal context does not trap bad number strings; they come back as NaN
    if isinstance(decoded, Decimal) and not decoded.is_finite():
        return None
    return from_dynamo_value(decoded)


def decode_fields(mapping: Dict[str, Any]) -> Dict[str, Any]:
    return {key: decode_value(entry) for key, entry in (mapping or {}).items()}
