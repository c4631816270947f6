import os

from botocore.exceptions import ClientError

from .client import get_dynamo_resource

# Every collection is keyed by the store-assigned document id.
DOC_KEY = "doc_id"

COINS_TABLE = os.environ.get("DDB_TABLE_COINS", "coins")
RULERS_TABLE = os.environ.get("DDB_TABLE_RULERS", "rulers")

_THROUGHPUT = {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5}

TABLES = {
    COINS_TABLE: {
        "KeySchema": [{"AttributeName": DOC_KEY, "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": DOC_KEY, "AttributeType": "S"}],
        "ProvisionedThroughput": _THROUGHPUT,
    },
    RULERS_TABLE: {
        "KeySchema": [{"AttributeName": DOC_KEY, "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": DOC_KEY, "AttributeType": "S"}],
        "ProvisionedThroughput": _THROUGHPUT,
    },
}


def ensure_tables(ddb=None) -> list:
    """Create any missing table; returns the names that were created."""
    ddb = ddb or get_dynamo_resource()
    existing = {t.name for t in ddb.tables.all()}
    created = []
    for name, spec in TABLES.items():
        if name in existing:
            continue
        try:
            ddb.create_table(TableName=name, **spec).wait_until_exists()
            created.append(name)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise
    return created
