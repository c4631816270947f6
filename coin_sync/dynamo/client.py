import os

import boto3
from botocore.config import Config


def _session_kwargs() -> dict:
    """
    Switches between local DynamoDB and AWS based on env.
    - For local: set DYNAMO_LOCAL_URL (e.g. http://localhost:8000)
    - For AWS:   set AWS_REGION and credentials as usual
    """
    kwargs = {
        "region_name": os.getenv("AWS_REGION", "eu-central-1"),
        "config": Config(retries={"max_attempts": 10, "mode": "standard"}),
    }
    local_url = os.getenv("DYNAMO_LOCAL_URL")
    if local_url:
        kwargs.update(
            endpoint_url=local_url,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID", "dummy"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY", "dummy"),
        )
    return kwargs


def get_dynamo_resource():
    return boto3.resource("dynamodb", **_session_kwargs())


def get_dynamo_client():
    """Low-level client: requests and responses use typed attribute values."""
    return boto3.client("dynamodb", **_session_kwargs())
