"""
AWS Key-Value Store: DynamoDB.

Schema:
  id: string partition key
  name, email, createdAt, updatedAt: strings
  any other scalar attributes the caller supplied

Works against real DynamoDB or a local emulation endpoint (LocalStack),
depending on the endpoint/credentials it is built with.
"""

from decimal import Decimal
from typing import Optional

import boto3

from service.interfaces.kv_store import (
    DEFAULT_SCAN_LIMIT,
    ItemResult,
    KeyValueStore,
    ScanResult,
    require_id,
)
from service.models.user import utc_now_iso


def _to_dynamo(value):
    """DynamoDB rejects floats; store them as Decimal."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value):
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


def _metadata(response: dict) -> tuple[int, str]:
    meta = response.get("ResponseMetadata", {})
    return meta.get("HTTPStatusCode", 200), meta.get("RequestId", "")


class DynamoDBKeyValueStore(KeyValueStore):
    """DynamoDB-backed record table."""

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        resource=None,
    ):
        self.endpoint_url = endpoint_url
        self.dynamodb = resource or boto3.resource(
            "dynamodb",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
        )

    def _table(self, table: str):
        return self.dynamodb.Table(table)

    async def put(self, table: str, item: dict) -> ItemResult:
        require_id(item, "item")
        response = self._table(table).put_item(Item=_to_dynamo(item))
        status, request_id = _metadata(response)
        return ItemResult(item=dict(item), status_code=status, request_id=request_id)

    async def get(self, table: str, key: dict) -> ItemResult:
        item_id = require_id(key)
        response = self._table(table).get_item(Key={"id": item_id})
        status, request_id = _metadata(response)
        item = response.get("Item")
        return ItemResult(
            item=_from_dynamo(item) if item else None,
            status_code=status,
            request_id=request_id,
        )

    async def scan(self, table: str, limit: Optional[int] = None) -> ScanResult:
        response = self._table(table).scan(Limit=DEFAULT_SCAN_LIMIT if limit is None else limit)
        status, request_id = _metadata(response)
        items = [_from_dynamo(item) for item in response.get("Items", [])]
        return ScanResult(
            items=items,
            count=response.get("Count", len(items)),
            scanned_count=response.get("ScannedCount", len(items)),
            status_code=status,
            request_id=request_id,
        )

    async def update(self, table: str, key: dict, mutation: dict) -> ItemResult:
        item_id = require_id(key)
        fields = {k: v for k, v in mutation.items() if k != "id"}
        if "updatedAt" not in fields:
            fields["updatedAt"] = utc_now_iso()

        # Placeholders everywhere: "name" is a DynamoDB reserved word
        names = {f"#f{i}": field for i, field in enumerate(fields)}
        values = {f":v{i}": _to_dynamo(value) for i, value in enumerate(fields.values())}
        expression = "SET " + ", ".join(f"#f{i} = :v{i}" for i in range(len(fields)))

        response = self._table(table).update_item(
            Key={"id": item_id},
            UpdateExpression=expression,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
        status, request_id = _metadata(response)
        return ItemResult(
            item=_from_dynamo(response.get("Attributes", {})),
            status_code=status,
            request_id=request_id,
        )

    async def delete(self, table: str, key: dict) -> ItemResult:
        item_id = require_id(key)
        response = self._table(table).delete_item(Key={"id": item_id})
        status, request_id = _metadata(response)
        return ItemResult(status_code=status, request_id=request_id)
