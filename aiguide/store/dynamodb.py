"""DynamoDB document store for production deployments."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .backend import (
    SERVER_TIMESTAMP,
    ConditionFailed,
    DocumentNotFound,
    StoreError,
    now_millis,
)

KEY_NAME = "session_id"


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def _item_to_doc(item: dict[str, Any]) -> dict[str, Any]:
    return {k: _from_dynamo(v) for k, v in item.items() if k != KEY_NAME}


def _is_condition_failure(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code")
    return code == "ConditionalCheckFailedException"


class DynamoDBDocumentStore:
    """Document store using AWS DynamoDB.

    Table schema:
        Partition key: session_id (S)
        Attributes: payload (S, JSON-encoded), created_at (N), updated_at (N),
        last_accessed_at (N), status (S), ended_at (N), end_reason (S)

    Timestamps are epoch milliseconds from this process's clock. Retry and
    socket timeouts are owned by the botocore client config.
    """

    def __init__(
        self,
        table_name: str = "aiguide_sessions",
        endpoint_url: str = "",
        region_name: str = "ap-southeast-1",
        timeout: float = 10.0,
        max_attempts: int = 3,
    ) -> None:
        self._table_name = table_name
        self._session = aioboto3.Session()
        self._endpoint_url = endpoint_url or None
        self._region_name = region_name
        self._config = Config(
            connect_timeout=timeout,
            read_timeout=timeout,
            retries={"max_attempts": max_attempts, "mode": "standard"},
        )

    def now(self) -> int:
        return now_millis()

    def _resource(self):
        return self._session.resource(
            "dynamodb",
            endpoint_url=self._endpoint_url,
            region_name=self._region_name,
            config=self._config,
        )

    def _resolve(self, fields: dict[str, Any]) -> dict[str, Any]:
        now = self.now()
        return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in fields.items()}

    @staticmethod
    def _conditions(
        expected: dict[str, Any],
        names: dict[str, str],
        values: dict[str, Any],
    ) -> str:
        clauses = []
        for i, (field, value) in enumerate(expected.items()):
            names[f"#c{i}"] = field
            if value is None:
                values[f":c{i}"] = "NULL"
                clauses.append(
                    f"(attribute_not_exists(#c{i}) OR attribute_type(#c{i}, :c{i}))"
                )
            else:
                values[f":c{i}"] = value
                clauses.append(f"#c{i} = :c{i}")
        return " AND ".join(clauses)

    async def get(self, doc_id: str) -> dict[str, Any] | None:
        try:
            async with self._resource() as dynamodb:
                table = await dynamodb.Table(self._table_name)
                response = await table.get_item(
                    Key={KEY_NAME: doc_id}, ConsistentRead=True
                )
        except (BotoCoreError, ClientError) as e:
            raise StoreError(str(e)) from e

        item = response.get("Item")
        if item is None:
            return None
        return _item_to_doc(item)

    async def set(self, doc_id: str, fields: dict[str, Any]) -> None:
        item = {KEY_NAME: doc_id, **self._resolve(fields)}
        try:
            async with self._resource() as dynamodb:
                table = await dynamodb.Table(self._table_name)
                await table.put_item(Item=item)
        except (BotoCoreError, ClientError) as e:
            raise StoreError(str(e)) from e

    async def update(
        self,
        doc_id: str,
        fields: dict[str, Any],
        *,
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        names: dict[str, str] = {"#pk": KEY_NAME}
        values: dict[str, Any] = {}
        assignments = []
        for i, (field, value) in enumerate(self._resolve(fields).items()):
            names[f"#f{i}"] = field
            values[f":f{i}"] = value
            assignments.append(f"#f{i} = :f{i}")

        condition = "attribute_exists(#pk)"
        if expected:
            condition += " AND " + self._conditions(expected, names, values)

        try:
            async with self._resource() as dynamodb:
                table = await dynamodb.Table(self._table_name)
                response = await table.update_item(
                    Key={KEY_NAME: doc_id},
                    UpdateExpression="SET " + ", ".join(assignments),
                    ConditionExpression=condition,
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                    ReturnValues="ALL_NEW",
                    ReturnValuesOnConditionCheckFailure="ALL_OLD",
                )
        except ClientError as e:
            if _is_condition_failure(e):
                # The old item is only returned when the document exists.
                if e.response.get("Item"):
                    raise ConditionFailed(doc_id) from e
                raise DocumentNotFound(doc_id) from e
            raise StoreError(str(e)) from e
        except BotoCoreError as e:
            raise StoreError(str(e)) from e

        return _item_to_doc(response.get("Attributes", {}))

    async def delete(
        self, doc_id: str, *, expected: dict[str, Any] | None = None
    ) -> bool:
        kwargs: dict[str, Any] = {
            "Key": {KEY_NAME: doc_id},
            "ReturnValues": "ALL_OLD",
        }
        if expected:
            names: dict[str, str] = {"#pk": KEY_NAME}
            values: dict[str, Any] = {}
            matched = self._conditions(expected, names, values)
            kwargs["ConditionExpression"] = f"attribute_not_exists(#pk) OR ({matched})"
            kwargs["ExpressionAttributeNames"] = names
            if values:
                kwargs["ExpressionAttributeValues"] = values

        try:
            async with self._resource() as dynamodb:
                table = await dynamodb.Table(self._table_name)
                response = await table.delete_item(**kwargs)
        except ClientError as e:
            if _is_condition_failure(e):
                raise ConditionFailed(doc_id) from e
            raise StoreError(str(e)) from e
        except BotoCoreError as e:
            raise StoreError(str(e)) from e

        return bool(response.get("Attributes"))

    async def list(self, *, limit: int, order_by: str) -> list[dict[str, Any]]:
        # Scan has no ordering, so every page is read before sorting.
        items: list[dict[str, Any]] = []
        try:
            async with self._resource() as dynamodb:
                table = await dynamodb.Table(self._table_name)
                kwargs: dict[str, Any] = {}
                while True:
                    response = await table.scan(**kwargs)
                    items.extend(response.get("Items", []))
                    last_key = response.get("LastEvaluatedKey")
                    if not last_key:
                        break
                    kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as e:
            raise StoreError(str(e)) from e

        docs = [{"id": item[KEY_NAME], **_item_to_doc(item)} for item in items]
        docs.sort(key=lambda d: d.get(order_by) or 0)
        return docs[:limit]
