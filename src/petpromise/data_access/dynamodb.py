import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from botocore.exceptions import ClientError

from petpromise.data_access.filters import Filter

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def to_dynamo(value: Any) -> Any:
    """Convert JSON-ish values into types boto3 accepts (floats become Decimal)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def is_conditional_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


class DynamoStore:
    """One document collection backed by a single DynamoDB table."""

    def __init__(self, table, key: str = "id"):
        self.table = table
        self.key = key

    @property
    def name(self) -> str:
        return getattr(self.table, "name", "unknown")

    def _key(self, key_value: str) -> dict:
        return {self.key: key_value}

    def get(self, key_value: str) -> dict | None:
        response = self.table.get_item(Key=self._key(key_value))
        return response.get("Item")

    def create(self, item: dict) -> bool:
        """Insert only if no item has the same key. Returns False when one exists."""
        try:
            self.table.put_item(
                Item=to_dynamo(item),
                ConditionExpression="attribute_not_exists(#pk)",
                ExpressionAttributeNames={"#pk": self.key},
            )
            return True
        except ClientError as e:
            if is_conditional_failure(e):
                logger.info(f"Item {item.get(self.key)} already exists in {self.name}")
                return False
            logger.error(f"Error creating item in {self.name}: {e}", extra={"store": self.name})
            raise

    def put(self, item: dict) -> dict:
        item = to_dynamo(item)
        self.table.put_item(Item=item)
        return item

    def set_fields(self, key_value: str, fields: dict,
                   expected: dict | None = None) -> dict | None:
        """
        Partial ``SET`` of ``fields`` on an existing item. ``expected`` adds
        equality guards. Returns the new item, or None when the item is
        missing or a guard did not hold.
        """
        names = {"#pk": self.key}
        values = {}
        assignments = []
        for i, (name, value) in enumerate(fields.items()):
            names[f"#f{i}"] = name
            values[f":f{i}"] = to_dynamo(value)
            assignments.append(f"#f{i} = :f{i}")

        conditions = ["attribute_exists(#pk)"]
        for i, (name, value) in enumerate((expected or {}).items()):
            names[f"#e{i}"] = name
            values[f":e{i}"] = to_dynamo(value)
            conditions.append(f"#e{i} = :e{i}")

        try:
            response = self.table.update_item(
                Key=self._key(key_value),
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression=" AND ".join(conditions),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
            return response.get("Attributes", {})
        except ClientError as e:
            if is_conditional_failure(e):
                logger.info(f"Conditional update skipped for {key_value} in {self.name}")
                return None
            logger.error(f"Error updating {key_value} in {self.name}: {e}", extra={"store": self.name})
            raise

    def increment(self, key_value: str, field: str, delta: Decimal,
                  minimum: Decimal | None = None) -> dict | None:
        """
        Atomic ``ADD`` on a numeric field of an existing item. With ``minimum``
        the update only applies while the current value is at least that much.
        """
        names = {"#pk": self.key, "#field": field}
        values = {":delta": to_dynamo(delta)}
        condition = "attribute_exists(#pk)"
        if minimum is not None:
            values[":min"] = to_dynamo(minimum)
            condition += " AND #field >= :min"

        try:
            response = self.table.update_item(
                Key=self._key(key_value),
                UpdateExpression="ADD #field :delta",
                ConditionExpression=condition,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
            return response.get("Attributes", {})
        except ClientError as e:
            if is_conditional_failure(e):
                logger.info(f"Guarded increment of {field} skipped for {key_value} in {self.name}")
                return None
            logger.error(f"Error incrementing {field} on {key_value} in {self.name}: {e}", extra={"store": self.name})
            raise

    def delete(self, key_value: str) -> dict | None:
        """Delete and return the removed item, or None if nothing was there."""
        response = self.table.delete_item(
            Key=self._key(key_value),
            ReturnValues="ALL_OLD",
        )
        return response.get("Attributes")

    def scan(self, filter: Filter | None = None) -> list[dict]:
        """Full scan following ``LastEvaluatedKey`` until the table is exhausted."""
        kwargs = {}
        condition = filter.to_condition() if filter else None
        if condition is not None:
            kwargs["FilterExpression"] = condition

        items = []
        while True:
            response = self.table.scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key

        if filter is not None:
            items = [item for item in items if filter.matches(item)]
        return items
