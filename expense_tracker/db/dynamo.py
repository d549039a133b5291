import logging
import uuid
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from expense_tracker.core.config import settings
from expense_tracker.core.errors import StoreError

logger = logging.getLogger(__name__)

EMAIL_INDEX = "email-index"
OCCURRED_AT_INDEX = "user_id-occurred_at-index"

# Namespace for ids derived from (user_id, local_id).
LOCAL_ID_NAMESPACE = uuid.UUID("6f1c2a4e-8d3b-5e7f-9a0c-1b2d3e4f5a6b")


@lru_cache(maxsize=1)
def get_resource():
    return boto3.resource(
        "dynamodb",
        region_name=settings.DYNAMO_REGION,
        endpoint_url=settings.DYNAMO_ENDPOINT_URL,
    )


def users_table():
    return get_resource().Table(settings.DYNAMO_TABLE_USERS)


def expenses_table():
    return get_resource().Table(settings.DYNAMO_TABLE_EXPENSES)


def _store_failure(operation: str, exc: Exception) -> StoreError:
    if isinstance(exc, ClientError):
        message = exc.response.get("Error", {}).get("Message", str(exc))
    else:
        message = str(exc)
    logger.error(f"{operation} failed: {message}")
    return StoreError(f"{operation} failed: {message}")


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def expense_id_for(user_id: str, local_id: Optional[str]) -> str:
    """Deterministic id for records carrying a client local id, random otherwise."""
    if local_id is None:
        return str(uuid.uuid4())
    return str(uuid.uuid5(LOCAL_ID_NAMESPACE, f"{user_id}:{local_id}"))


# ---------------------------------------------------------------- tables


def create_tables() -> None:
    """Create both tables if missing. Used for DynamoDB Local and tests."""
    client = get_resource().meta.client
    try:
        existing = set(client.list_tables()["TableNames"])
        if settings.DYNAMO_TABLE_USERS not in existing:
            client.create_table(
                TableName=settings.DYNAMO_TABLE_USERS,
                KeySchema=[{"AttributeName": "user_id", "KeyType": "HASH"}],
                AttributeDefinitions=[
                    {"AttributeName": "user_id", "AttributeType": "S"},
                    {"AttributeName": "email", "AttributeType": "S"},
                ],
                GlobalSecondaryIndexes=[
                    {
                        "IndexName": EMAIL_INDEX,
                        "KeySchema": [{"AttributeName": "email", "KeyType": "HASH"}],
                        "Projection": {"ProjectionType": "ALL"},
                    }
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            logger.info(f"Created table {settings.DYNAMO_TABLE_USERS}")
        if settings.DYNAMO_TABLE_EXPENSES not in existing:
            client.create_table(
                TableName=settings.DYNAMO_TABLE_EXPENSES,
                KeySchema=[
                    {"AttributeName": "user_id", "KeyType": "HASH"},
                    {"AttributeName": "expense_id", "KeyType": "RANGE"},
                ],
                AttributeDefinitions=[
                    {"AttributeName": "user_id", "AttributeType": "S"},
                    {"AttributeName": "expense_id", "AttributeType": "S"},
                    {"AttributeName": "occurred_at", "AttributeType": "S"},
                ],
                GlobalSecondaryIndexes=[
                    {
                        "IndexName": OCCURRED_AT_INDEX,
                        "KeySchema": [
                            {"AttributeName": "user_id", "KeyType": "HASH"},
                            {"AttributeName": "occurred_at", "KeyType": "RANGE"},
                        ],
                        "Projection": {"ProjectionType": "ALL"},
                    }
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            logger.info(f"Created table {settings.DYNAMO_TABLE_EXPENSES}")
    except (BotoCoreError, ClientError) as e:
        raise _store_failure("create_tables", e)


# ---------------------------------------------------------------- users


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Query the Users table by email through the email GSI."""
    try:
        response = users_table().query(
            IndexName=EMAIL_INDEX,
            KeyConditionExpression=Key("email").eq(email),
        )
        return _from_dynamo(response["Items"][0]) if response["Items"] else None
    except (BotoCoreError, ClientError) as e:
        raise _store_failure("get_user_by_email", e)


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = users_table().get_item(Key={"user_id": user_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except (BotoCoreError, ClientError) as e:
        raise _store_failure("get_user_by_id", e)


def put_user(user_item: Dict[str, Any]) -> bool:
    """Insert a new user. Returns False if the user_id is already taken."""
    try:
        users_table().put_item(
            Item=_convert_for_dynamo(user_item),
            ConditionExpression="attribute_not_exists(user_id)",
        )
        return True
    except ClientError as e:
        if _is_conditional_failure(e):
            return False
        raise _store_failure("put_user", e)
    except BotoCoreError as e:
        raise _store_failure("put_user", e)


def update_user(user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _update_item(users_table(), {"user_id": user_id}, updates, "update_user", "user_id")


# ---------------------------------------------------------------- expenses


def put_expense(expense_item: Dict[str, Any]) -> bool:
    """Insert a new expense. Returns False if one with the same key exists."""
    try:
        expenses_table().put_item(
            Item=_convert_for_dynamo(expense_item),
            ConditionExpression="attribute_not_exists(expense_id)",
        )
        return True
    except ClientError as e:
        if _is_conditional_failure(e):
            return False
        raise _store_failure("put_expense", e)
    except BotoCoreError as e:
        raise _store_failure("put_expense", e)


def get_expense(user_id: str, expense_id: str) -> Optional[Dict[str, Any]]:
    try:
        response = expenses_table().get_item(Key={"user_id": user_id, "expense_id": expense_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except (BotoCoreError, ClientError) as e:
        raise _store_failure("get_expense", e)


def query_expenses(
    user_id: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
    category: Optional[str] = None,
    newest_first: bool = True,
) -> List[Dict[str, Any]]:
    """
    All expenses of a user with ``start <= occurred_at <= end``, optionally
    restricted to one category. Bounds are storage-format ISO strings.
    """
    condition = Key("user_id").eq(user_id)
    if start and end:
        condition = condition & Key("occurred_at").between(start, end)
    elif start:
        condition = condition & Key("occurred_at").gte(start)
    elif end:
        condition = condition & Key("occurred_at").lte(end)

    kwargs: Dict[str, Any] = {
        "IndexName": OCCURRED_AT_INDEX,
        "KeyConditionExpression": condition,
        "ScanIndexForward": not newest_first,
    }
    if category:
        kwargs["FilterExpression"] = Attr("category").eq(category)

    items: List[Dict[str, Any]] = []
    try:
        while True:
            response = expenses_table().query(**kwargs)
            items.extend(response["Items"])
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except (BotoCoreError, ClientError) as e:
        raise _store_failure("query_expenses", e)
    return [_from_dynamo(item) for item in items]


def update_expense(user_id: str, expense_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Apply partial updates to an existing expense. Returns the updated item,
    or None when the expense does not exist for this user.
    """
    return _update_item(
        expenses_table(),
        {"user_id": user_id, "expense_id": expense_id},
        updates,
        "update_expense",
        "expense_id",
    )


def upsert_expense(
    user_id: str,
    expense_id: str,
    fields: Dict[str, Any],
    now: str,
) -> Tuple[Dict[str, Any], bool]:
    """
    Create or overwrite an expense in a single atomic UpdateItem.
    ``created_at`` is only written when the item is new. Returns the stored
    item and whether it was created.
    """
    updates = dict(fields)
    updates["updated_at"] = now
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    parts = []
    for idx, (key, value) in enumerate(updates.items()):
        names[f"#f{idx}"] = key
        values[f":v{idx}"] = value
        parts.append(f"#f{idx} = :v{idx}")
    names["#created"] = "created_at"
    values[":now"] = now
    parts.append("#created = if_not_exists(#created, :now)")

    try:
        response = expenses_table().update_item(
            Key={"user_id": user_id, "expense_id": expense_id},
            UpdateExpression="SET " + ", ".join(parts),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=_convert_for_dynamo(values),
            ReturnValues="ALL_OLD",
        )
    except (BotoCoreError, ClientError) as e:
        raise _store_failure("upsert_expense", e)
    old = _from_dynamo(response.get("Attributes") or {})
    item = {
        **old,
        **updates,
        "user_id": user_id,
        "expense_id": expense_id,
        "created_at": old.get("created_at", now),
    }
    return item, not old


def delete_expense(user_id: str, expense_id: str) -> bool:
    """Delete a specific expense item. Returns False if it did not exist."""
    try:
        response = expenses_table().delete_item(
            Key={"user_id": user_id, "expense_id": expense_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in response
    except (BotoCoreError, ClientError) as e:
        raise _store_failure("delete_expense", e)


def _update_item(
    table,
    key: Dict[str, Any],
    updates: Dict[str, Any],
    operation: str,
    exists_attr: str,
) -> Optional[Dict[str, Any]]:
    if not updates:
        return None

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {"#key": exists_attr}

    for idx, (name, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = name
        expression_attribute_values[value_placeholder] = value

    try:
        response = table.update_item(
            Key=key,
            UpdateExpression="SET " + ", ".join(update_expression_parts),
            ConditionExpression="attribute_exists(#key)",
            ExpressionAttributeNames=expression_attribute_names,
            ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if _is_conditional_failure(e):
            return None
        raise _store_failure(operation, e)
    except BotoCoreError as e:
        raise _store_failure(operation, e)
    attributes = response.get("Attributes")
    return _from_dynamo(attributes) if attributes else None


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
