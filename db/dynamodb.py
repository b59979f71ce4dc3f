import boto3
from decimal import Decimal
from boto3.dynamodb.conditions import Key

from config import get_settings


def get_dynamodb():
    return boto3.resource(
        "dynamodb",
        region_name=get_settings().aws_region,
    )


def get_strategies_table():
    dynamodb = get_dynamodb()
    return dynamodb.Table(get_settings().strategies_table)


def get_trades_table():
    dynamodb = get_dynamodb()
    return dynamodb.Table(get_settings().trades_table)


def to_decimal(v):
    if v is None:
        return None
    return Decimal(str(v))


def decimal_to_native(v):
    if isinstance(v, Decimal):
        if v % 1 == 0:
            return int(v)
        return float(v)
    return v


def query_user_items(table, user_id: str, **kwargs):
    """All items in the user's partition, following pagination."""
    query_kwargs = {"KeyConditionExpression": Key("user_id").eq(user_id), **kwargs}
    items = []

    while True:
        response = table.query(**query_kwargs)
        items.extend(response.get("Items", []))

        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return items
        query_kwargs["ExclusiveStartKey"] = last_key


def count_user_items(table, user_id: str, filter_expression=None) -> int:
    query_kwargs = {
        "KeyConditionExpression": Key("user_id").eq(user_id),
        "Select": "COUNT",
    }
    if filter_expression is not None:
        query_kwargs["FilterExpression"] = filter_expression

    total = 0
    while True:
        response = table.query(**query_kwargs)
        total += response.get("Count", 0)

        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return total
        query_kwargs["ExclusiveStartKey"] = last_key
