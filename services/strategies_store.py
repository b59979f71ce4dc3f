import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from db.dynamodb import (
    count_user_items,
    decimal_to_native,
    get_strategies_table,
    get_trades_table,
    query_user_items,
)
from services.errors import IntegrityRejection, NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


DEFAULT_STRATEGY_NAME = "Sector Momentum Strategy"
DEFAULT_STRATEGY_DESCRIPTION = "Default trading strategy focusing on sector strength and volume analysis"
DEFAULT_STRATEGY_CHECKLIST = [
    "Check sector strength",
    "Check sector top 5 stocks",
    "Check pre-market time and sales - active buy > active sell by 2x",
    "Check turnover rate > 20% in active trading session",
    "Check volume breakout from 50-day AVOL",
    "Check volume ratio > 2.5%",
    "Check price above EMA 10 and 5",
]


def _clean_fields(name: str, description, checklist_texts):
    name = (name or "").strip()
    if not name:
        raise ValidationError("Strategy name is required")

    valid = [text.strip() for text in (checklist_texts or []) if text and text.strip()]
    if not valid:
        raise ValidationError("At least one checklist item is required")

    description = (description or "").strip() or None

    checklist = [
        {"id": str(index + 1), "text": text, "completed": False}
        for index, text in enumerate(valid)
    ]
    return name, description, checklist


def strategy_from_item(item: dict) -> dict:
    return {
        "strategy_id": item["strategy_id"],
        "name": item.get("name"),
        "description": item.get("description"),
        "checklist": [
            {"id": str(i["id"]), "text": i.get("text", ""), "completed": bool(i.get("completed", False))}
            for i in item.get("checklist", [])
        ],
        "created_at": item.get("created_at"),
        "completed_trades": decimal_to_native(item.get("completed_trades", 0)),
    }


def stats_for(strategy: dict, trades: list) -> dict:
    """Win statistics for one strategy; trades without a P&L are not counted."""
    counted = [
        t for t in trades
        if t.get("strategy_id") == strategy["strategy_id"] and t.get("pnl") is not None
    ]
    total = len(counted)
    winning = len([t for t in counted if float(t["pnl"]) > 0])
    win_rate = (winning / total) * 100 if total > 0 else 0

    return {
        "total_trades": total,
        "winning_trades": winning,
        "win_rate": win_rate,
    }


def get_strategy(user_id: str, strategy_id: str) -> dict:
    table = get_strategies_table()
    try:
        response = table.get_item(Key={"user_id": user_id, "strategy_id": strategy_id})
    except ClientError as e:
        logger.error("DynamoDB get_item failed", exc_info=True)
        raise PersistenceError(f"Failed to load strategy: {e}")

    item = response.get("Item")
    if not item:
        raise NotFoundError(f"Strategy {strategy_id} not found")
    return strategy_from_item(item)


def list_strategies(user_id: str) -> list:
    """Strategies newest first, each with its win statistics."""
    strategies_table = get_strategies_table()
    trades_table = get_trades_table()

    try:
        items = query_user_items(strategies_table, user_id)
        trades = [
            {
                "strategy_id": t.get("strategy_id"),
                "pnl": decimal_to_native(t.get("pnl")),
            }
            for t in query_user_items(trades_table, user_id)
        ]
    except ClientError as e:
        logger.error("DynamoDB query failed", exc_info=True)
        raise PersistenceError(f"Failed to load strategies: {e}")

    trade_rows = {}
    for trade in trades:
        trade_rows[trade["strategy_id"]] = trade_rows.get(trade["strategy_id"], 0) + 1

    strategies = []
    for item in items:
        strategy = strategy_from_item(item)

        row_count = trade_rows.get(strategy["strategy_id"], 0)
        if strategy["completed_trades"] < row_count:
            strategy["completed_trades"] = _repair_completed_trades(
                user_id, strategy["strategy_id"], strategy["completed_trades"], row_count
            )

        strategy.update(stats_for(strategy, trades))
        strategies.append(strategy)

    strategies.sort(key=lambda s: s.get("created_at") or "", reverse=True)
    return strategies


def _repair_completed_trades(user_id: str, strategy_id: str, stored: int, row_count: int) -> int:
    # The counter is written after the trade row, so it can only lag behind.
    logger.warning(
        f"Strategy {strategy_id} counter out of sync for user_id={user_id}: "
        f"stored={stored}, trade rows={row_count}; repairing"
    )
    try:
        get_strategies_table().update_item(
            Key={"user_id": user_id, "strategy_id": strategy_id},
            UpdateExpression="SET completed_trades = :count",
            ExpressionAttributeValues={":count": Decimal(row_count)},
        )
    except ClientError:
        logger.error("Counter repair failed", exc_info=True)
    return row_count


def create_strategy(user_id: str, name: str, description=None, checklist_texts=None) -> dict:
    name, description, checklist = _clean_fields(name, description, checklist_texts)

    item = {
        "user_id": user_id,
        "strategy_id": str(uuid4()),
        "name": name,
        "description": description,
        "checklist": checklist,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "completed_trades": Decimal(0),
    }

    try:
        get_strategies_table().put_item(Item=item)
    except ClientError as e:
        logger.error("DynamoDB put_item failed", exc_info=True)
        raise PersistenceError(f"Failed to create strategy: {e}")

    logger.info(f"Created strategy {item['strategy_id']} for user_id={user_id}")
    return strategy_from_item(item)


def ensure_default_strategy(user_id: str) -> dict:
    for strategy in list_strategies(user_id):
        if strategy["name"] == DEFAULT_STRATEGY_NAME:
            return strategy

    return create_strategy(
        user_id,
        DEFAULT_STRATEGY_NAME,
        DEFAULT_STRATEGY_DESCRIPTION,
        DEFAULT_STRATEGY_CHECKLIST,
    )


def update_strategy(user_id: str, strategy_id: str, name: str, description=None, checklist_texts=None) -> dict:
    name, description, checklist = _clean_fields(name, description, checklist_texts)
    table = get_strategies_table()

    try:
        response = table.update_item(
            Key={"user_id": user_id, "strategy_id": strategy_id},
            UpdateExpression="SET #name = :name, #description = :description, checklist = :checklist",
            ConditionExpression=Attr("strategy_id").exists(),
            ExpressionAttributeNames={"#name": "name", "#description": "description"},
            ExpressionAttributeValues={
                ":name": name,
                ":description": description,
                ":checklist": checklist,
            },
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            raise NotFoundError(f"Strategy {strategy_id} not found")
        logger.error("DynamoDB update_item failed", exc_info=True)
        raise PersistenceError(f"Failed to update strategy: {e}")

    return strategy_from_item(response["Attributes"])


def count_strategy_trades(user_id: str, strategy_id: str) -> int:
    return count_user_items(
        get_trades_table(),
        user_id,
        filter_expression=Attr("strategy_id").eq(strategy_id),
    )


def delete_strategy(user_id: str, strategy_id: str) -> None:
    """Delete a strategy unless any trade row still references it."""
    strategy = get_strategy(user_id, strategy_id)

    try:
        trade_count = count_strategy_trades(user_id, strategy_id)
    except ClientError as e:
        logger.error("DynamoDB count failed", exc_info=True)
        raise PersistenceError(f"Failed to check strategy trades: {e}")

    if trade_count > 0 or strategy["completed_trades"] > 0:
        logger.info(f"Refusing to delete strategy {strategy_id}: {trade_count} trade(s) reference it")
        raise IntegrityRejection("has trades")

    try:
        get_strategies_table().delete_item(
            Key={"user_id": user_id, "strategy_id": strategy_id}
        )
    except ClientError as e:
        logger.error("DynamoDB delete_item failed", exc_info=True)
        raise PersistenceError(f"Failed to delete strategy: {e}")

    logger.info(f"Deleted strategy {strategy_id} for user_id={user_id}")


def increment_completed_trades(user_id: str, strategy_id: str) -> None:
    get_strategies_table().update_item(
        Key={"user_id": user_id, "strategy_id": strategy_id},
        UpdateExpression="ADD completed_trades :one",
        ConditionExpression=Attr("strategy_id").exists(),
        ExpressionAttributeValues={":one": Decimal(1)},
    )
