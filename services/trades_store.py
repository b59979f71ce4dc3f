from datetime import datetime, timezone
from uuid import uuid4
import logging
import math

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from db.dynamodb import decimal_to_native, get_trades_table, query_user_items, to_decimal
from services import checklist
from services.errors import (
    NotFoundError,
    PersistenceError,
    TradeClosedError,
    TradeIdConflictError,
    ValidationError,
)
from services.pnl import percent_return, value_return
from services.strategies_store import get_strategy, increment_completed_trades

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ("entry_price", "exit_price", "current_price", "pnl", "pnl_value", "shares_quantity")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_conditional_failure(e: ClientError) -> bool:
    return e.response["Error"]["Code"] == "ConditionalCheckFailedException"


def trade_from_item(item: dict) -> dict:
    trade = {
        "trade_id": item["trade_id"],
        "strategy_id": item.get("strategy_id"),
        "ticker": item.get("ticker"),
        "entry_date": item.get("entry_date"),
        "exit_date": item.get("exit_date"),
        "is_open": bool(item.get("is_open", False)),
    }
    for field in NUMERIC_FIELDS:
        trade[field] = decimal_to_native(item.get(field))
    return trade


def _check_price(value, field: str, allow_zero: bool = False):
    if value is None:
        return
    if not math.isfinite(value):
        raise ValidationError(f"{field} must be a finite number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than zero")


def get_trade(user_id: str, trade_id: str) -> dict:
    try:
        response = get_trades_table().get_item(Key={"user_id": user_id, "trade_id": trade_id})
    except ClientError as e:
        logger.error("DynamoDB get_item failed", exc_info=True)
        raise PersistenceError(f"Failed to load trade: {e}")

    item = response.get("Item")
    if not item:
        raise NotFoundError(f"Trade {trade_id} not found")
    return trade_from_item(item)


def list_trades(user_id: str, ticker=None, strategy_id=None, status=None) -> list:
    try:
        items = query_user_items(get_trades_table(), user_id)
    except ClientError as e:
        logger.error("DynamoDB query failed", exc_info=True)
        raise PersistenceError(f"Failed to load trades: {e}")

    trades = []
    for item in items:
        trade = trade_from_item(item)

        if ticker and (trade["ticker"] or "").upper() != ticker.strip().upper():
            continue
        if strategy_id and trade["strategy_id"] != strategy_id:
            continue
        if status == "open" and not trade["is_open"]:
            continue
        if status == "closed" and trade["is_open"]:
            continue

        trades.append(trade)

    trades.sort(key=lambda t: t.get("entry_date") or "", reverse=True)
    return trades


def create_trade(user_id: str, strategy_id: str, ticker: str, checklist_states, trade_id=None) -> dict:
    """
    Open a trade from a completed checklist.

    The submitted item states are replayed onto a fresh copy of the stored
    checklist, so the trade only opens when every stored item is ticked.
    Passing the same ``trade_id`` twice returns the existing trade without
    counting it again; reusing it for another strategy or ticker is a conflict.
    """
    symbol = (ticker or "").strip().upper()
    if not symbol:
        raise ValidationError("Ticker symbol is required")

    strategy = get_strategy(user_id, strategy_id)
    instance = checklist.apply_states(checklist.start(strategy), checklist_states or [])
    if not checklist.is_complete(instance):
        done = checklist.progress(instance)
        raise ValidationError(
            f"Checklist incomplete: {done['completed_count']} of {done['total_count']} items checked"
        )

    item = {
        "user_id": user_id,
        "trade_id": trade_id or str(uuid4()),
        "strategy_id": strategy_id,
        "ticker": symbol,
        "entry_price": None,
        "exit_price": None,
        "entry_date": _now(),
        "exit_date": None,
        "current_price": None,
        "pnl": None,
        "pnl_value": None,
        "shares_quantity": None,
        "is_open": True,
    }

    table = get_trades_table()
    try:
        table.put_item(Item=item, ConditionExpression=Attr("trade_id").not_exists())
    except ClientError as e:
        if _is_conditional_failure(e):
            existing = get_trade(user_id, item["trade_id"])
            if existing["strategy_id"] != strategy_id or existing["ticker"] != symbol:
                raise TradeIdConflictError(item["trade_id"])
            logger.info(f"Trade {item['trade_id']} already exists for user_id={user_id}")
            return existing
        logger.error("DynamoDB put_item failed", exc_info=True)
        raise PersistenceError(f"Failed to create trade: {e}")

    # Second write. If it fails the trade stays and the strategy listing
    # recomputes the counter from the trade rows.
    try:
        increment_completed_trades(user_id, strategy_id)
    except ClientError:
        logger.error(
            f"Trade {item['trade_id']} saved but completed_trades increment failed "
            f"for strategy {strategy_id}",
            exc_info=True,
        )

    logger.info(f"Opened trade {item['trade_id']} ({symbol}) for user_id={user_id}")
    return trade_from_item(item)


def on_price_resolved(trade: dict, price, requested_trade_id=None) -> dict:
    """Recompute an open trade's P&L for a freshly resolved price. Nothing is saved."""
    if requested_trade_id is not None and requested_trade_id != trade["trade_id"]:
        logger.debug(f"Discarding price for trade {requested_trade_id}; viewing {trade['trade_id']}")
        return trade
    if not trade["is_open"]:
        return trade

    pnl = percent_return(trade["entry_price"], price)
    if pnl is None:
        return {**trade, "current_price": price}

    return {
        **trade,
        "current_price": price,
        "pnl": pnl,
        "pnl_value": value_return(trade["entry_price"], price, trade["shares_quantity"]),
    }


def preview_trade(user_id: str, trade_id: str, quote_client, entry_price=None, shares_quantity=None):
    """Fetch a live quote and return ``(trade_with_preview_pnl, quote)`` without writing."""
    trade = get_trade(user_id, trade_id)
    if not trade["is_open"]:
        return trade, None

    _check_price(entry_price, "entry_price")
    _check_price(shares_quantity, "shares_quantity", allow_zero=True)
    if entry_price is not None:
        trade["entry_price"] = entry_price
    if shares_quantity is not None:
        trade["shares_quantity"] = shares_quantity

    # The caller drops late responses by comparing the echoed trade id.
    quote = quote_client.fetch_price(trade["ticker"])
    return on_price_resolved(trade, quote.price), quote


def update_open_trade(user_id: str, trade_id: str, entry_price=None, shares_quantity=None, current_price=None) -> dict:
    _check_price(entry_price, "entry_price")
    _check_price(shares_quantity, "shares_quantity", allow_zero=True)
    _check_price(current_price, "current_price")

    trade = get_trade(user_id, trade_id)
    if not trade["is_open"]:
        raise TradeClosedError(trade_id)

    if entry_price is not None:
        trade["entry_price"] = entry_price
    if shares_quantity is not None:
        trade["shares_quantity"] = shares_quantity
    if current_price is not None:
        trade["current_price"] = current_price

    # P&L always matches the saved inputs: recomputed from the last known
    # price, or cleared when there is none.
    trade["pnl"] = percent_return(trade["entry_price"], trade["current_price"])
    trade["pnl_value"] = None
    if trade["pnl"] is not None:
        trade["pnl_value"] = value_return(trade["entry_price"], trade["current_price"], trade["shares_quantity"])

    try:
        get_trades_table().update_item(
            Key={"user_id": user_id, "trade_id": trade_id},
            UpdateExpression=(
                "SET entry_price = :entry, shares_quantity = :shares, current_price = :current, "
                "pnl = :pnl, pnl_value = :pnl_value"
            ),
            ConditionExpression=Attr("is_open").eq(True),
            ExpressionAttributeValues={
                ":entry": to_decimal(trade["entry_price"]),
                ":shares": to_decimal(trade["shares_quantity"]),
                ":current": to_decimal(trade["current_price"]),
                ":pnl": to_decimal(trade["pnl"]),
                ":pnl_value": to_decimal(trade["pnl_value"]),
            },
        )
    except ClientError as e:
        if _is_conditional_failure(e):
            raise TradeClosedError(trade_id)
        logger.error("DynamoDB update_item failed", exc_info=True)
        raise PersistenceError(f"Failed to update trade: {e}")

    return trade


def close_trade(user_id: str, trade_id: str, current_price, entry_price=None, shares_quantity=None) -> dict:
    _check_price(shares_quantity, "shares_quantity", allow_zero=True)

    trade = get_trade(user_id, trade_id)
    if not trade["is_open"]:
        raise TradeClosedError(trade_id)

    entry = entry_price if entry_price is not None else trade["entry_price"]
    shares = shares_quantity if shares_quantity is not None else trade["shares_quantity"]

    pnl = percent_return(entry, current_price)
    if pnl is None:
        raise ValidationError("Entry price and current price must both be greater than zero to close a trade")
    pnl_value = value_return(entry, current_price, shares)

    closed = {
        **trade,
        "entry_price": entry,
        "exit_price": current_price,
        "exit_date": _now(),
        "pnl": pnl,
        "pnl_value": pnl_value,
        "shares_quantity": shares,
        "is_open": False,
    }

    try:
        get_trades_table().update_item(
            Key={"user_id": user_id, "trade_id": trade_id},
            UpdateExpression=(
                "SET entry_price = :entry, exit_price = :exit, exit_date = :exit_date, "
                "pnl = :pnl, pnl_value = :pnl_value, shares_quantity = :shares, is_open = :closed"
            ),
            ConditionExpression=Attr("is_open").eq(True),
            ExpressionAttributeValues={
                ":entry": to_decimal(entry),
                ":exit": to_decimal(current_price),
                ":exit_date": closed["exit_date"],
                ":pnl": to_decimal(pnl),
                ":pnl_value": to_decimal(pnl_value),
                ":shares": to_decimal(shares),
                ":closed": False,
            },
        )
    except ClientError as e:
        if _is_conditional_failure(e):
            raise TradeClosedError(trade_id)
        logger.error("DynamoDB update_item failed", exc_info=True)
        raise PersistenceError(f"Failed to close trade: {e}")

    logger.info(f"Closed trade {trade_id} with {pnl:.2f}% P&L for user_id={user_id}")
    return closed
