from fastapi import APIRouter, Depends, Query
from typing import Optional
import logging

from auth_dependency import get_current_user, get_quote_client
from routers.http_errors import http_error
from schemas.trades import TradeCloseRequest, TradeCreateRequest, TradeUpdateRequest
from services import trades_store
from services.errors import JournalError
from services.quotes import QuoteClient


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/trades",
    tags=["Trades"]
)


def to_local_record(trade: dict) -> dict:
    """The JSON shape the browser client keeps as its offline copy of a trade."""
    return {
        "id": trade["trade_id"],
        "ticker": trade["ticker"],
        "entryPrice": trade["entry_price"],
        "exitPrice": trade["exit_price"],
        "entryDate": trade["entry_date"],
        "exitDate": trade["exit_date"],
        "pnl": trade["pnl"],
        "pnlValue": trade["pnl_value"],
        "sharesQuantity": trade["shares_quantity"],
        "isOpen": trade["is_open"],
    }


@router.get("/")
async def get_trades(
    current_user: dict = Depends(get_current_user),
    ticker: Optional[str] = Query(None, description="Filter by ticker symbol"),
    strategy_id: Optional[str] = Query(None, description="Filter by strategy"),
    status: Optional[str] = Query(None, pattern="^(open|closed)$", description="open or closed"),
):
    try:
        trades = trades_store.list_trades(
            current_user["user_id"],
            ticker=ticker,
            strategy_id=strategy_id,
            status=status,
        )
    except JournalError as e:
        raise http_error(e)

    return {
        "status": "success",
        "data": trades,
        "count": len(trades)
    }


@router.get("/export")
async def export_trades(current_user: dict = Depends(get_current_user)):
    try:
        trades = trades_store.list_trades(current_user["user_id"])
    except JournalError as e:
        raise http_error(e)

    return [to_local_record(t) for t in trades]


@router.post("/", status_code=201)
async def create_trade(
    request: TradeCreateRequest,
    current_user: dict = Depends(get_current_user)
):
    try:
        trade = trades_store.create_trade(
            current_user["user_id"],
            request.strategy_id,
            request.ticker,
            [item.model_dump() for item in request.checklist],
            trade_id=request.trade_id,
        )
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "data": trade}


@router.get("/{trade_id}")
async def get_trade(
    trade_id: str,
    current_user: dict = Depends(get_current_user)
):
    try:
        trade = trades_store.get_trade(current_user["user_id"], trade_id)
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "data": trade}


@router.get("/{trade_id}/preview")
async def preview_trade(
    trade_id: str,
    entry_price: Optional[float] = Query(None, description="Unsaved entry price"),
    shares_quantity: Optional[float] = Query(None, description="Unsaved share count"),
    current_user: dict = Depends(get_current_user),
    quote_client: QuoteClient = Depends(get_quote_client),
):
    # Live P&L for the trade on screen; nothing is written.
    try:
        trade, quote = trades_store.preview_trade(
            current_user["user_id"],
            trade_id,
            quote_client,
            entry_price=entry_price,
            shares_quantity=shares_quantity,
        )
    except JournalError as e:
        raise http_error(e)

    return {
        "status": "success",
        "trade_id": trade_id,
        "data": trade,
        "quote": {"symbol": quote.symbol, "price": quote.price} if quote else None,
    }


@router.put("/{trade_id}")
async def update_trade(
    trade_id: str,
    request: TradeUpdateRequest,
    current_user: dict = Depends(get_current_user)
):
    try:
        trade = trades_store.update_open_trade(
            current_user["user_id"],
            trade_id,
            entry_price=request.entry_price,
            shares_quantity=request.shares_quantity,
            current_price=request.current_price,
        )
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "data": trade}


@router.post("/{trade_id}/close")
async def close_trade(
    trade_id: str,
    request: TradeCloseRequest,
    current_user: dict = Depends(get_current_user)
):
    try:
        trade = trades_store.close_trade(
            current_user["user_id"],
            trade_id,
            request.current_price,
            entry_price=request.entry_price,
            shares_quantity=request.shares_quantity,
        )
    except JournalError as e:
        raise http_error(e)

    return {"status": "success", "data": trade}
