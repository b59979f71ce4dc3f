from fastapi import APIRouter, Depends

from auth_dependency import get_current_user, get_quote_client
from routers.http_errors import http_error
from services.errors import JournalError
from services.quotes import QuoteClient


router = APIRouter(
    prefix="/quotes",
    tags=["Quotes"]
)


@router.get("/{ticker}")
async def get_quote(
    ticker: str,
    current_user: dict = Depends(get_current_user),
    quote_client: QuoteClient = Depends(get_quote_client),
):
    try:
        quote = quote_client.fetch_price(ticker)
    except JournalError as e:
        raise http_error(e)

    return {
        "status": "success",
        "data": {"symbol": quote.symbol, "price": quote.price, "provider": quote.provider},
    }
