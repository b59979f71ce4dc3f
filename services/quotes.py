"""
Live quote lookup.

Two provider contracts are supported. The one in use is picked from
configuration (``QUOTE_PROVIDER``); responses are never shape-sniffed.

rapidapi     GET https://latest-stock-price.p.rapidapi.com/timeseries
             price at ``$[0].Last``
alphavantage GET https://www.alphavantage.co/query?function=GLOBAL_QUOTE
             price at ``$["Global Quote"]["05. price"]``
"""

import logging
import math
from dataclasses import dataclass

import requests

from services.errors import (
    QuoteKeyRejectedError,
    QuoteNoDataError,
    QuoteRateLimitedError,
    QuoteTransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Informal or outdated tickers mapped to the provider's canonical symbol.
TICKER_ALIASES = {
    "APPL": "AAPL",
    "FB": "META",
    "TSMC": "TSM",
    "GOOGLE": "GOOGL",
}


def normalize_ticker(ticker: str) -> str:
    symbol = (ticker or "").strip().upper()
    if not symbol:
        raise ValidationError("Ticker symbol is required")
    return TICKER_ALIASES.get(symbol, symbol)


def _parse_price(raw, symbol: str) -> float:
    try:
        price = float(raw)
    except (TypeError, ValueError):
        raise QuoteNoDataError(symbol)
    if not math.isfinite(price) or price <= 0:
        raise QuoteNoDataError(symbol)
    return price


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: float
    provider: str


class RapidApiTimeseriesAdapter:
    name = "rapidapi"
    host = "latest-stock-price.p.rapidapi.com"

    def build_request(self, symbol: str, api_key: str) -> dict:
        return {
            "url": f"https://{self.host}/timeseries",
            "params": {"Symbol": symbol, "Timescale": "1", "Period": "1DAY"},
            "headers": {
                "x-rapidapi-host": self.host,
                "x-rapidapi-key": api_key,
                "Content-Type": "application/json",
            },
        }

    def extract_price(self, payload, symbol: str) -> float:
        if isinstance(payload, dict):
            message = str(payload.get("message", ""))
            if "limit" in message.lower():
                raise QuoteRateLimitedError(symbol)
            raise QuoteNoDataError(symbol)

        if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
            raise QuoteNoDataError(symbol)

        return _parse_price(payload[0].get("Last"), symbol)


class AlphaVantageGlobalQuoteAdapter:
    name = "alphavantage"

    def build_request(self, symbol: str, api_key: str) -> dict:
        return {
            "url": "https://www.alphavantage.co/query",
            "params": {"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": api_key},
            "headers": {},
        }

    def extract_price(self, payload, symbol: str) -> float:
        if not isinstance(payload, dict):
            raise QuoteNoDataError(symbol)

        for key in ("Note", "Information"):
            notice = str(payload.get(key, "")).lower()
            if "limit" in notice or "frequency" in notice:
                raise QuoteRateLimitedError(symbol)

        quote = payload.get("Global Quote")
        if not isinstance(quote, dict):
            raise QuoteNoDataError(symbol)

        return _parse_price(quote.get("05. price"), symbol)


PROVIDER_ADAPTERS = {
    RapidApiTimeseriesAdapter.name: RapidApiTimeseriesAdapter,
    AlphaVantageGlobalQuoteAdapter.name: AlphaVantageGlobalQuoteAdapter,
}


def get_adapter(provider: str):
    try:
        return PROVIDER_ADAPTERS[provider.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown quote provider '{provider}'. Expected one of: {', '.join(PROVIDER_ADAPTERS)}"
        )


class QuoteClient:
    def __init__(self, provider: str, api_key: str, timeout: float = 10.0, session=None):
        if not api_key:
            raise ValueError("A quote provider API key is required")
        self.adapter = get_adapter(provider)
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self):
        self.session.close()

    def fetch_price(self, ticker: str) -> Quote:
        """Fetch the latest traded price. Every call hits the provider."""
        symbol = normalize_ticker(ticker)
        request = self.adapter.build_request(symbol, self.api_key)

        logger.info(f"Fetching {self.adapter.name} quote for {symbol}")

        try:
            response = self.session.get(
                request["url"],
                params=request["params"],
                headers=request["headers"],
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Quote request for {symbol} failed: {e}")
            raise QuoteTransportError(symbol, str(e))

        if response.status_code == 429:
            raise QuoteRateLimitedError(symbol)

        if response.status_code in (401, 403):
            logger.warning(f"Quote provider rejected the API key (HTTP {response.status_code})")
            raise QuoteKeyRejectedError(symbol, response.status_code)

        if not 200 <= response.status_code < 300:
            logger.warning(f"Quote provider returned HTTP {response.status_code} for {symbol}")
            raise QuoteTransportError(symbol, f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            raise QuoteNoDataError(symbol)

        price = self.adapter.extract_price(payload, symbol)
        logger.info(f"{symbol} last price {price}")

        return Quote(symbol=symbol, price=price, provider=self.adapter.name)
