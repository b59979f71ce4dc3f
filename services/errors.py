class JournalError(Exception):
    """Base class for every error the journal services raise."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(JournalError):
    pass


class NotFoundError(JournalError):
    pass


class TradeClosedError(JournalError):
    def __init__(self, trade_id: str):
        super().__init__(f"Trade {trade_id} is closed and can no longer be changed")
        self.trade_id = trade_id


class TradeIdConflictError(JournalError):
    def __init__(self, trade_id: str):
        super().__init__(f"Trade id {trade_id} is already used by a different trade")
        self.trade_id = trade_id


class IntegrityRejection(JournalError):
    def __init__(self, reason: str = "has trades"):
        super().__init__("Cannot delete a strategy with existing trades")
        self.reason = reason


class PersistenceError(JournalError):
    pass


class IdentityError(JournalError):
    pass


class QuoteFetchError(JournalError):
    """A live price could not be obtained. Callers keep their previous price."""


class QuoteTransportError(QuoteFetchError):
    def __init__(self, symbol: str, detail: str = ""):
        message = f"Could not reach the quote provider for {symbol}. Check your connection and try again, or enter the price manually."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.symbol = symbol


class QuoteKeyRejectedError(QuoteTransportError):
    def __init__(self, symbol: str, status_code: int):
        QuoteFetchError.__init__(
            self,
            f"The quote provider rejected the API key while fetching {symbol} (HTTP {status_code}). "
            "Check the configured quote API key, supply your own, or enter the price manually.",
        )
        self.symbol = symbol
        self.status_code = status_code


class QuoteRateLimitedError(QuoteFetchError):
    def __init__(self, symbol: str):
        super().__init__(
            f"The quote provider's usage limit was reached while fetching {symbol}. "
            "Wait a minute before refreshing, use your own API key, or enter the price manually."
        )
        self.symbol = symbol


class QuoteNoDataError(QuoteFetchError):
    def __init__(self, symbol: str):
        super().__init__(
            f"No price data is available for {symbol}. Check the ticker symbol or enter the price manually."
        )
        self.symbol = symbol
