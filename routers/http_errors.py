from fastapi import HTTPException, status

from services.errors import (
    IdentityError,
    IntegrityRejection,
    JournalError,
    NotFoundError,
    PersistenceError,
    QuoteNoDataError,
    QuoteRateLimitedError,
    QuoteTransportError,
    TradeClosedError,
    TradeIdConflictError,
    ValidationError,
)


STATUS_BY_ERROR = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (TradeClosedError, status.HTTP_409_CONFLICT),
    (TradeIdConflictError, status.HTTP_409_CONFLICT),
    (IntegrityRejection, status.HTTP_409_CONFLICT),
    (QuoteRateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (QuoteTransportError, status.HTTP_502_BAD_GATEWAY),
    (QuoteNoDataError, status.HTTP_404_NOT_FOUND),
    (IdentityError, status.HTTP_400_BAD_REQUEST),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def http_error(e: JournalError) -> HTTPException:
    for error_class, status_code in STATUS_BY_ERROR:
        if isinstance(e, error_class):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    detail = {"error": type(e).__name__, "message": e.message}
    if isinstance(e, IntegrityRejection):
        detail["reason"] = e.reason

    return HTTPException(status_code=status_code, detail=detail)
