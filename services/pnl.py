import math


def _positive(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


def percent_return(entry, current, previous=None):
    """
    Percentage return of a position, ``(current - entry) / entry * 100``.

    Both prices must be positive. Otherwise nothing is computed and
    ``previous`` is handed back, so a half-typed price never replaces a
    good value with NaN.
    """
    if not (_positive(entry) and _positive(current)):
        return previous

    entry = float(entry)
    return (float(current) - entry) / entry * 100


def value_return(entry, current, shares):
    """Currency return ``shares * (current - entry)``; ``None`` without a position size."""
    if not _positive(shares):
        return None
    if entry is None or current is None:
        return None
    return float(shares) * (float(current) - float(entry))
