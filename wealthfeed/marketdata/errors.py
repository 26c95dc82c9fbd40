"""Market data error taxonomy.

Provider failures are recovered as close to the source as possible; these
types let each layer decide what to recover from.
"""

from __future__ import annotations


class MarketDataError(Exception):
    """Base class for every provider/market-data failure."""


class HttpError(MarketDataError):
    """Non-2xx response from a provider."""

    def __init__(self, status: int, message: str = "") -> None:
        self.status = int(status)
        super().__init__(message or f"HTTP {self.status}")


class CapabilityError(HttpError):
    """HTTP 403 from the primary candle endpoint (free-tier restriction)."""

    def __init__(self, message: str = "") -> None:
        super().__init__(403, message or "HTTP 403: endpoint not available on this plan")


class TransientHttpError(HttpError):
    """Any other non-2xx response; surfaced to the immediate caller."""


class NoDataError(MarketDataError):
    """Well-formed but empty response (e.g. quote without a current price)."""


class UpstreamError(MarketDataError):
    """Secondary provider returned an error payload instead of a chart."""


class MalformedMessageError(MarketDataError):
    """Inbound streaming frame that could not be parsed."""


class ExhaustionError(MarketDataError):
    """Neither provider produced historical data for a request."""


def http_error(status: int, message: str = "") -> HttpError:
    """Map a status code to the most specific :class:`HttpError` subtype."""
    if int(status) == 403:
        return CapabilityError(message)
    return TransientHttpError(status, message)
