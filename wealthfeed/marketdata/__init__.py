"""Market data providers, caches and streaming for wealthfeed."""

from .errors import CapabilityError, HttpError, MarketDataError, NoDataError
from .symbols import normalize_ticker

__all__ = ["CapabilityError", "HttpError", "MarketDataError", "NoDataError", "normalize_ticker"]
