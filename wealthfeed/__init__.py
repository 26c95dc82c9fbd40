"""wealthfeed: market-data aggregation, caching and portfolio analytics."""

__version__ = "0.3.0"
