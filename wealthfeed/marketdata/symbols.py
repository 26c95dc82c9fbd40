"""Ticker normalization between display/index symbols and provider symbols.

Index tickers (CBOE-style bare and Yahoo-style caret-prefixed) are not
tradable on the primary provider's free tier, so quotes, candles and the
trade stream use a liquid ETF proxy instead.
"""

from __future__ import annotations

INDEX_TO_ETF: dict[str, str] = {
    # CBOE-style
    "SPX": "SPY",
    "NDX": "QQQ",
    "RUT": "IWM",
    "DJI": "DIA",
    "DJIA": "DIA",
    # Yahoo-style (caret prefix)
    "^GSPC": "SPY",
    "^DJI": "DIA",
    "^IXIC": "QQQ",
    "^RUT": "IWM",
    "^VIX": "VIXY",
    "^TNX": "TLT",
}


def normalize_ticker(ticker: str) -> str:
    """Map an index symbol to its ETF proxy; anything else passes through."""
    if not ticker:
        return ticker
    return INDEX_TO_ETF.get(ticker.upper(), ticker)


def reverse_map(tickers: list[str]) -> dict[str, list[str]]:
    """Group original tickers by the provider symbol they normalize to."""
    out: dict[str, list[str]] = {}
    for t in tickers:
        originals = out.setdefault(normalize_ticker(t), [])
        if t not in originals:
            originals.append(t)
    return out
