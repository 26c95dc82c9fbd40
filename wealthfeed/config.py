"""Centralized configuration via pydantic-settings, loaded from .env."""

from __future__ import annotations

import functools

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Primary provider (Finnhub) ─────────────────────────────────────
    finnhub_api_key: str = ""
    finnhub_base_url: str = "https://finnhub.io/api/v1"
    finnhub_ws_url: str = "wss://ws.finnhub.io"

    # ── Secondary provider (Yahoo chart via same-origin proxy) ─────────
    chart_proxy_base_url: str = "http://localhost:8000"
    yahoo_chart_url: str = "https://query1.finance.yahoo.com/v8/finance/chart"

    # ── Cache TTLs ─────────────────────────────────────────────────────
    quote_ttl_seconds: float = 30.0
    candle_ttl_seconds: float = 300.0
    search_ttl_seconds: float = 60.0

    # ── Throttling ─────────────────────────────────────────────────────
    primary_stagger_seconds: float = 0.2
    secondary_stagger_seconds: float = 0.05
    quote_stagger_seconds: float = 0.15
    price_load_stagger_seconds: float = 0.12

    # ── Streaming ──────────────────────────────────────────────────────
    ws_reconnect_seconds: float = 5.0

    # ── Analytics ──────────────────────────────────────────────────────
    risk_free_rate: float = 0.05

    # ── HTTP / API server ──────────────────────────────────────────────
    http_timeout_seconds: float = 15.0
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    log_level: str = "INFO"

    @property
    def finnhub_configured(self) -> bool:
        """Whether a primary-provider credential is present."""
        return bool(self.finnhub_api_key.strip())


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton accessor for the global settings."""
    return Settings()
