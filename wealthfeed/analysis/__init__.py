"""Portfolio return and risk analytics over daily candle series."""

from .engine import AnalyticsEngine

__all__ = ["AnalyticsEngine"]
