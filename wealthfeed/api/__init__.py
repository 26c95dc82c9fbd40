"""HTTP surface: chart proxy and health endpoints."""
