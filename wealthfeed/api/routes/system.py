"""System endpoints: health and provider state."""

from __future__ import annotations

from fastapi import APIRouter, Request

from wealthfeed import __version__

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(request: Request):
    from wealthfeed.api.app import get_uptime

    gateway = request.app.state.gateway
    return {
        "status": "ok",
        "version": __version__,
        "uptime_seconds": round(get_uptime(), 1),
        "market_data": gateway.get_provider_health(),
    }
