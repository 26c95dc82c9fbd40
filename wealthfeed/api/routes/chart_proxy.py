"""Same-origin proxy for the Yahoo Finance chart endpoint.

Returns the upstream JSON unmodified so the secondary candle client can
parse it exactly as Yahoo sends it.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["market-data"])
logger = logging.getLogger(__name__)

_USER_AGENT = "Mozilla/5.0 (compatible; wealthfeed/1.0)"
_CACHE_CONTROL = "s-maxage=300, stale-while-revalidate=60"


@router.get("/yahoo-chart")
async def yahoo_chart(request: Request, ticker: str | None = None):
    # "from" is a keyword, so both bounds are read from the raw query string.
    period1 = request.query_params.get("from")
    period2 = request.query_params.get("to")
    if not ticker or not period1 or not period2:
        return JSONResponse({"error": "Missing required params: ticker, from, to"}, status_code=400)

    settings = request.app.state.gateway.settings
    url = f"{settings.yahoo_chart_url.rstrip('/')}/{quote(ticker, safe='')}"
    params = {"period1": period1, "period2": period2, "interval": "1d", "includeAdjustedClose": "true"}

    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            resp = await client.get(url, params=params, headers={"User-Agent": _USER_AGENT})
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("[proxy] yahoo chart failed for %s: %s", ticker, exc)
        return JSONResponse({"error": str(exc)}, status_code=500)

    return JSONResponse(
        data,
        status_code=200 if resp.is_success else resp.status_code,
        headers={"Cache-Control": _CACHE_CONTROL, "Access-Control-Allow-Origin": "*"},
    )
