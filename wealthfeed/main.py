"""wealthfeed entrypoint: chart proxy server and a health probe.

    python -m wealthfeed.main --server     # serve /api/yahoo-chart and /api/health
    python -m wealthfeed.main --health     # print provider state as JSON
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict

from wealthfeed import __version__
from wealthfeed.config import get_settings
from wealthfeed.utils import setup_logging

logger = logging.getLogger("wealthfeed")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wealthfeed",
        description="wealthfeed market data layer",
    )
    parser.add_argument("--server", action="store_true", help="Run the FastAPI proxy server")
    parser.add_argument("--health", action="store_true", help="Print market-data provider health")
    parser.add_argument("--quote", metavar="TICKER", help="Fetch one quote (with --health)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def _health(ticker: str | None) -> None:
    from wealthfeed.marketdata.gateway import MarketDataGateway

    gw = MarketDataGateway()
    try:
        out = gw.get_provider_health()
        if ticker:
            try:
                out["quote"] = asdict(await gw.get_quote(ticker))
            except Exception as exc:
                out["quote_error"] = str(exc)
        print(json.dumps(out, indent=2, default=str))
    finally:
        await gw.close()


async def _serve() -> None:
    import uvicorn
    from wealthfeed.api.app import create_app

    settings = get_settings()
    config = uvicorn.Config(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    args = _build_parser().parse_args()
    settings = get_settings()
    setup_logging(settings.log_level)

    if not settings.finnhub_configured:
        logger.warning("FINNHUB_API_KEY is not set; quotes, streaming and analytics are disabled")

    try:
        if args.server:
            asyncio.run(_serve())
        elif args.health or args.quote:
            asyncio.run(_health(args.quote))
        else:
            _build_parser().print_help(sys.stderr)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
