# homelab_dash/services/markets.py
import asyncio
import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends

from ..deps import get_http_client
from ..errors import UpstreamError, raise_for_upstream
from ..utils.fallback import envelope

logger = logging.getLogger("uvicorn.error")
router = APIRouter(prefix="/api/markets", tags=["markets"])

COINGECKO_API = "https://api.coingecko.com/api/v3"
YAHOO_API = "https://query1.finance.yahoo.com/v8/finance/chart"
STOCK_SYMBOLS = ("NVDA", "QQQ")
COINS = (("bitcoin", "BTC", "Bitcoin"), ("ethereum", "ETH", "Ethereum"))

MOCK_MARKETS = [
    {"symbol": "BTC", "name": "Bitcoin", "price": 97000.0, "change24h": 1.2, "type": "crypto"},
    {"symbol": "ETH", "name": "Ethereum", "price": 3400.0, "change24h": -0.8, "type": "crypto"},
    {"symbol": "NVDA", "name": "NVIDIA Corporation", "price": 140.0, "change": 0.5, "type": "stock"},
    {"symbol": "QQQ", "name": "Invesco QQQ Trust", "price": 510.0, "change": 0.3, "type": "stock"},
]


async def fetch_crypto(client: httpx.AsyncClient) -> List[dict]:
    try:
        r = await client.get(
            f"{COINGECKO_API}/simple/price",
            params={
                "ids": ",".join(coin for coin, _, _ in COINS),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            },
        )
        raise_for_upstream("CoinGecko", r)
        return crypto_from_prices(r.json())
    except (httpx.HTTPError, UpstreamError, ValueError, AttributeError, TypeError) as e:
        logger.warning("Failed to fetch crypto data: %s", e)
        return []


def crypto_from_prices(data: dict) -> List[dict]:
    quotes = []
    for coin, symbol, name in COINS:
        row = data.get(coin) or {}
        quotes.append(
            {
                "symbol": symbol,
                "name": name,
                "price": row.get("usd") or 0,
                "change24h": row.get("usd_24h_change") or 0,
                "type": "crypto",
            }
        )
    return quotes


def stock_from_chart(symbol: str, payload: dict) -> Optional[dict]:
    """Quote from a Yahoo chart response; change is percent vs previous close."""
    results = (payload.get("chart") or {}).get("result") or []
    if not results or not isinstance(results[0], dict):
        return None
    meta = results[0].get("meta") or {}
    price = meta.get("regularMarketPrice")
    if price is None:
        return None
    previous = meta.get("chartPreviousClose") or meta.get("previousClose")
    change = (price - previous) / previous * 100 if previous else 0
    return {
        "symbol": symbol,
        "name": meta.get("shortName") or symbol,
        "price": price,
        "change": change,
        "type": "stock",
    }


async def fetch_stock(client: httpx.AsyncClient, symbol: str) -> Optional[dict]:
    try:
        r = await client.get(f"{YAHOO_API}/{symbol}", params={"interval": "1d", "range": "1d"})
        raise_for_upstream("Yahoo", r)
        return stock_from_chart(symbol, r.json())
    except (httpx.HTTPError, UpstreamError, ValueError, AttributeError, TypeError) as e:
        logger.warning("Failed to fetch stock %s: %s", symbol, e)
        return None


@router.get("")
async def get_markets(client: httpx.AsyncClient = Depends(get_http_client)):
    crypto, *stocks = await asyncio.gather(
        fetch_crypto(client),
        *(fetch_stock(client, s) for s in STOCK_SYMBOLS),
    )
    markets = crypto + [s for s in stocks if s]
    if not markets:
        return envelope(MOCK_MARKETS, "mock", success=False, error="Failed to fetch market data")
    return envelope(markets, "live")
