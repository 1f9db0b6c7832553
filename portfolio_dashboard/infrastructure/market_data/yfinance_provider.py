"""
YFinance Price Provider
Current market price (CMP) for NSE-listed stocks via Yahoo Finance

yfinance is an unofficial client and Yahoo throttles aggressive callers,
so results are cached and requests go out in small batches.
"""

import asyncio
import logging
import math
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional

import yfinance as yf

from portfolio_dashboard.infrastructure.cache.ttl_cache import TTLCache
from portfolio_dashboard.infrastructure.market_data.types import PriceQuote
from portfolio_dashboard.utils.numbers import to_decimal

logger = logging.getLogger(__name__)


class YahooPriceProvider:
    """
    Yahoo Finance price source.
    Async-safe via thread offloading; every failure is returned as data.
    """

    CACHE_PREFIX = "price:"

    def __init__(
        self,
        cache: TTLCache,
        timeout_seconds: float = 10.0,
        batch_size: int = 5,
        batch_delay_seconds: float = 0.1,
        symbol_overrides: str = "",
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.cache = cache
        self.timeout_seconds = timeout_seconds
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.symbol_mapping: Dict[str, str] = {}
        self._sleep = sleep or asyncio.sleep
        self._apply_symbol_overrides(symbol_overrides)

    def _apply_symbol_overrides(self, raw: str) -> None:
        """
        Apply Yahoo symbol mapping overrides.

        Format: "HDFCBANK=HDFCBANK.BO,FOO=FOO.NS"
        """
        raw = (raw or "").strip()
        if not raw:
            return
        for pair in raw.split(","):
            pair = pair.strip()
            if not pair or "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            key = key.strip().upper()
            value = value.strip()
            if key and value:
                self.symbol_mapping[key] = value

    def to_yahoo_symbol(self, symbol: str) -> str:
        return self.symbol_mapping.get(symbol.upper(), f"{symbol}.NS")

    # ------------------------------------------------------------------
    # INTERNAL HELPERS
    # ------------------------------------------------------------------

    def _download_price(self, yf_symbol: str) -> Decimal:
        """
        Blocking yfinance call. Raises on anything that is not a usable price.
        """
        ticker = yf.Ticker(yf_symbol)
        hist = ticker.history(period="5d", interval="1d", auto_adjust=False)
        if hist is None or hist.empty or "Close" not in hist:
            raise ValueError(f"no price data returned for {yf_symbol}")
        closes = hist["Close"].dropna()
        if closes.empty:
            raise ValueError(f"no closing price for {yf_symbol}")
        close = float(closes.iloc[-1])
        if math.isnan(close) or close <= 0:
            raise ValueError(f"invalid price {close} for {yf_symbol}")
        return Decimal(str(close))

    async def _request_price(self, yf_symbol: str) -> Decimal:
        return await asyncio.wait_for(
            asyncio.to_thread(self._download_price, yf_symbol),
            timeout=self.timeout_seconds,
        )

    # ------------------------------------------------------------------
    # CURRENT PRICES
    # ------------------------------------------------------------------

    async def fetch_one(self, symbol: str) -> PriceQuote:
        cache_key = f"{self.CACHE_PREFIX}{symbol}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        yf_symbol = self.to_yahoo_symbol(symbol)
        try:
            price = to_decimal(await self._request_price(yf_symbol))
            if price is None or price <= 0:
                raise ValueError(f"invalid price for {yf_symbol}")
        except asyncio.TimeoutError:
            logger.warning(f"Yahoo price request timed out for {symbol}")
            return PriceQuote(
                symbol=symbol,
                error=f"Failed to fetch CMP: timed out after {self.timeout_seconds:g}s",
            )
        except Exception as e:
            logger.warning(f"Error fetching CMP for {symbol}: {e}")
            return PriceQuote(symbol=symbol, error=f"Failed to fetch CMP: {str(e) or type(e).__name__}")

        result = PriceQuote(symbol=symbol, price=price)
        self.cache.set(cache_key, result)
        return result

    async def fetch_many(self, symbols: List[str]) -> Dict[str, PriceQuote]:
        """
        Fetch prices in batches; requests inside a batch run concurrently,
        batches run one after another with a short pause in between.
        """
        unique = list(dict.fromkeys(symbols))
        batches = [
            unique[i:i + self.batch_size]
            for i in range(0, len(unique), self.batch_size)
        ]

        results: Dict[str, PriceQuote] = {}
        for index, batch in enumerate(batches):
            quotes = await asyncio.gather(*(self.fetch_one(symbol) for symbol in batch))
            for symbol, quote in zip(batch, quotes):
                results[symbol] = quote
            if index < len(batches) - 1:
                await self._sleep(self.batch_delay_seconds)

        failed = sum(1 for q in results.values() if q.error)
        if failed:
            logger.info(f"Yahoo prices: {len(results) - failed}/{len(results)} ok")
        return results

    async def validate_symbol(self, symbol: str) -> bool:
        """True if Yahoo returns a usable price for the symbol. Not cached."""
        try:
            await self._request_price(self.to_yahoo_symbol(symbol))
            return True
        except Exception:
            return False
