"""
Google Finance Fundamentals Provider
Scrapes P/E ratio and latest earnings from the Google Finance quote page

Scraping is fragile: the page layout changes without notice and Google
blocks clients that request too fast. Requests are therefore sequential,
retried with backoff and cached. Extraction is best-effort; a value that
cannot be located confidently is left as None.
"""

from __future__ import annotations

import asyncio
import logging
import re
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from portfolio_dashboard.infrastructure.cache.ttl_cache import TTLCache
from portfolio_dashboard.infrastructure.market_data.types import Fundamentals
from portfolio_dashboard.utils.numbers import extract_number
from portfolio_dashboard.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

_PE_LABEL = re.compile(r"\bp/?e\s+ratio\b", re.IGNORECASE)
_HAS_DIGIT = re.compile(r"\d")


def extract_pe_ratio(soup: BeautifulSoup) -> Optional[Decimal]:
    """P/E from the key statistics rows, then a looser text scan."""
    for row in soup.select("[data-source='key_stats'] .gyFHrc, .gyFHrc"):
        label = row.select_one(".mfs7Fc")
        value = row.select_one(".P6K39c")
        if label is None or value is None:
            continue
        label_text = label.get_text(" ", strip=True)
        if _PE_LABEL.search(label_text) and "forward" not in label_text.lower():
            pe = extract_number(value.get_text(strip=True))
            if pe is not None:
                return pe

    for node in soup.find_all(string=_PE_LABEL):
        if "forward" in node.lower():
            continue
        container = node.parent.parent if node.parent is not None else None
        if container is None:
            continue
        candidates = container.find_all("div")
        if not candidates:
            continue
        pe = extract_number(candidates[-1].get_text(strip=True))
        if pe is not None and Decimal("0") < pe < Decimal("1000"):
            return pe
    return None


def extract_latest_earnings(soup: BeautifulSoup) -> Optional[str]:
    """Latest earnings text from the earnings block, else an EPS row."""
    section = soup.select_one("[data-source='earnings'], .AzFOnd")
    if section is not None:
        text = section.get_text(" ", strip=True)
        if text:
            return text

    for row in soup.select(".gyFHrc, tr"):
        cells = row.select(".mfs7Fc, .P6K39c") or row.find_all("td")
        if len(cells) < 2:
            continue
        label = cells[0].get_text(" ", strip=True)
        value = cells[-1].get_text(" ", strip=True)
        if "EPS" in label and "estimate" not in label.lower():
            if value and value != "EPS" and _HAS_DIGIT.search(value):
                return f"EPS: {value}"
    return None


class GoogleFinanceProvider:
    """
    Google Finance fundamentals source.
    Every failure is returned as data on the Fundamentals result.
    """

    BASE_URL = "https://www.google.com/finance/quote"
    CACHE_PREFIX = "fundamentals:"

    # Headers to mimic browser
    HEADERS = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Connection": "keep-alive",
    }

    def __init__(
        self,
        cache: TTLCache,
        timeout_seconds: float = 10.0,
        retries: int = 2,
        backoff_base_seconds: float = 0.5,
        request_delay_seconds: float = 0.3,
        exchange: str = "NSE",
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.cache = cache
        self.timeout_seconds = timeout_seconds
        self.retries = retries
        self.backoff_base_seconds = backoff_base_seconds
        self.request_delay_seconds = request_delay_seconds
        self.exchange = exchange
        self.session: Optional[httpx.AsyncClient] = client
        self._sleep = sleep or asyncio.sleep

    async def _get_session(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP session"""
        if self.session is None:
            self.session = httpx.AsyncClient(
                headers=self.HEADERS,
                timeout=self.timeout_seconds,
                follow_redirects=True,
            )
        return self.session

    async def close(self) -> None:
        """Close HTTP session"""
        if self.session:
            await self.session.aclose()
            self.session = None

    def build_url(self, symbol: str) -> str:
        return f"{self.BASE_URL}/{symbol}:{self.exchange}"

    async def _fetch_page(self, symbol: str) -> str:
        session = await self._get_session()
        response = await session.get(self.build_url(symbol), timeout=self.timeout_seconds)
        response.raise_for_status()
        return response.text

    def parse(self, symbol: str, html: str) -> Fundamentals:
        soup = BeautifulSoup(html, "html.parser")
        return Fundamentals(
            symbol=symbol,
            pe_ratio=extract_pe_ratio(soup),
            latest_earnings=extract_latest_earnings(soup),
        )

    async def fetch_one(self, symbol: str) -> Fundamentals:
        cache_key = f"{self.CACHE_PREFIX}{symbol}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            html = await retry_with_backoff(
                lambda: self._fetch_page(symbol),
                retries=self.retries,
                base_delay=self.backoff_base_seconds,
                sleep=self._sleep,
            )
            result = self.parse(symbol, html)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning(f"Error fetching fundamentals for {symbol}: {message}")
            return Fundamentals(
                symbol=symbol,
                error=f"Failed to fetch from Google Finance: {message}",
            )

        if result.pe_ratio is None and result.latest_earnings is None:
            logger.debug(f"No fundamentals found on page for {symbol}")
        self.cache.set(cache_key, result)
        return result

    async def fetch_many(self, symbols: List[str]) -> Dict[str, Fundamentals]:
        """
        Fetch one symbol at a time with a fixed pause between requests.
        """
        unique = list(dict.fromkeys(symbols))
        results: Dict[str, Fundamentals] = {}
        for index, symbol in enumerate(unique):
            results[symbol] = await self.fetch_one(symbol)
            if index < len(unique) - 1:
                await self._sleep(self.request_delay_seconds)
        return results
