"""
Market data source results and provider protocols for type hints.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Protocol


@dataclass(frozen=True)
class PriceQuote:
    symbol: str
    price: Optional[Decimal] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class Fundamentals:
    symbol: str
    pe_ratio: Optional[Decimal] = None
    latest_earnings: Optional[str] = None
    error: Optional[str] = None


class PriceSource(Protocol):
    async def fetch_one(self, symbol: str) -> PriceQuote:
        ...

    async def fetch_many(self, symbols: List[str]) -> Dict[str, PriceQuote]:
        ...


class FundamentalsSource(Protocol):
    async def fetch_one(self, symbol: str) -> Fundamentals:
        ...

    async def fetch_many(self, symbols: List[str]) -> Dict[str, Fundamentals]:
        ...
