"""
DOMAIN MODELS — PORTFOLIO & PnL

Immutable structures representing enriched holdings, sector rollups and
the full portfolio response.
No market data fetching. No caching.

None means "not available", never zero: a stock without a price has no
present value, and a sector or portfolio with such a stock has no total
present value.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from portfolio_dashboard.domain.models.holding import Holding
from portfolio_dashboard.domain.models.market_data import SourceError


@dataclass(frozen=True)
class EnrichedStock:
    """
    Holding plus its market data and derived figures.
    """
    holding: Holding
    cmp: Optional[Decimal]
    pe_ratio: Optional[Decimal]
    latest_earnings: Optional[str]
    investment: Decimal
    present_value: Optional[Decimal]
    gain_loss: Optional[Decimal]
    gain_loss_percent: Optional[Decimal]
    portfolio_weight: Decimal
    last_updated: str
    errors: List[SourceError] = field(default_factory=list)


@dataclass(frozen=True)
class SectorSummary:
    sector: str
    total_investment: Decimal
    total_present_value: Optional[Decimal]
    gain_loss: Optional[Decimal]
    gain_loss_percent: Optional[Decimal]
    stock_count: int


@dataclass(frozen=True)
class PortfolioTotals:
    total_investment: Decimal
    total_present_value: Optional[Decimal]
    total_gain_loss: Optional[Decimal]
    total_gain_loss_percent: Optional[Decimal]


@dataclass(frozen=True)
class PortfolioResponse:
    """
    Snapshot of the entire portfolio at a point in time.
    """
    stocks: List[EnrichedStock]
    sectors: List[SectorSummary]
    total_investment: Decimal
    total_present_value: Optional[Decimal]
    total_gain_loss: Optional[Decimal]
    total_gain_loss_percent: Optional[Decimal]
    last_updated: str
    cache_hit: bool = False
