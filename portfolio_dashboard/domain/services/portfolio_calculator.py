"""
PORTFOLIO CALCULATOR
Holdings + merged market data → enriched stocks, sector rollups, totals

RESPONSIBILITIES:
- Per-stock investment, present value, gain/loss, portfolio weight
- Sector summaries, sorted by investment
- Portfolio-level totals

RULES:
❌ No fetching, no caching, no clock reads
❌ Missing price is never treated as zero
❌ No partial present-value sums for a sector or the portfolio
✅ Full precision throughout, ROUND_HALF_UP to 2 places on the way out
✅ Weights are based on investment, not present value
"""

from dataclasses import replace
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from portfolio_dashboard.domain.models import (
    EnrichedStock,
    Holding,
    MergedMarketData,
    PortfolioResponse,
    PortfolioTotals,
    SectorSummary,
)
from portfolio_dashboard.utils.numbers import (
    calculate_percent_change,
    round_optional,
    round_to_decimals,
)

HUNDRED = Decimal("100")
ZERO = Decimal("0")


def calculate_total_investment(holdings: Iterable[Holding]) -> Decimal:
    return sum((h.investment for h in holdings), ZERO)


def _sum_if_complete(values: Sequence[Optional[Decimal]]) -> Optional[Decimal]:
    """Sum only when every value is present."""
    if any(v is None for v in values):
        return None
    return sum(values, ZERO)  # type: ignore[arg-type]


def _gain_loss(
    present_value: Optional[Decimal],
    investment: Decimal,
) -> Tuple[Optional[Decimal], Optional[Decimal]]:
    if present_value is None:
        return None, None
    gain_loss = present_value - investment
    return gain_loss, calculate_percent_change(present_value, investment)


def enrich_stock(
    holding: Holding,
    market_data: MergedMarketData,
    total_investment: Decimal,
    as_of: str,
) -> EnrichedStock:
    """
    Derive per-stock figures at full precision.
    """
    investment = holding.investment
    present_value = (
        market_data.price * holding.quantity
        if market_data.price is not None
        else None
    )
    gain_loss, gain_loss_percent = _gain_loss(present_value, investment)
    portfolio_weight = (
        investment / total_investment * HUNDRED
        if total_investment > 0
        else ZERO
    )

    return EnrichedStock(
        holding=holding,
        cmp=market_data.price,
        pe_ratio=market_data.pe_ratio,
        latest_earnings=market_data.latest_earnings,
        investment=investment,
        present_value=present_value,
        gain_loss=gain_loss,
        gain_loss_percent=gain_loss_percent,
        portfolio_weight=portfolio_weight,
        last_updated=as_of,
        errors=list(market_data.errors),
    )


def calculate_sector_summaries(stocks: Sequence[EnrichedStock]) -> List[SectorSummary]:
    """
    Group by sector in first-seen order, then sort by total investment
    (descending). sorted() is stable, so ties keep first-seen order.
    """
    groups: Dict[str, List[EnrichedStock]] = {}
    for stock in stocks:
        groups.setdefault(stock.holding.sector, []).append(stock)

    summaries: List[SectorSummary] = []
    for sector, members in groups.items():
        total_investment = sum((s.investment for s in members), ZERO)
        total_present_value = _sum_if_complete([s.present_value for s in members])
        gain_loss, gain_loss_percent = _gain_loss(total_present_value, total_investment)
        summaries.append(
            SectorSummary(
                sector=sector,
                total_investment=total_investment,
                total_present_value=total_present_value,
                gain_loss=gain_loss,
                gain_loss_percent=gain_loss_percent,
                stock_count=len(members),
            )
        )

    return sorted(summaries, key=lambda s: s.total_investment, reverse=True)


def calculate_portfolio_totals(
    stocks: Sequence[EnrichedStock],
    total_investment: Decimal,
) -> PortfolioTotals:
    total_present_value = _sum_if_complete([s.present_value for s in stocks])
    total_gain_loss, total_gain_loss_percent = _gain_loss(total_present_value, total_investment)
    return PortfolioTotals(
        total_investment=total_investment,
        total_present_value=total_present_value,
        total_gain_loss=total_gain_loss,
        total_gain_loss_percent=total_gain_loss_percent,
    )


# ------------------------------------------------------------------
# PRESENTATION ROUNDING
# ------------------------------------------------------------------

def round_stock(stock: EnrichedStock) -> EnrichedStock:
    return replace(
        stock,
        cmp=round_optional(stock.cmp),
        pe_ratio=round_optional(stock.pe_ratio),
        investment=round_to_decimals(stock.investment),
        present_value=round_optional(stock.present_value),
        gain_loss=round_optional(stock.gain_loss),
        gain_loss_percent=round_optional(stock.gain_loss_percent),
        portfolio_weight=round_to_decimals(stock.portfolio_weight),
    )


def round_sector(summary: SectorSummary) -> SectorSummary:
    return replace(
        summary,
        total_investment=round_to_decimals(summary.total_investment),
        total_present_value=round_optional(summary.total_present_value),
        gain_loss=round_optional(summary.gain_loss),
        gain_loss_percent=round_optional(summary.gain_loss_percent),
    )


def build_portfolio_response(
    holdings: Sequence[Holding],
    market_data: Mapping[str, MergedMarketData],
    as_of: str,
) -> PortfolioResponse:
    """
    Full computation for one request. Holdings order is preserved; a
    holding with no market data entry gets an empty MergedMarketData.
    """
    total_investment = calculate_total_investment(holdings)

    stocks = [
        enrich_stock(
            holding,
            market_data.get(holding.exchange_code_primary) or MergedMarketData(),
            total_investment,
            as_of,
        )
        for holding in holdings
    ]
    sectors = calculate_sector_summaries(stocks)
    totals = calculate_portfolio_totals(stocks, total_investment)

    return PortfolioResponse(
        stocks=[round_stock(s) for s in stocks],
        sectors=[round_sector(s) for s in sectors],
        total_investment=round_to_decimals(totals.total_investment),
        total_present_value=round_optional(totals.total_present_value),
        total_gain_loss=round_optional(totals.total_gain_loss),
        total_gain_loss_percent=round_optional(totals.total_gain_loss_percent),
        last_updated=as_of,
        cache_hit=False,
    )
