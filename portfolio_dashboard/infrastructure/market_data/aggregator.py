"""
Market data aggregation - price and fundamentals merged per symbol.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from portfolio_dashboard.domain.models import DataSource, MergedMarketData, SourceError
from portfolio_dashboard.infrastructure.market_data.types import (
    Fundamentals,
    FundamentalsSource,
    PriceQuote,
    PriceSource,
)
from portfolio_dashboard.utils.time import now_utc_iso

logger = logging.getLogger(__name__)

PRICE_FIELD = "CMP"
FUNDAMENTALS_FIELD = "P/E & Earnings"
MISSING_RESULT_MESSAGE = "No data returned"


def create_source_error(source: DataSource, field: str, message: str) -> SourceError:
    return SourceError(source=source, field=field, message=message, timestamp=now_utc_iso())


def merge_market_data(
    price: Optional[PriceQuote],
    fundamentals: Optional[Fundamentals],
) -> MergedMarketData:
    """Combine both source results for one symbol; each side fails on its own."""
    errors: List[SourceError] = []

    if price is None:
        errors.append(create_source_error(DataSource.PRICE, PRICE_FIELD, MISSING_RESULT_MESSAGE))
    elif price.error:
        errors.append(create_source_error(DataSource.PRICE, PRICE_FIELD, price.error))

    if fundamentals is None:
        errors.append(
            create_source_error(DataSource.FUNDAMENTALS, FUNDAMENTALS_FIELD, MISSING_RESULT_MESSAGE)
        )
    elif fundamentals.error:
        errors.append(
            create_source_error(DataSource.FUNDAMENTALS, FUNDAMENTALS_FIELD, fundamentals.error)
        )

    return MergedMarketData(
        price=price.price if price is not None and not price.error else None,
        pe_ratio=fundamentals.pe_ratio if fundamentals is not None and not fundamentals.error else None,
        latest_earnings=(
            fundamentals.latest_earnings
            if fundamentals is not None and not fundamentals.error
            else None
        ),
        errors=errors,
    )


class MarketDataAggregator:
    def __init__(self, price_source: PriceSource, fundamentals_source: FundamentalsSource):
        self.price_source = price_source
        self.fundamentals_source = fundamentals_source

    async def fetch_all_market_data(self, symbols: List[str]) -> Dict[str, MergedMarketData]:
        """
        Fetch both sources concurrently and merge once both have finished.
        """
        unique = list(dict.fromkeys(symbols))
        if not unique:
            return {}

        price_results, fundamentals_results = await asyncio.gather(
            self.price_source.fetch_many(unique),
            self.fundamentals_source.fetch_many(unique),
        )

        merged: Dict[str, MergedMarketData] = {}
        for symbol in unique:
            merged[symbol] = merge_market_data(
                price_results.get(symbol),
                fundamentals_results.get(symbol),
            )

        failures = sum(1 for data in merged.values() if data.errors)
        logger.info(f"Market data merged for {len(merged)} symbols ({failures} with source errors)")
        return merged
