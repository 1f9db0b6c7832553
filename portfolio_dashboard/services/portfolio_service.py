# portfolio_dashboard/services/portfolio_service.py

import logging
from dataclasses import replace
from typing import Callable, Sequence

from portfolio_dashboard.domain.models import Holding, PortfolioResponse
from portfolio_dashboard.domain.services.portfolio_calculator import build_portfolio_response
from portfolio_dashboard.infrastructure.cache.ttl_cache import TTLCache
from portfolio_dashboard.infrastructure.market_data.aggregator import MarketDataAggregator
from portfolio_dashboard.utils.time import now_utc_iso

logger = logging.getLogger(__name__)

PORTFOLIO_CACHE_KEY = "portfolio_data"


class PortfolioService:
    """
    Single entry point for the dashboard: cached portfolio snapshot built
    from holdings and live market data.

    Concurrent cache misses each rebuild the snapshot; the last one to
    finish wins the cache slot.
    """

    def __init__(
        self,
        cache: TTLCache,
        holdings_provider: Callable[[], Sequence[Holding]],
        aggregator: MarketDataAggregator,
        clock: Callable[[], str] = now_utc_iso,
    ):
        self.cache = cache
        self.holdings_provider = holdings_provider
        self.aggregator = aggregator
        self.clock = clock

    def get_holdings(self) -> Sequence[Holding]:
        return self.holdings_provider()

    async def get_portfolio(self) -> PortfolioResponse:
        cached = self.cache.get(PORTFOLIO_CACHE_KEY)
        if cached is not None:
            logger.debug("Portfolio served from cache")
            return replace(cached, cache_hit=True)

        logger.info("🔍 Building portfolio snapshot")

        holdings = list(self.holdings_provider())
        symbols = [h.exchange_code_primary for h in holdings]

        market_data = await self.aggregator.fetch_all_market_data(symbols)
        response = build_portfolio_response(holdings, market_data, as_of=self.clock())

        self.cache.set(PORTFOLIO_CACHE_KEY, response)

        logger.info(
            "✅ Portfolio snapshot ready | stocks=%d invested=%s value=%s",
            len(response.stocks),
            response.total_investment,
            response.total_present_value,
        )
        return response
