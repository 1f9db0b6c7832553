from decimal import Decimal

import pytest

from portfolio_dashboard.domain.models import DataSource, MergedMarketData, SourceError
from portfolio_dashboard.services.portfolio_service import PORTFOLIO_CACHE_KEY, PortfolioService


class StubAggregator:
    def __init__(self, data=None):
        self.data = data or {}
        self.calls = []

    async def fetch_all_market_data(self, symbols):
        self.calls.append(list(symbols))
        return {s: self.data.get(s, MergedMarketData()) for s in symbols}


class TickingClock:
    def __init__(self):
        self.ticks = 0

    def __call__(self):
        self.ticks += 1
        return f"2026-01-15T09:30:{self.ticks:02d}.000Z"


@pytest.fixture
def holdings(make_holding):
    return [
        make_holding("TCS", purchase_price="3200", quantity=10),
        make_holding("INFY", purchase_price="1450", quantity=25),
    ]


@pytest.mark.asyncio
async def test_second_call_within_ttl_is_cache_hit(cache, holdings):
    aggregator = StubAggregator({
        "TCS": MergedMarketData(price=Decimal("3500")),
        "INFY": MergedMarketData(price=Decimal("1500")),
    })
    service = PortfolioService(cache, lambda: holdings, aggregator, clock=TickingClock())

    first = await service.get_portfolio()
    second = await service.get_portfolio()

    assert first.cache_hit is False
    assert second.cache_hit is True
    assert second.last_updated == first.last_updated
    assert second.total_investment == first.total_investment
    assert second.total_present_value == first.total_present_value
    assert [s.present_value for s in second.stocks] == [s.present_value for s in first.stocks]
    assert len(aggregator.calls) == 1


@pytest.mark.asyncio
async def test_rebuilds_after_ttl_expiry(cache, clock, holdings):
    aggregator = StubAggregator()
    service = PortfolioService(cache, lambda: holdings, aggregator, clock=TickingClock())

    first = await service.get_portfolio()
    clock.advance(15)
    second = await service.get_portfolio()

    assert second.cache_hit is False
    assert second.last_updated != first.last_updated
    assert len(aggregator.calls) == 2


@pytest.mark.asyncio
async def test_cached_snapshot_is_stored_without_hit_flag(cache, holdings):
    service = PortfolioService(cache, lambda: holdings, StubAggregator())

    await service.get_portfolio()
    await service.get_portfolio()

    assert cache.get(PORTFOLIO_CACHE_KEY).cache_hit is False


@pytest.mark.asyncio
async def test_price_error_surfaces_on_stock(cache, make_holding):
    holding = make_holding("WIPRO", purchase_price="420", quantity=50)
    error = SourceError(
        source=DataSource.PRICE,
        field="CMP",
        message="Failed to fetch CMP: timed out after 10s",
        timestamp="2026-01-15T09:30:00.000Z",
    )
    aggregator = StubAggregator({
        "WIPRO": MergedMarketData(pe_ratio=Decimal("19.2"), errors=[error]),
    })
    service = PortfolioService(cache, lambda: [holding], aggregator)

    response = await service.get_portfolio()
    stock = response.stocks[0]

    assert stock.present_value is None
    assert stock.pe_ratio == Decimal("19.20")
    assert stock.errors == [error]


@pytest.mark.asyncio
async def test_requests_market_data_by_primary_exchange_code(cache, make_holding):
    holding = make_holding("HDFC Bank", exchange_code_primary="HDFCBANK")
    aggregator = StubAggregator()
    service = PortfolioService(cache, lambda: [holding], aggregator)

    await service.get_portfolio()

    assert aggregator.calls == [["HDFCBANK"]]


@pytest.mark.asyncio
async def test_holdings_failure_propagates_and_is_not_cached(cache):
    def broken_holdings():
        raise FileNotFoundError("Holdings file not found: /nope.yml")

    service = PortfolioService(cache, broken_holdings, StubAggregator())

    with pytest.raises(FileNotFoundError):
        await service.get_portfolio()
    assert not cache.has(PORTFOLIO_CACHE_KEY)


def test_get_holdings_returns_provider_result(cache, holdings):
    service = PortfolioService(cache, lambda: holdings, StubAggregator())
    assert service.get_holdings() == holdings
