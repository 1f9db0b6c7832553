from decimal import Decimal
from typing import AsyncGenerator, Callable

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from portfolio_dashboard.api.errors import register_exception_handlers
from portfolio_dashboard.api.routes import portfolio as portfolio_routes
from portfolio_dashboard.domain.models import Holding
from portfolio_dashboard.infrastructure.cache.ttl_cache import TTLCache


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def cache(clock) -> TTLCache:
    return TTLCache(default_ttl=15, clock=clock)


@pytest.fixture
def make_holding() -> Callable[..., Holding]:
    counter = {"n": 0}

    def _make(
        symbol: str = "TCS",
        purchase_price: str = "100",
        quantity: int = 1,
        sector: str = "Technology",
        **overrides,
    ) -> Holding:
        counter["n"] += 1
        fields = dict(
            id=str(counter["n"]),
            name=f"{symbol} Ltd",
            symbol=symbol,
            exchange_code_primary=symbol,
            exchange_code_secondary=f"5{counter['n']:05d}",
            sector=sector,
            purchase_price=Decimal(purchase_price),
            quantity=quantity,
        )
        fields.update(overrides)
        return Holding(**fields)

    return _make


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    portfolio_routes.api_rate_limiter.reset()
    portfolio_routes.portfolio_rate_limiter.reset()
    yield
    portfolio_routes.api_rate_limiter.reset()
    portfolio_routes.portfolio_rate_limiter.reset()


@pytest.fixture()
def app(cache) -> FastAPI:
    app = FastAPI()
    app.middleware("http")(portfolio_routes.api_rate_limiter.middleware)
    register_exception_handlers(app)
    app.include_router(portfolio_routes.router, prefix="/api", tags=["Portfolio"])
    app.state.cache = cache
    app.state.portfolio_service = None
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
