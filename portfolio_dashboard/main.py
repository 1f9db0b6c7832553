"""
FastAPI Main Application
Portfolio dashboard backend: live market data over a fixed set of holdings
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from portfolio_dashboard.api.errors import register_exception_handlers
from portfolio_dashboard.api.routes import portfolio
from portfolio_dashboard.config import settings
from portfolio_dashboard.core.logging import setup_logging
from portfolio_dashboard.infrastructure.cache.ttl_cache import TTLCache
from portfolio_dashboard.infrastructure.holdings import HoldingsRepository
from portfolio_dashboard.infrastructure.market_data.aggregator import MarketDataAggregator
from portfolio_dashboard.infrastructure.market_data.google_finance_provider import GoogleFinanceProvider
from portfolio_dashboard.infrastructure.market_data.yfinance_provider import YahooPriceProvider
from portfolio_dashboard.services.portfolio_service import PortfolioService

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Builds the cache, market data sources and portfolio service
    """
    logger.info("=" * 60)
    logger.info("🚀 Starting Portfolio Dashboard API")
    logger.info("=" * 60)

    cache = TTLCache(
        default_ttl=settings.CACHE_TTL,
        check_period=settings.CACHE_TTL * settings.CACHE_CHECK_PERIOD_RATIO,
    )
    sweeper_task = asyncio.create_task(cache.run_sweeper())

    holdings_repository = HoldingsRepository(settings.HOLDINGS_FILE)
    holdings = holdings_repository.get_all()
    logger.info(f"   📊 Holdings: {len(holdings)} stocks")

    price_provider = YahooPriceProvider(
        cache=cache,
        timeout_seconds=settings.UPSTREAM_TIMEOUT_SECONDS,
        batch_size=settings.PRICE_BATCH_SIZE,
        batch_delay_seconds=settings.PRICE_BATCH_DELAY_SECONDS,
        symbol_overrides=settings.YF_SYMBOL_OVERRIDES,
    )
    fundamentals_provider = GoogleFinanceProvider(
        cache=cache,
        timeout_seconds=settings.UPSTREAM_TIMEOUT_SECONDS,
        retries=settings.FUNDAMENTALS_RETRIES,
        backoff_base_seconds=settings.FUNDAMENTALS_BACKOFF_BASE_SECONDS,
        request_delay_seconds=settings.FUNDAMENTALS_REQUEST_DELAY_SECONDS,
    )

    app.state.cache = cache
    app.state.portfolio_service = PortfolioService(
        cache=cache,
        holdings_provider=holdings_repository.get_all,
        aggregator=MarketDataAggregator(price_provider, fundamentals_provider),
    )

    logger.info(f"   ✅ API Server: http://{settings.API_HOST}:{settings.API_PORT}")
    logger.info(f"   ✅ Environment: {settings.APP_ENV}")
    logger.info(f"   ✅ Cache TTL: {settings.CACHE_TTL}s")
    logger.info("=" * 60)

    yield

    logger.info("🛑 Shutting down Portfolio Dashboard API...")
    sweeper_task.cancel()
    try:
        await sweeper_task
    except asyncio.CancelledError:
        pass
    await fundamentals_provider.close()
    cache.flush()
    logger.info("👋 Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Portfolio Dashboard API",
    description="Live portfolio metrics from Yahoo Finance and Google Finance",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Global rate limit; stays inside CORS
app.middleware("http")(portfolio.api_rate_limiter.middleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

register_exception_handlers(app)


if not settings.is_production:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)


@app.get("/")
async def root():
    """Root endpoint"""
    prefix = settings.API_PREFIX
    return {
        "message": "Portfolio Dashboard API",
        "version": settings.APP_VERSION,
        "endpoints": {
            "portfolio": f"GET {prefix}/portfolio",
            "health": f"GET {prefix}/health",
            "status": f"GET {prefix}/status",
        },
    }


app.include_router(portfolio.router, prefix=settings.API_PREFIX, tags=["Portfolio"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("portfolio_dashboard.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
