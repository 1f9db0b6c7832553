"""
Portfolio API Routes
Portfolio snapshot with live market data, health and status
"""

from decimal import Decimal
from typing import Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from portfolio_dashboard.api.errors import AppError
from portfolio_dashboard.api.rate_limiter import RateLimiter
from portfolio_dashboard.config import settings
from portfolio_dashboard.domain.models import (
    EnrichedStock,
    PortfolioResponse,
    SectorSummary,
    SourceError,
)
from portfolio_dashboard.infrastructure.cache.ttl_cache import TTLCache
from portfolio_dashboard.services.portfolio_service import PortfolioService
from portfolio_dashboard.utils.time import now_utc_iso

logger = logging.getLogger(__name__)

# Applied app-wide as middleware in main; health checks are exempt
api_rate_limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_MS / 1000,
    skip_paths=(f"{settings.API_PREFIX}/health",),
)
portfolio_rate_limiter = RateLimiter(
    max_requests=settings.PORTFOLIO_RATE_LIMIT_MAX,
    window_seconds=settings.PORTFOLIO_RATE_LIMIT_WINDOW_SECONDS,
    message=(
        f"Portfolio data is cached for {settings.PORTFOLIO_RATE_LIMIT_WINDOW_SECONDS} seconds. "
        "Please wait before refreshing."
    ),
)

router = APIRouter()


def _get_portfolio_service(request: Request) -> PortfolioService:
    service = getattr(request.app.state, "portfolio_service", None)
    if service is None:
        raise AppError(503, "Portfolio service not initialized")
    return service


def _get_cache(request: Request) -> TTLCache:
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        raise AppError(503, "Cache not initialized")
    return cache


def _num(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


# Response models
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SourceErrorResponse(CamelModel):
    source: str
    field: str
    message: str
    timestamp: str

    @classmethod
    def from_domain(cls, error: SourceError) -> "SourceErrorResponse":
        return cls(
            source=error.source.value,
            field=error.field,
            message=error.message,
            timestamp=error.timestamp,
        )


class StockResponse(CamelModel):
    id: str
    name: str
    symbol: str
    exchange_code_primary: str
    exchange_code_secondary: str
    sector: str
    purchase_price: float
    quantity: int
    cmp: Optional[float]
    pe_ratio: Optional[float]
    latest_earnings: Optional[str]
    investment: float
    present_value: Optional[float]
    gain_loss: Optional[float]
    gain_loss_percent: Optional[float]
    portfolio_weight: float
    last_updated: str
    errors: List[SourceErrorResponse]

    @classmethod
    def from_domain(cls, stock: EnrichedStock) -> "StockResponse":
        h = stock.holding
        return cls(
            id=h.id,
            name=h.name,
            symbol=h.symbol,
            exchange_code_primary=h.exchange_code_primary,
            exchange_code_secondary=h.exchange_code_secondary,
            sector=h.sector,
            purchase_price=float(h.purchase_price),
            quantity=h.quantity,
            cmp=_num(stock.cmp),
            pe_ratio=_num(stock.pe_ratio),
            latest_earnings=stock.latest_earnings,
            investment=float(stock.investment),
            present_value=_num(stock.present_value),
            gain_loss=_num(stock.gain_loss),
            gain_loss_percent=_num(stock.gain_loss_percent),
            portfolio_weight=float(stock.portfolio_weight),
            last_updated=stock.last_updated,
            errors=[SourceErrorResponse.from_domain(e) for e in stock.errors],
        )


class SectorResponse(CamelModel):
    sector: str
    total_investment: float
    total_present_value: Optional[float]
    gain_loss: Optional[float]
    gain_loss_percent: Optional[float]
    stock_count: int

    @classmethod
    def from_domain(cls, summary: SectorSummary) -> "SectorResponse":
        return cls(
            sector=summary.sector,
            total_investment=float(summary.total_investment),
            total_present_value=_num(summary.total_present_value),
            gain_loss=_num(summary.gain_loss),
            gain_loss_percent=_num(summary.gain_loss_percent),
            stock_count=summary.stock_count,
        )


class PortfolioDataResponse(CamelModel):
    stocks: List[StockResponse]
    sectors: List[SectorResponse]
    total_investment: float
    total_present_value: Optional[float]
    total_gain_loss: Optional[float]
    total_gain_loss_percent: Optional[float]
    last_updated: str
    cache_hit: bool

    @classmethod
    def from_domain(cls, portfolio: PortfolioResponse) -> "PortfolioDataResponse":
        return cls(
            stocks=[StockResponse.from_domain(s) for s in portfolio.stocks],
            sectors=[SectorResponse.from_domain(s) for s in portfolio.sectors],
            total_investment=float(portfolio.total_investment),
            total_present_value=_num(portfolio.total_present_value),
            total_gain_loss=_num(portfolio.total_gain_loss),
            total_gain_loss_percent=_num(portfolio.total_gain_loss_percent),
            last_updated=portfolio.last_updated,
            cache_hit=portfolio.cache_hit,
        )


class PortfolioEnvelope(CamelModel):
    success: bool = True
    data: PortfolioDataResponse


class CacheStatsResponse(CamelModel):
    hits: int
    misses: int
    keys: int


class HealthResponse(CamelModel):
    success: bool = True
    status: str
    timestamp: str
    cache: CacheStatsResponse


class StatusData(CamelModel):
    version: str
    environment: str
    cache_ttl: int = Field(alias="cacheTTL")
    refresh_interval: int
    features: Dict[str, bool]


class StatusResponse(CamelModel):
    success: bool = True
    data: StatusData


# Routes
@router.get(
    "/portfolio",
    response_model=PortfolioEnvelope,
    dependencies=[Depends(portfolio_rate_limiter)],
)
async def get_portfolio(service: PortfolioService = Depends(_get_portfolio_service)):
    """
    Complete portfolio: stocks with market data, sector summaries, totals.
    """
    try:
        portfolio = await service.get_portfolio()
    except Exception as e:
        logger.exception("Failed to build portfolio")
        raise AppError(500, "Failed to fetch portfolio data", str(e) or type(e).__name__)

    return PortfolioEnvelope(data=PortfolioDataResponse.from_domain(portfolio))


@router.get("/health", response_model=HealthResponse)
async def health(cache: TTLCache = Depends(_get_cache)):
    """Health check with cache statistics (not rate limited)"""
    stats = cache.stats()
    return HealthResponse(
        status="healthy",
        timestamp=now_utc_iso(),
        cache=CacheStatsResponse(hits=stats.hits, misses=stats.misses, keys=stats.keys),
    )


@router.get("/status", response_model=StatusResponse)
async def status():
    """Server status and non-sensitive configuration"""
    return StatusResponse(
        data=StatusData(
            version=settings.APP_VERSION,
            environment=settings.APP_ENV,
            cache_ttl=settings.CACHE_TTL,
            refresh_interval=settings.REFRESH_INTERVAL,
            features={
                "yahooFinance": True,
                "googleFinance": True,
                "sectorGrouping": True,
            },
        )
    )
