"""
Domain Models Package
Export all domain entities
"""

from .holding import Holding
from .market_data import DataSource, MergedMarketData, SourceError
from .portfolio import (
    EnrichedStock,
    PortfolioResponse,
    PortfolioTotals,
    SectorSummary,
)

__all__ = [
    # Enums
    "DataSource",

    # Entities
    "EnrichedStock",
    "Holding",
    "MergedMarketData",
    "PortfolioResponse",
    "PortfolioTotals",
    "SectorSummary",
    "SourceError",
]
