"""
DOMAIN MODELS — MERGED MARKET DATA

Per-symbol view of both upstream sources. A failed source is recorded as
a SourceError and leaves its fields as None; it never hides the other
source's data.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class DataSource(str, Enum):
    PRICE = "price"
    FUNDAMENTALS = "fundamentals"


@dataclass(frozen=True)
class SourceError:
    source: DataSource
    field: str
    message: str
    timestamp: str


@dataclass(frozen=True)
class MergedMarketData:
    price: Optional[Decimal] = None
    pe_ratio: Optional[Decimal] = None
    latest_earnings: Optional[str] = None
    errors: List[SourceError] = field(default_factory=list)
