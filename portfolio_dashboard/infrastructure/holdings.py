"""
Holdings repository
Load the tracked portfolio from holdings.yml

RULES:
✅ Fail fast on missing file or invalid entries
✅ Loaded once, read-only afterwards
"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional, Tuple, Union

import yaml

from portfolio_dashboard.domain.models import Holding

logger = logging.getLogger(__name__)


class HoldingsRepository:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._holdings: Optional[Tuple[Holding, ...]] = None

    def get_all(self) -> Tuple[Holding, ...]:
        if self._holdings is None:
            self._holdings = self._load()
        return self._holdings

    def _load(self) -> Tuple[Holding, ...]:
        if not self.path.exists():
            raise FileNotFoundError(f"Holdings file not found: {self.path}")

        with open(self.path, "r") as f:
            data = yaml.safe_load(f) or {}

        holdings = []
        for entry in data.get("holdings", []):
            try:
                holdings.append(
                    Holding(
                        id=str(entry["id"]),
                        name=entry["name"],
                        symbol=entry["symbol"],
                        exchange_code_primary=str(entry["exchange_code_primary"]),
                        exchange_code_secondary=str(entry.get("exchange_code_secondary", "")),
                        sector=entry["sector"],
                        purchase_price=Decimal(str(entry["purchase_price"])),
                        quantity=int(entry["quantity"]),
                    )
                )
            except KeyError as e:
                raise ValueError(f"Holding entry missing field {e}: {entry}") from e

        ids = [h.id for h in holdings]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate holding ids found in holdings file")

        logger.info(f"Loaded {len(holdings)} holdings from {self.path}")
        return tuple(holdings)
