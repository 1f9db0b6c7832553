from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Holding:
    """
    One tracked position: a security, its cost basis and quantity.
    Supplied externally and read-only for the process lifetime.
    """
    id: str
    name: str
    symbol: str
    exchange_code_primary: str
    exchange_code_secondary: str
    sector: str
    purchase_price: Decimal
    quantity: int

    def __post_init__(self):
        if not self.exchange_code_primary:
            raise ValueError(f"Holding {self.id}: exchange_code_primary is required")
        if self.purchase_price < 0:
            raise ValueError(f"Holding {self.id}: purchase_price must not be negative")
        if self.quantity <= 0:
            raise ValueError(f"Holding {self.id}: quantity must be positive")

    @property
    def investment(self) -> Decimal:
        return self.purchase_price * self.quantity
