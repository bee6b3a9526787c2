# src/stonks/core/models/state.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(slots=True)
class AccountState:
    account_id: str = ""
    equity: Decimal = Decimal("0")
    margin_multiplier: Decimal = Decimal("1")

    @property
    def buying_power(self) -> Decimal:
        return self.equity * self.margin_multiplier


@dataclass(slots=True)
class PositionState:
    symbol: str
    qty: int = 0  # signed shares


@dataclass(slots=True)
class OrderState:
    order_id: str = ""  # "" -> no open order

    @property
    def is_open(self) -> bool:
        return bool(self.order_id)


@dataclass(slots=True)
class StreakState:
    start_price: Decimal = Decimal("0")
    count: int = 0
    increasing: bool = True


@dataclass(frozen=True, slots=True)
class PositionSnapshot:
    """Position as reported by the broker (qty may be fractional)."""
    symbol: str
    qty: Decimal
