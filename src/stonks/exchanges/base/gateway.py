# src/stonks/exchanges/base/gateway.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from stonks.core.models.events import OrderUpdateEvent, TickEvent
from stonks.core.models.order import OrderIntent
from stonks.core.models.state import AccountState, PositionSnapshot


# -------- callbacks --------

TickCallback = Callable[[TickEvent], None]
OrderUpdateCallback = Callable[[OrderUpdateEvent], None]


# -------- base gateway --------

class BrokerGateway(ABC):
    """
    Base broker gateway.
    Implementations hold no Ledger state and MUST raise GatewayError
    (or a subclass) on any failure.
    """

    name: str

    # ---- orders ----

    @abstractmethod
    def cancel_all_open_orders(self) -> None:
        ...

    @abstractmethod
    def list_open_orders(self, *, symbol: Optional[str] = None, limit: int = 100) -> list[str]:
        """Return ids of open orders, optionally filtered by symbol."""
        ...

    @abstractmethod
    def cancel_order(self, order_id: str) -> None:
        ...

    @abstractmethod
    def place_order(self, intent: OrderIntent) -> str:
        """
        Submit order to broker. Returns broker order id.
        """
        ...

    # ---- state ----

    @abstractmethod
    def get_account(self) -> AccountState:
        ...

    @abstractmethod
    def get_position(self, symbol: str) -> PositionSnapshot:
        """Raises PositionNotFoundError when the broker holds no position."""
        ...

    # ---- subscriptions ----

    @abstractmethod
    def subscribe_ticks(self, *, symbol: str, cb: TickCallback) -> None:
        ...

    @abstractmethod
    def subscribe_order_updates(self, *, cb: OrderUpdateCallback) -> None:
        ...

    @abstractmethod
    def unsubscribe_ticks(self, *, symbol: str) -> None:
        ...

    @abstractmethod
    def unsubscribe_order_updates(self) -> None:
        ...
