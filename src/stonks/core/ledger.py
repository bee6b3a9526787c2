# src/stonks/core/ledger.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from stonks.core.models.enums import OrderEventKind
from stonks.core.models.events import OrderUpdateEvent
from stonks.core.models.state import (
    AccountState,
    OrderState,
    PositionSnapshot,
    PositionState,
)


_TERMINAL_KINDS: set[str] = {
    OrderEventKind.FILL.value,
    OrderEventKind.REJECTED.value,
    OrderEventKind.CANCELED.value,
}

_KNOWN_KINDS: set[str] = {k.value for k in OrderEventKind}


@dataclass(frozen=True, slots=True)
class OrderTransition:
    """Outcome of applying one order update to the ledger."""
    refresh_position: bool = False
    order_cleared: bool = False
    unexpected: bool = False


class Ledger:
    """
    Local snapshot of account / position / open order for one symbol.

    Owned by the Controller. Performs no I/O: the Controller fetches data
    from the gateway and hands it in.
    """

    def __init__(self, *, symbol: str) -> None:
        self.account = AccountState()
        self.position = PositionState(symbol=symbol)
        self.order = OrderState()

    @property
    def symbol(self) -> str:
        return self.position.symbol

    # ------------------------------------------------------------------
    # snapshots
    # ------------------------------------------------------------------

    def update_account(self, account: AccountState) -> None:
        self.account = replace(account)

    def update_position(self, snapshot: Optional[PositionSnapshot]) -> None:
        """
        None means "position does not exist" → flat.
        Fractional broker qty truncates toward zero.
        """
        qty = int(snapshot.qty) if snapshot is not None else 0
        self.position.qty = qty

    # ------------------------------------------------------------------
    # order lifecycle
    # ------------------------------------------------------------------

    def apply_order_event(self, event: OrderUpdateEvent) -> OrderTransition:
        """
        new           → track order id
        fill          → refresh position, clear if tracked
        partial_fill  → refresh position
        rejected/canceled → clear if tracked
        other         → unexpected, no state change
        """
        kind = (event.kind or "").lower()

        if kind not in _KNOWN_KINDS:
            return OrderTransition(unexpected=True)

        if kind == OrderEventKind.NEW.value:
            self.order.order_id = event.order_id
            return OrderTransition()

        refresh = kind in (OrderEventKind.FILL.value, OrderEventKind.PARTIAL_FILL.value)

        cleared = False
        if kind in _TERMINAL_KINDS and self.order.order_id and self.order.order_id == event.order_id:
            self.order.order_id = ""
            cleared = True

        return OrderTransition(refresh_position=refresh, order_cleared=cleared)
