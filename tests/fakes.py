from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from stonks.core.errors import PositionNotFoundError
from stonks.core.models.order import OrderIntent
from stonks.core.models.state import AccountState, PositionSnapshot
from stonks.exchanges.base.gateway import (
    BrokerGateway,
    OrderUpdateCallback,
    TickCallback,
)


def account(equity="1000", multiplier="2.00", account_id="foobar") -> AccountState:
    return AccountState(
        account_id=account_id,
        equity=Decimal(equity),
        margin_multiplier=Decimal(multiplier),
    )


class FakeGateway(BrokerGateway):
    """
    In-memory gateway with ordered canned responses per operation.

    Each `responses[op]` list is consumed front to back; an Exception
    instance is raised instead of returned. When a list runs dry the
    default for that op is used.
    """

    name = "fake"

    def __init__(
        self,
        *,
        account_state: Optional[AccountState] = None,
        position_qty: Optional[str] = "3.5",
        open_orders: Optional[list[str]] = None,
        responses: Optional[dict[str, list[Any]]] = None,
    ):
        self.account_state = account_state or account()
        self.position_qty = position_qty
        self.open_orders = list(open_orders or [])
        self.responses: dict[str, list[Any]] = {k: list(v) for k, v in (responses or {}).items()}

        self.calls: list[tuple[str, Any]] = []
        self.placed: list[OrderIntent] = []
        self.tick_cb: Optional[TickCallback] = None
        self.order_cb: Optional[OrderUpdateCallback] = None
        self._order_seq = 0

    # ---- helpers ----

    def _next(self, op: str, default: Any) -> Any:
        stack = self.responses.get(op)
        if stack:
            obj = stack.pop(0)
            if isinstance(obj, BaseException):
                raise obj
            return obj
        return default

    def calls_to(self, op: str) -> list[Any]:
        return [arg for name, arg in self.calls if name == op]

    # ---- orders ----

    def cancel_all_open_orders(self) -> None:
        self.calls.append(("cancel_all_open_orders", None))
        self._next("cancel_all_open_orders", None)

    def list_open_orders(self, *, symbol=None, limit=100) -> list[str]:
        self.calls.append(("list_open_orders", (symbol, limit)))
        return self._next("list_open_orders", list(self.open_orders))

    def cancel_order(self, order_id: str) -> None:
        self.calls.append(("cancel_order", order_id))
        self._next("cancel_order", None)

    def place_order(self, intent: OrderIntent) -> str:
        self.calls.append(("place_order", intent))
        self._order_seq += 1
        order_id = self._next("place_order", f"order{self._order_seq}")
        self.placed.append(intent)
        return order_id

    # ---- state ----

    def get_account(self) -> AccountState:
        self.calls.append(("get_account", None))
        return self._next("get_account", self.account_state)

    def get_position(self, symbol: str) -> PositionSnapshot:
        self.calls.append(("get_position", symbol))
        default = None
        if self.position_qty is not None:
            default = PositionSnapshot(symbol=symbol, qty=Decimal(self.position_qty))
        snap = self._next("get_position", default)
        if snap is None:
            raise PositionNotFoundError("position does not exist", status_code=404)
        return snap

    # ---- subscriptions ----

    def subscribe_ticks(self, *, symbol: str, cb: TickCallback) -> None:
        self.calls.append(("subscribe_ticks", symbol))
        self._next("subscribe_ticks", None)
        self.tick_cb = cb

    def subscribe_order_updates(self, *, cb: OrderUpdateCallback) -> None:
        self.calls.append(("subscribe_order_updates", None))
        self._next("subscribe_order_updates", None)
        self.order_cb = cb

    def unsubscribe_ticks(self, *, symbol: str) -> None:
        self.calls.append(("unsubscribe_ticks", symbol))
        self._next("unsubscribe_ticks", None)

    def unsubscribe_order_updates(self) -> None:
        self.calls.append(("unsubscribe_order_updates", None))
        self._next("unsubscribe_order_updates", None)


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, sec: float) -> None:
        self.now += sec
