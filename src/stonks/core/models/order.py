# src/stonks/core/models/order.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from stonks.core.models.enums import Side, OrderType, TimeInForce


@dataclass(slots=True)
class OrderIntent:
    """
    OrderIntent: canonical order description handed to the gateway.

    This object is:
      • built by Controller.send_limit_order
      • submitted by BrokerGateway.place_order
      • reconciled later with trade_updates events
    """

    # --- identity ---
    symbol: str
    side: Side
    qty: int

    # --- execution ---
    order_type: OrderType = OrderType.LIMIT
    limit_price: Optional[Decimal] = None
    time_in_force: TimeInForce = TimeInForce.DAY

    # --- context ---
    account_id: str = ""

    # --- idempotency ---
    client_order_id: str = field(default_factory=lambda: uuid4().hex)

    def to_params(self) -> dict[str, str]:
        """Alpaca /v2/orders body (all values as strings)."""
        params: dict[str, str] = {
            "symbol": self.symbol,
            "qty": str(int(self.qty)),
            "side": self.side.value,
            "type": self.order_type.value,
            "time_in_force": self.time_in_force.value,
            "client_order_id": self.client_order_id,
        }
        if self.limit_price is not None:
            params["limit_price"] = str(self.limit_price)
        return params

    def __repr__(self) -> str:
        return (
            f"OrderIntent("
            f"{self.symbol} {self.side.value} "
            f"qty={self.qty} "
            f"type={self.order_type.value} "
            f"limit={self.limit_price} "
            f"tif={self.time_in_force.value} "
            f"cid={self.client_order_id}"
            f")"
        )
