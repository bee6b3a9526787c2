# src/stonks/core/models/events.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# ------------------------------------------------------------
# TickEvent
# ------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TickEvent:
    """
    Trade print for a symbol, produced by the market-data stream parser.
    """

    symbol: str
    price: Decimal
    ts: datetime = field(default_factory=_utcnow)


# ------------------------------------------------------------
# OrderUpdateEvent
# ------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class OrderUpdateEvent:
    """
    Order lifecycle event from the trading stream.

    `kind` is kept as the raw broker string so that kinds the controller
    does not know about can still be reported.
    """

    order_id: str
    symbol: str
    kind: str
    ts: datetime = field(default_factory=_utcnow)
    raw_json: dict[str, Any] | None = None
