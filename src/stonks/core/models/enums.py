from __future__ import annotations
from enum import Enum

class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"

class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"

class TimeInForce(str, Enum):
    DAY = "day"
    GTC = "gtc"

class OrderEventKind(str, Enum):
    NEW = "new"
    FILL = "fill"
    PARTIAL_FILL = "partial_fill"
    REJECTED = "rejected"
    CANCELED = "canceled"

class ControllerState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    READY = "READY"
    RUNNING = "RUNNING"
    SHUTTING_DOWN = "SHUTTING_DOWN"
