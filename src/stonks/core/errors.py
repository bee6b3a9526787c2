# src/stonks/core/errors.py
from __future__ import annotations


class StonksError(Exception):
    """Base error for the agent."""


class ConfigError(StonksError):
    pass


class GatewayError(StonksError):
    """
    Broker call failed (transport, HTTP status, or unparsable payload).
    """

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PositionNotFoundError(GatewayError):
    """
    Broker has no position for the symbol.
    Expected outcome: callers map it to qty=0.
    """


class NoOpOrderError(StonksError):
    """Requested target position equals current position."""

    def __init__(self, message: str = "no-op order requested"):
        super().__init__(message)


class OrderPendingError(StonksError):
    """An order for the symbol is still outstanding."""

    def __init__(self, order_id: str):
        super().__init__(f"order {order_id} still outstanding")
        self.order_id = order_id


class StartupError(StonksError):
    """Agent cannot start from a known state."""
