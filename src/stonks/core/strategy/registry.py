from __future__ import annotations

from decimal import Decimal

from stonks.core.strategy.base import Strategy
from stonks.core.strategy.martingale import MartingaleStrategy


def build_strategy(name: str, *, base_bet: Decimal) -> Strategy:
    name = name.lower()
    if name == "martingale":
        return MartingaleStrategy(base_bet=base_bet)
    raise ValueError(f"Unknown strategy: {name}")
