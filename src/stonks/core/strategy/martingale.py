# src/stonks/core/strategy/martingale.py
from __future__ import annotations

from decimal import Decimal, ROUND_DOWN

from stonks.core.strategy.base import Strategy
from stonks.core.strategy.decisions import (
    Decision,
    DecisionContext,
    FlattenPosition,
    NoOp,
    OpenOrAdjust,
)

DEFAULT_BASE_BET = Decimal("0.10")


class MartingaleStrategy(Strategy):
    """
    Streak sizing with doubling on continuation:

      target_value = min(2^count * base_bet * buying_power, buying_power - price)
      target_qty   = floor(target_value / price)

    Contrarian direction: a rising streak sells (target is negated),
    a falling streak buys. A reversal only flattens; the new streak
    needs a continuation tick before anything is opened.
    """

    strategy_id = "martingale"

    def __init__(self, *, base_bet: Decimal = DEFAULT_BASE_BET) -> None:
        self.base_bet = Decimal(base_bet)
        if not (Decimal("0") < self.base_bet <= Decimal("1")):
            raise ValueError(f"base_bet must be in (0, 1], got {base_bet}")

    def target_value(self, *, count: int, buying_power: Decimal, price: Decimal) -> Decimal:
        bet = (Decimal(2) ** count) * self.base_bet * buying_power
        return min(bet, buying_power - price)

    def target_qty(self, *, count: int, buying_power: Decimal, price: Decimal) -> int:
        value = self.target_value(count=count, buying_power=buying_power, price=price)
        return int((value / price).to_integral_value(rounding=ROUND_DOWN))

    def decide(self, context: DecisionContext) -> Decision:
        obs = context.observation
        price = Decimal(context.price)
        current = int(context.position.qty)

        if not obs.meaningful:
            return NoOp("move below epsilon")

        if obs.reversed:
            if current != 0:
                return FlattenPosition()
            return NoOp("streak reversed, already flat")

        if price <= 0:
            return NoOp("non-positive price")

        buying_power = context.account.buying_power
        if buying_power - price <= 0:
            return NoOp("insufficient buying power")

        qty = self.target_qty(
            count=obs.streak.count,
            buying_power=buying_power,
            price=price,
        )

        if obs.streak.increasing:
            qty = -qty

        delta = qty - current
        if delta == 0:
            return NoOp("no-op order requested")

        return OpenOrAdjust(target_qty=qty, delta=delta)
