# src/stonks/core/strategy/streak.py
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from stonks.core.models.state import StreakState

DEFAULT_EPSILON = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class StreakSnapshot:
    start_price: Decimal
    count: int
    increasing: bool


@dataclass(frozen=True, slots=True)
class StreakObservation:
    meaningful: bool
    continued: bool
    reversed: bool
    streak: StreakSnapshot


class StreakTracker:
    """
    Tracks a run of same-direction price moves of at least `epsilon`.

      same direction      → count += 1
      opposite direction  → count = 0, direction flips, start = new price
      |delta| < epsilon   → nothing changes
    """

    def __init__(self, *, epsilon: Decimal = DEFAULT_EPSILON) -> None:
        self.epsilon = Decimal(epsilon)
        self.state = StreakState()

    def snapshot(self) -> StreakSnapshot:
        s = self.state
        return StreakSnapshot(start_price=s.start_price, count=s.count, increasing=s.increasing)

    def observe(self, previous_price: Decimal, new_price: Decimal) -> StreakObservation:
        delta = Decimal(new_price) - Decimal(previous_price)

        if abs(delta) < self.epsilon:
            return StreakObservation(
                meaningful=False,
                continued=False,
                reversed=False,
                streak=self.snapshot(),
            )

        increasing_now = delta > 0

        if increasing_now == self.state.increasing:
            self.state.count += 1
            return StreakObservation(
                meaningful=True,
                continued=True,
                reversed=False,
                streak=self.snapshot(),
            )

        self.state = replace(
            self.state,
            count=0,
            increasing=increasing_now,
            start_price=Decimal(new_price),
        )
        return StreakObservation(
            meaningful=True,
            continued=False,
            reversed=True,
            streak=self.snapshot(),
        )
