# src/stonks/core/strategy/decisions.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

from stonks.core.models.state import AccountState, PositionState
from stonks.core.strategy.streak import StreakObservation


@dataclass(frozen=True, slots=True)
class DecisionContext:
    """Read-only view handed to Strategy.decide()."""
    account: AccountState
    position: PositionState
    observation: StreakObservation
    price: Decimal


@dataclass(frozen=True, slots=True)
class FlattenPosition:
    target_qty: int = 0


@dataclass(frozen=True, slots=True)
class OpenOrAdjust:
    target_qty: int
    delta: int


@dataclass(frozen=True, slots=True)
class NoOp:
    reason: str = ""


Decision = Union[FlattenPosition, OpenOrAdjust, NoOp]
