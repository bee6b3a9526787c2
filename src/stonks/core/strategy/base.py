# src/stonks/core/strategy/base.py
from __future__ import annotations

from abc import ABC, abstractmethod

from stonks.core.strategy.decisions import Decision, DecisionContext


class Strategy(ABC):
    """
    Base Strategy interface.

    Strategy:
      • receives a DecisionContext per meaningful tick
      • returns one Decision
      • holds no Ledger / streak state of its own
    """
    # --- identity ---
    strategy_id: str = "base"

    # ------------------------------------------------------------------
    # lifecycle hooks (optional)
    # ------------------------------------------------------------------

    def on_start(self) -> None:
        """Called once when the controller starts running."""
        pass

    def on_stop(self) -> None:
        """Called once when the controller stops."""
        pass

    # ------------------------------------------------------------------
    # decision
    # ------------------------------------------------------------------

    @abstractmethod
    def decide(self, context: DecisionContext) -> Decision:
        raise NotImplementedError
