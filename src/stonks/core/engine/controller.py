# src/stonks/core/engine/controller.py
from __future__ import annotations

import logging
import queue
import threading
import time
from decimal import Decimal
from typing import Callable, Optional, Union

from stonks.core.errors import (
    GatewayError,
    NoOpOrderError,
    OrderPendingError,
    PositionNotFoundError,
    StartupError,
    StonksError,
)
from stonks.core.ledger import Ledger
from stonks.core.models.enums import ControllerState, OrderType, Side, TimeInForce
from stonks.core.models.events import OrderUpdateEvent, TickEvent
from stonks.core.models.order import OrderIntent
from stonks.core.strategy.base import Strategy
from stonks.core.strategy.decisions import (
    Decision,
    DecisionContext,
    FlattenPosition,
    NoOp,
    OpenOrAdjust,
)
from stonks.core.strategy.streak import DEFAULT_EPSILON, StreakTracker
from stonks.exchanges.base.gateway import BrokerGateway

InboxItem = Union[TickEvent, OrderUpdateEvent, object]

_STOP = object()


class Controller:
    """
    Event-driven control loop for a single symbol.

    Stream callbacks only enqueue; one thread drains the inbox in run()
    and owns every mutation of the Ledger and the StreakTracker.
    """

    def __init__(
        self,
        *,
        gateway: BrokerGateway,
        strategy: Strategy,
        symbol: str,
        epsilon: Decimal = DEFAULT_EPSILON,
        tick_debounce_sec: float = 1.0,
        tick_sample_every: int = 1,
        open_orders_limit: int = 100,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self.logger = logger or logging.getLogger("stonks.core.engine.controller")

        # --- identity ---
        self.gateway = gateway
        self.strategy = strategy
        self.symbol = str(symbol).upper()

        # --- params ---
        self.tick_debounce_sec = float(tick_debounce_sec)
        self.tick_sample_every = max(1, int(tick_sample_every))
        self.open_orders_limit = int(open_orders_limit)
        self._clock = clock

        # --- owned state ---
        self.ledger = Ledger(symbol=self.symbol)
        self.streak = StreakTracker(epsilon=epsilon)
        self.state = ControllerState.UNINITIALIZED

        # --- tick bookkeeping ---
        self._last_tick_ts: Optional[float] = None
        self._last_price: Optional[Decimal] = None
        self._tick_index = -1

        # --- loop ---
        self._inbox: "queue.Queue[InboxItem]" = queue.Queue()
        self._stop = threading.Event()
        self._stop_lock = threading.Lock()
        self._stop_requested = False

    # ------------------------------------------------------------------
    # ledger refresh
    # ------------------------------------------------------------------

    def refresh_account(self) -> None:
        """On failure the previous snapshot stays in place."""
        account = self.gateway.get_account()
        self.ledger.update_account(account)

    def refresh_position(self) -> None:
        try:
            snapshot = self.gateway.get_position(self.symbol)
        except PositionNotFoundError:
            snapshot = None
        self.ledger.update_position(snapshot)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """UNINITIALIZED → READY. Any failure is fatal."""
        if self.state != ControllerState.UNINITIALIZED:
            raise StartupError(f"cannot start from state {self.state.value}")

        try:
            self.gateway.cancel_all_open_orders()
            self.refresh_position()
            self.refresh_account()
        except StonksError as e:
            raise StartupError(f"initial state unavailable: {e}") from e

        account = self.ledger.account
        self.logger.info(
            "[STARTUP] symbol=%s position=%s equity=%s buying_power=%s",
            self.symbol,
            self.ledger.position.qty,
            account.equity.quantize(Decimal("0.01")),
            account.buying_power.quantize(Decimal("0.01")),
        )
        self.state = ControllerState.READY

    def run(self) -> None:
        """READY → RUNNING, then block on the inbox until stop()."""
        if self.state != ControllerState.READY:
            raise StartupError(f"cannot run from state {self.state.value}")

        try:
            for order_id in self.gateway.list_open_orders(
                symbol=self.symbol, limit=self.open_orders_limit
            ):
                self.logger.debug("[STARTUP] canceling pre-existing order %s", order_id)
                self.gateway.cancel_order(order_id)

            self.gateway.subscribe_ticks(symbol=self.symbol, cb=self.submit)
            self.gateway.subscribe_order_updates(cb=self.submit)
        except StonksError as e:
            raise StartupError(f"cannot enter running state: {e}") from e

        self.state = ControllerState.RUNNING
        self.strategy.on_start()
        self.logger.info(
            "[Controller] running: symbol=%s strategy=%s",
            self.symbol,
            self.strategy.strategy_id,
        )

        while not (self._stop_requested or self._stop.is_set()):
            try:
                item = self._inbox.get(timeout=0.5)
            except queue.Empty:
                continue
            if item is _STOP:
                break
            self.dispatch(item)

        self.stop()

    def request_stop(self) -> None:
        """Takes no locks; run() notices within one inbox poll and shuts down."""
        self._stop_requested = True

    def stop(self) -> None:
        """RUNNING → SHUTTING_DOWN. Safe to call more than once."""
        with self._stop_lock:
            if self.state == ControllerState.SHUTTING_DOWN:
                return
            was_running = self.state == ControllerState.RUNNING
            self.state = ControllerState.SHUTTING_DOWN

        self._stop.set()
        self._inbox.put(_STOP)

        if not was_running:
            return

        self.logger.info("[SHUTDOWN] closing streams for %s", self.symbol)
        try:
            self.gateway.unsubscribe_ticks(symbol=self.symbol)
        except StonksError as e:
            self.logger.warning("[SHUTDOWN] failed to unsubscribe ticks: %s", e)
        try:
            self.gateway.unsubscribe_order_updates()
        except StonksError as e:
            self.logger.warning("[SHUTDOWN] failed to unsubscribe order updates: %s", e)

        try:
            self.strategy.on_stop()
        except Exception:
            self.logger.exception("[StrategyStopError]")

    # ------------------------------------------------------------------
    # inbox
    # ------------------------------------------------------------------

    def submit(self, event: InboxItem) -> None:
        """Stream callback: enqueue only."""
        self._inbox.put(event)

    def dispatch(self, event: InboxItem) -> None:
        try:
            if isinstance(event, TickEvent):
                self.handle_tick(event)
            elif isinstance(event, OrderUpdateEvent):
                self.handle_order_update(event)
            else:
                self.logger.error("[DISPATCH] dropped unknown event type=%s", type(event).__name__)
        except Exception:
            self.logger.exception("[DISPATCH ERROR] event=%r", event)

    # ------------------------------------------------------------------
    # ticks
    # ------------------------------------------------------------------

    def handle_tick(self, event: TickEvent) -> None:
        if event.symbol != self.symbol:
            self.logger.debug("[TICK] ignoring unrelated symbol %s", event.symbol)
            return

        now = self._clock()
        if self._last_tick_ts is not None and now - self._last_tick_ts < self.tick_debounce_sec:
            return
        self._last_tick_ts = now

        self._tick_index = (self._tick_index + 1) % self.tick_sample_every
        if self._tick_index != 0:
            return

        previous = self._last_price
        price = Decimal(event.price)
        self._last_price = price

        if previous is None:
            self.logger.info("[TICK] %s first price %s", self.symbol, price)
        else:
            self._evaluate(previous, price)

        try:
            self.refresh_account()
        except StonksError as e:
            self.logger.error("[TICK] account refresh failed symbol=%s price=%s: %s", self.symbol, price, e)

    def _evaluate(self, previous: Decimal, price: Decimal) -> None:
        self.logger.info(
            "[TICK] %s previous=%s price=%s",
            self.symbol,
            previous,
            price,
        )

        observation = self.streak.observe(previous, price)
        decision = self.strategy.decide(
            DecisionContext(
                account=self.ledger.account,
                position=self.ledger.position,
                observation=observation,
                price=price,
            )
        )
        self._act(decision, price)

    def _act(self, decision: Decision, price: Decimal) -> None:
        if isinstance(decision, NoOp):
            self.logger.debug("[DECISION] no-op: %s", decision.reason)
            return

        if isinstance(decision, FlattenPosition):
            target = decision.target_qty
            self.logger.info("[DECISION] streak reversed → flatten %s", self.symbol)
        elif isinstance(decision, OpenOrAdjust):
            target = decision.target_qty
            self.logger.info(
                "[DECISION] streak=%s target=%s delta=%s",
                self.streak.state.count,
                target,
                decision.delta,
            )
        else:
            self.logger.error("[DECISION] unknown decision %r", decision)
            return

        try:
            order_id = self.send_limit_order(target, price)
        except NoOpOrderError:
            self.logger.info("[ORDER] no-op order requested target=%s price=%s", target, price)
            return
        except OrderPendingError as e:
            self.logger.info("[ORDER] skip: %s", e)
            return
        except GatewayError as e:
            self.logger.error(
                "[ORDER] placement failed symbol=%s target=%s price=%s: %s",
                self.symbol, target, price, e,
            )
            return

        self.ledger.order.order_id = order_id
        self.logger.info("[ORDER] placed order_id=%s", order_id)

    # ------------------------------------------------------------------
    # orders
    # ------------------------------------------------------------------

    def send_limit_order(self, target_position: int, target_price: Decimal) -> str:
        """
        Move the long position to `target_position` with a day limit order.
        Only the non-negative part of either side counts.
        """
        if self.ledger.order.is_open:
            raise OrderPendingError(self.ledger.order.order_id)

        delta = max(int(target_position), 0) - max(self.ledger.position.qty, 0)
        if delta == 0:
            raise NoOpOrderError()

        intent = OrderIntent(
            symbol=self.symbol,
            side=Side.BUY if delta > 0 else Side.SELL,
            qty=abs(delta),
            order_type=OrderType.LIMIT,
            limit_price=Decimal(str(target_price)),
            time_in_force=TimeInForce.DAY,
            account_id=self.ledger.account.account_id,
        )
        return self.gateway.place_order(intent)

    def handle_order_update(self, event: OrderUpdateEvent) -> None:
        if event.symbol != self.symbol:
            self.logger.debug("[ORDER UPDATE] ignoring unrelated symbol %s", event.symbol)
            return

        self.logger.info("[ORDER UPDATE] kind=%s order_id=%s", event.kind, event.order_id)

        transition = self.ledger.apply_order_event(event)

        if transition.unexpected:
            self.logger.error(
                "[ORDER UPDATE] unexpected order event kind=%s order_id=%s",
                event.kind,
                event.order_id,
            )
            return

        if transition.refresh_position:
            try:
                self.refresh_position()
            except StonksError as e:
                self.logger.error(
                    "[ORDER UPDATE] position refresh failed order_id=%s: %s",
                    event.order_id, e,
                )
            else:
                self.logger.info(
                    "[ORDER UPDATE] position %s=%s",
                    self.symbol,
                    self.ledger.position.qty,
                )

        if transition.order_cleared:
            self.logger.info("[ORDER UPDATE] order %s closed", event.order_id)
