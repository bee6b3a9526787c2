# src/stonks/exchanges/alpaca/gateway.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from stonks.core.errors import GatewayError
from stonks.core.models.enums import OrderEventKind
from stonks.core.models.events import OrderUpdateEvent
from stonks.core.models.order import OrderIntent
from stonks.core.models.state import AccountState, PositionSnapshot
from stonks.exchanges.alpaca.normalize import (
    norm_account,
    norm_order_ids,
    norm_position,
    norm_trade_tick,
    norm_trade_update,
)
from stonks.exchanges.alpaca.rest import AlpacaREST
from stonks.exchanges.alpaca.ws import DATA_STREAM_URL, AlpacaStream, trading_stream_url
from stonks.exchanges.base.gateway import (
    BrokerGateway,
    OrderUpdateCallback,
    TickCallback,
)


class AlpacaGateway(BrokerGateway):
    """
    Alpaca equities gateway.
    REST for queries/orders, two websocket streams for trades and order updates.
    """

    name = "alpaca"

    def __init__(
        self,
        *,
        rest: AlpacaREST,
        api_key_id: str,
        api_secret_key: str,
        trading_base_url: str,
        data_stream_url: str = DATA_STREAM_URL,
        dry_run: bool = False,
    ):
        self.logger = logging.getLogger("stonks.exchanges.alpaca.gateway")

        self.rest = rest
        self._auth = {"action": "auth", "key": api_key_id, "secret": api_secret_key}
        self.trading_stream_url = trading_stream_url(trading_base_url)
        self.data_stream_url = data_stream_url
        self.dry_run = bool(dry_run)

        # WS
        self._tick_ws: dict[str, AlpacaStream] = {}
        self._order_ws: Optional[AlpacaStream] = None
        self._order_cb: Optional[OrderUpdateCallback] = None

    # ---------------- orders ----------------

    def cancel_all_open_orders(self) -> None:
        if self.dry_run:
            self.logger.warning("[DRY_RUN] cancel_all_open_orders skipped")
            return
        self.rest.cancel_all_orders()

    def list_open_orders(self, *, symbol: Optional[str] = None, limit: int = 100) -> list[str]:
        return norm_order_ids(self.rest.open_orders(symbol=symbol, limit=limit))

    def cancel_order(self, order_id: str) -> None:
        if self.dry_run:
            self.logger.warning("[DRY_RUN] cancel_order %s skipped", order_id)
            return
        self.rest.cancel_order(order_id)

    def place_order(self, intent: OrderIntent) -> str:
        if self.dry_run:
            fake_id = f"dry-{uuid4().hex[:12]}"
            self.logger.info("[DRY_RUN] %r → %s", intent, fake_id)
            self._close_dry_order(fake_id, intent.symbol)
            return fake_id

        self.logger.info("[ORDER SUBMIT] %r", intent)
        resp = self.rest.new_order(intent.to_params())
        order_id = str((resp or {}).get("id") or "")
        if not order_id:
            raise GatewayError(f"order response without id: {resp!r:.200}")
        return order_id

    def _close_dry_order(self, order_id: str, symbol: str) -> None:
        # nothing reaches the broker, so report the order as opened and canceled
        cb = self._order_cb
        if cb is None:
            return
        for kind in (OrderEventKind.NEW, OrderEventKind.CANCELED):
            cb(OrderUpdateEvent(order_id=order_id, symbol=symbol, kind=kind.value))

    # ---------------- state ----------------

    def get_account(self) -> AccountState:
        return norm_account(self.rest.account())

    def get_position(self, symbol: str) -> PositionSnapshot:
        return norm_position(self.rest.position(symbol))

    # ---------------- subscriptions ----------------

    def subscribe_ticks(self, *, symbol: str, cb: TickCallback) -> None:
        symbol = symbol.upper()

        def on_msg(data: dict):
            if data.get("T") == "error":
                self.logger.error("[TICKS] stream error: %s", data.get("msg"))
                return
            tick = norm_trade_tick(data)
            if tick:
                cb(tick)

        ws = AlpacaStream(
            url=self.data_stream_url,
            on_message=on_msg,
            handshake=[self._auth, {"action": "subscribe", "trades": [symbol]}],
            name=f"AlpacaTrades-{symbol}",
        )
        ws.start()
        self._tick_ws[symbol] = ws

    def subscribe_order_updates(self, *, cb: OrderUpdateCallback) -> None:
        def on_msg(data: dict):
            if data.get("stream") == "authorization":
                status = (data.get("data") or {}).get("status")
                if status != "authorized":
                    self.logger.error("[ORDER UPDATES] authorization failed: %s", data)
                return
            upd = norm_trade_update(data)
            if upd:
                cb(upd)

        ws = AlpacaStream(
            url=self.trading_stream_url,
            on_message=on_msg,
            handshake=[
                self._auth,
                {"action": "listen", "data": {"streams": ["trade_updates"]}},
            ],
            name="AlpacaTradeUpdates",
        )
        ws.start()
        self._order_ws = ws
        self._order_cb = cb

    def unsubscribe_ticks(self, *, symbol: str) -> None:
        ws = self._tick_ws.pop(symbol.upper(), None)
        if ws is None:
            raise GatewayError(f"no tick stream registered for {symbol}")
        self._close(ws)

    def unsubscribe_order_updates(self) -> None:
        ws, self._order_ws = self._order_ws, None
        self._order_cb = None
        if ws is None:
            raise GatewayError("no order-update stream registered")
        self._close(ws)

    @staticmethod
    def _close(ws: AlpacaStream) -> None:
        try:
            ws.stop()
        except Exception as e:
            raise GatewayError(f"[{ws.name}] close failed: {e!r}") from e
