# src/stonks/exchanges/alpaca/ws.py
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable

import websocket

log = logging.getLogger("stonks.exchanges.alpaca.ws")

DATA_STREAM_URL = "wss://stream.data.alpaca.markets/v2/iex"


def trading_stream_url(base_url: str) -> str:
    """https://paper-api.alpaca.markets → wss://paper-api.alpaca.markets/stream"""
    url = base_url.rstrip("/")
    if url.startswith("https://"):
        url = "wss://" + url[len("https://"):]
    elif url.startswith("http://"):
        url = "ws://" + url[len("http://"):]
    return f"{url}/stream"


class AlpacaStream(threading.Thread):
    """
    Reconnecting websocket reader.

    `handshake` messages (auth, subscribe/listen) are sent on every
    (re)connect. Each decoded JSON object is passed to `on_message`;
    list frames are unpacked item by item.
    """

    def __init__(
        self,
        *,
        url: str,
        on_message: Callable[[dict], None],
        handshake: list[dict[str, Any]],
        name: str = "AlpacaStream",
    ):
        super().__init__(daemon=True, name=name)
        self.url = url
        self.on_message_cb = on_message
        self.handshake = list(handshake)
        self._ws: websocket.WebSocketApp | None = None
        self._stop_evt = threading.Event()

        self.connected = threading.Event()

    def run(self) -> None:
        log.info("[%s] connecting → %s", self.name, self.url)

        def _on_open(ws):
            self.connected.set()
            log.info("[%s] WS CONNECTED", self.name)
            for msg in self.handshake:
                ws.send(json.dumps(msg))

        def _on_close(_ws, *_a):
            self.connected.clear()
            log.warning("[%s] WS CLOSED", self.name)

        def _on_error(_ws, err):
            log.error("[%s] WS ERROR: %s", self.name, err)

        while not self._stop_evt.is_set():
            try:
                self._ws = websocket.WebSocketApp(
                    self.url,
                    on_open=_on_open,
                    on_message=lambda ws, msg: self._on_frame(msg),
                    on_error=_on_error,
                    on_close=_on_close,
                )
                self._ws.run_forever(ping_interval=20, ping_timeout=10)
            except Exception as e:
                self.connected.clear()
                log.exception("[%s] WS exception: %s", self.name, e)

            # backoff
            for _ in range(10):
                if self._stop_evt.is_set():
                    break
                time.sleep(0.2)

    def stop(self) -> None:
        self._stop_evt.set()
        self.connected.clear()
        if self._ws is not None:
            self._ws.close()

    def _on_frame(self, msg: str | bytes) -> None:
        if isinstance(msg, bytes):
            msg = msg.decode("utf-8", errors="replace")
        try:
            data = json.loads(msg)
        except ValueError:
            log.warning("[%s] dropped non-JSON frame: %.200s", self.name, msg)
            return

        items: list[Any] = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                self.on_message_cb(item)
            except Exception:
                log.exception("[%s] on_message failed", self.name)
