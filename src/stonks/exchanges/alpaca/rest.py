# src/stonks/exchanges/alpaca/rest.py
from __future__ import annotations

import logging
import time
from typing import Any

import requests

from stonks.core.errors import GatewayError, PositionNotFoundError

PAPER_BASE_URL = "https://paper-api.alpaca.markets"
DATA_BASE_URL = "https://data.alpaca.markets"

log = logging.getLogger("stonks.exchanges.alpaca.rest")


class AlpacaREST:
    """
    Alpaca Trading API v2 REST client (+ latest-quote market data call).

    Retries 429/5xx with linear backoff when max_retries > 1.
    The default is a single attempt: callers reassess on the next tick.
    """

    def __init__(
        self,
        api_key_id: str,
        api_secret_key: str,
        *,
        base_url: str = PAPER_BASE_URL,
        data_url: str = DATA_BASE_URL,
        timeout: float = 10.0,
        max_retries: int = 1,
        backoff_base: float = 1.5,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.data_url = data_url.rstrip("/")

        self.timeout = float(timeout)
        self.max_retries = max(1, int(max_retries))
        self.backoff_base = float(backoff_base)

        self.sess = session or requests.Session()
        self.sess.headers.update(
            {
                "APCA-API-KEY-ID": api_key_id or "",
                "APCA-API-SECRET-KEY": api_secret_key or "",
            }
        )

    # ---------------------------------------------------------------------
    # CORE REQUEST (WITH BACKOFF)
    # ---------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        base_url: str | None = None,
    ) -> Any:
        url = f"{base_url or self.base_url}{path}"

        last_err: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                r = self.sess.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                last_err = e
                log.warning(
                    "Alpaca request error (%s %s), attempt %d/%d | %r",
                    method, path, attempt, self.max_retries, e,
                )
                self._sleep(attempt)
                continue

            # --- RATE LIMIT / TEMP SERVER ERRORS ---
            if r.status_code == 429 or r.status_code >= 500:
                last_err = GatewayError(
                    f"Alpaca HTTP {r.status_code} {method} {path}",
                    status_code=r.status_code,
                )
                log.warning(
                    "Alpaca %d (%s %s), attempt %d/%d",
                    r.status_code, method, path, attempt, self.max_retries,
                )
                self._sleep(attempt)
                continue

            # --- OTHER ERRORS ---
            if r.status_code >= 400:
                raise self._http_error(r, method, path)

            # --- OK ---
            if not r.text:
                return {}
            try:
                return r.json()
            except ValueError as e:
                raise GatewayError(f"Alpaca {method} {path}: invalid JSON body") from e

        if isinstance(last_err, GatewayError):
            raise last_err
        raise GatewayError(
            f"Alpaca request failed after {self.max_retries} attempt(s): {method} {path} | last_err={last_err!r}"
        )

    def _sleep(self, attempt: int) -> None:
        if attempt < self.max_retries:
            time.sleep(self.backoff_base * attempt)

    @staticmethod
    def _http_error(r: requests.Response, method: str, path: str) -> GatewayError:
        # Alpaca returns {"code": ..., "message": ...}
        try:
            payload = r.json()
            message = str(payload.get("message") or "")
            code = payload.get("code")
        except ValueError:
            message, code = r.text[:500], None

        if r.status_code == 404 and (
            path.startswith("/v2/positions/") or "position does not exist" in message.lower()
        ):
            return PositionNotFoundError(message or "position does not exist", status_code=404)

        return GatewayError(
            f"Alpaca HTTP {r.status_code} {method} {path}: code={code} message={message}",
            status_code=r.status_code,
        )

    # ---------------------------------------------------------------------
    # API METHODS
    # ---------------------------------------------------------------------

    def account(self) -> dict:
        return self._request("GET", "/v2/account")

    def position(self, symbol: str) -> dict:
        return self._request("GET", f"/v2/positions/{symbol}")

    def open_orders(self, *, symbol: str | None = None, limit: int = 100) -> list:
        params: dict[str, Any] = {"status": "open", "limit": int(limit)}
        if symbol:
            params["symbols"] = symbol
        return self._request("GET", "/v2/orders", params=params) or []

    def new_order(self, body: dict[str, Any]) -> dict:
        return self._request("POST", "/v2/orders", json=body)

    def cancel_order(self, order_id: str) -> None:
        self._request("DELETE", f"/v2/orders/{order_id}")

    def cancel_all_orders(self) -> Any:
        return self._request("DELETE", "/v2/orders")

    def latest_quote(self, symbol: str) -> dict:
        return self._request(
            "GET",
            f"/v2/stocks/{symbol}/quotes/latest",
            base_url=self.data_url,
        )
