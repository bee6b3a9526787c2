from __future__ import annotations

import json as jsonlib

import pytest
import requests

from stonks.core.errors import GatewayError, PositionNotFoundError
from stonks.exchanges.alpaca.rest import AlpacaREST


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: str | None = None):
        self.status_code = status_code
        if text is None:
            text = "" if payload is None else jsonlib.dumps(payload)
        self.text = text

    def json(self):
        return jsonlib.loads(self.text)


class FakeSession:
    def __init__(self, *responses):
        self.headers: dict[str, str] = {}
        self.responses = list(responses)
        self.requests: list[dict] = []

    def request(self, **kw):
        self.requests.append(kw)
        r = self.responses.pop(0)
        if isinstance(r, BaseException):
            raise r
        return r


def make_rest(*responses, **kw) -> tuple[AlpacaREST, FakeSession]:
    sess = FakeSession(*responses)
    rest = AlpacaREST(
        "mykey",
        "secret123",
        base_url="https://example.url/",
        data_url="https://data.example.url",
        session=sess,
        backoff_base=0,
        **kw,
    )
    return rest, sess


def test_auth_headers_are_set():
    _, sess = make_rest()
    assert sess.headers["APCA-API-KEY-ID"] == "mykey"
    assert sess.headers["APCA-API-SECRET-KEY"] == "secret123"


def test_account_get():
    rest, sess = make_rest(FakeResponse(payload={"id": "foobar", "equity": "1000"}))
    assert rest.account()["id"] == "foobar"
    req = sess.requests[0]
    assert req["method"] == "GET"
    assert req["url"] == "https://example.url/v2/account"


def test_new_order_posts_json_body():
    rest, sess = make_rest(FakeResponse(payload={"id": "o-1"}))
    body = {"symbol": "MKL", "qty": "2", "side": "buy", "type": "limit"}
    assert rest.new_order(body) == {"id": "o-1"}
    req = sess.requests[0]
    assert req["method"] == "POST"
    assert req["json"] == body


def test_open_orders_filters_by_symbol():
    rest, sess = make_rest(FakeResponse(payload=[{"id": "a"}]))
    assert rest.open_orders(symbol="MKL", limit=50) == [{"id": "a"}]
    assert sess.requests[0]["params"] == {"status": "open", "limit": 50, "symbols": "MKL"}


def test_latest_quote_uses_data_host():
    rest, sess = make_rest(FakeResponse(payload={"symbol": "VTI", "quote": {}}))
    rest.latest_quote("VTI")
    assert sess.requests[0]["url"] == "https://data.example.url/v2/stocks/VTI/quotes/latest"


def test_empty_body_is_empty_dict():
    rest, _ = make_rest(FakeResponse(status_code=204))
    rest.cancel_order("o-1")


def test_missing_position_maps_to_position_not_found():
    rest, _ = make_rest(FakeResponse(404, {"code": 40410000, "message": "position does not exist"}))
    with pytest.raises(PositionNotFoundError):
        rest.position("MKL")


def test_client_error_is_gateway_error_with_status():
    rest, _ = make_rest(FakeResponse(403, {"code": 40310000, "message": "insufficient buying power"}))
    with pytest.raises(GatewayError) as ei:
        rest.new_order({"symbol": "MKL"})
    assert ei.value.status_code == 403
    assert not isinstance(ei.value, PositionNotFoundError)
    assert "insufficient buying power" in str(ei.value)


def test_server_error_is_not_retried_by_default():
    rest, sess = make_rest(FakeResponse(500, text="oops"), FakeResponse(payload={}))
    with pytest.raises(GatewayError) as ei:
        rest.account()
    assert ei.value.status_code == 500
    assert len(sess.requests) == 1


def test_server_error_retried_when_configured():
    rest, sess = make_rest(
        FakeResponse(503, text="busy"),
        FakeResponse(payload={"id": "foobar"}),
        max_retries=3,
    )
    assert rest.account() == {"id": "foobar"}
    assert len(sess.requests) == 2


def test_transport_error_becomes_gateway_error():
    rest, _ = make_rest(requests.ConnectionError("refused"))
    with pytest.raises(GatewayError):
        rest.account()


def test_invalid_json_body():
    rest, _ = make_rest(FakeResponse(200, text="<html>"))
    with pytest.raises(GatewayError):
        rest.account()
