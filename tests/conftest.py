from __future__ import annotations

import pytest

from stonks.core.engine.controller import Controller
from stonks.core.strategy.martingale import MartingaleStrategy

from fakes import FakeClock, FakeGateway


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_controller(clock):
    def _make(gateway: FakeGateway | None = None, *, symbol: str = "MKL", start: bool = True, **kw):
        gw = gateway or FakeGateway()
        ctl = Controller(
            gateway=gw,
            strategy=kw.pop("strategy", None) or MartingaleStrategy(),
            symbol=symbol,
            clock=clock,
            **kw,
        )
        if start:
            ctl.start()
        return ctl, gw

    return _make
